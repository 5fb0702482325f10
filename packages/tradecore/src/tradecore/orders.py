"""
Order request models.

Each order type is its own frozen dataclass carrying exactly the fields that
type needs, validated when the request is built instead of deep inside an
exchange request builder.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from tradecore.types import OrderType, Side


def _normalize_symbol(symbol: str) -> str:
    symbol = (symbol or "").strip().upper()
    if not symbol:
        raise ValueError("symbol is required")
    return symbol


def _require_positive(name: str, value: Decimal) -> None:
    if value is None or value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class LimitOrder:
    """Limit order; price is mandatory."""
    symbol: str
    side: Side
    quantity: Decimal
    price: Decimal
    client_order_id: Optional[str] = None

    order_type = OrderType.LIMIT

    def __post_init__(self):
        object.__setattr__(self, "symbol", _normalize_symbol(self.symbol))
        object.__setattr__(self, "side", Side(self.side))
        _require_positive("quantity", self.quantity)
        _require_positive("price", self.price)


@dataclass(frozen=True)
class MarketOrder:
    """Market order; executes at the best available price."""
    symbol: str
    side: Side
    quantity: Decimal
    client_order_id: Optional[str] = None

    order_type = OrderType.MARKET

    def __post_init__(self):
        object.__setattr__(self, "symbol", _normalize_symbol(self.symbol))
        object.__setattr__(self, "side", Side(self.side))
        _require_positive("quantity", self.quantity)


SubmitOrder = Union[LimitOrder, MarketOrder]


def build_submit_order(
    order_type: str,
    symbol: str,
    side: str,
    quantity: Decimal,
    price: Optional[Decimal] = None,
    client_order_id: Optional[str] = None,
) -> SubmitOrder:
    """Build the order variant matching order_type.

    Raises:
        ValueError: Unknown order type, missing price for a limit order, or a
            price given for a market order.
    """
    kind = OrderType(order_type.lower())
    if kind is OrderType.LIMIT:
        if price is None:
            raise ValueError("price is required for limit orders")
        return LimitOrder(symbol, Side(side.lower()), quantity, price, client_order_id)

    if price is not None:
        raise ValueError("price is not accepted for market orders")
    return MarketOrder(symbol, Side(side.lower()), quantity, client_order_id)


@dataclass(frozen=True)
class CancelOrderRequest:
    """Cancel by exchange order id, or by client order id when no order id is given."""
    symbol: str
    order_id: Optional[str] = None
    client_order_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "symbol", _normalize_symbol(self.symbol))
        if not self.order_id and not self.client_order_id:
            raise ValueError("either order id or client order id is required")
