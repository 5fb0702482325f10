"""
Exchange-agnostic domain types shared by adapters, storage and the sync app.

All value types are frozen dataclasses; snapshots fetched from an exchange are
shared as-is.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Optional


class Side(StrEnum):
    """Order/trade side."""
    BUY = "buy"
    SELL = "sell"


class OrderType(StrEnum):
    """Supported order types."""
    LIMIT = "limit"
    MARKET = "market"


class OrderStatus(StrEnum):
    """Normalized order lifecycle status."""
    NEW = "new"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    CANCELED = "canceled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Balance:
    """Holdings of one currency.

    total is what discovery looks at: funds locked in open orders still
    count as holdings.
    """
    currency: str
    available: Decimal = Decimal("0")
    locked: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.available + self.locked


@dataclass(frozen=True)
class Market:
    """A tradable pair as listed by the exchange."""
    symbol: str
    base_currency: str
    quote_currency: str
    tick_size: Optional[Decimal] = None
    step_size: Optional[Decimal] = None
    min_quantity: Optional[Decimal] = None


@dataclass(frozen=True)
class Trade:
    """A fill on one of the account's orders."""
    exchange: str
    trade_id: str
    order_id: str
    symbol: str
    side: Side
    price: Decimal
    quantity: Decimal
    trade_time: datetime
    quote_quantity: Decimal = Decimal("0")
    fee: Decimal = Decimal("0")
    fee_currency: str = ""
    is_maker: bool = False
    is_margin: bool = False
    is_isolated: bool = False


@dataclass(frozen=True)
class Order:
    """Latest known state of an account order."""
    exchange: str
    order_id: str
    symbol: str
    side: Side
    order_type: str
    status: str
    price: Decimal
    quantity: Decimal
    executed_quantity: Decimal
    created_time: datetime
    updated_time: datetime
    client_order_id: Optional[str] = None
    is_margin: bool = False
    is_isolated: bool = False
    # Exchange payload kept for debugging; excluded from equality
    raw: dict = field(default_factory=dict, compare=False, repr=False)
