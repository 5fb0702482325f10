"""Convert Bybit REST payloads to tradecore types.

Bybit API Reference:
- Wallet Balance: https://bybit-exchange.github.io/docs/v5/account/wallet-balance
- Instruments Info: https://bybit-exchange.github.io/docs/v5/market/instrument
- Execution List: https://bybit-exchange.github.io/docs/v5/order/execution
- Order History: https://bybit-exchange.github.io/docs/v5/order/order-list
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from decimal import Decimal, InvalidOperation
from typing import Optional
import logging

from tradecore.types import Balance, Market, Order, OrderStatus, Side, Trade


logger = logging.getLogger(__name__)

EXCHANGE_NAME = "bybit"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)

_ORDER_STATUS = {
    "New": OrderStatus.NEW,
    "PartiallyFilled": OrderStatus.PARTIALLY_FILLED,
    "Filled": OrderStatus.FILLED,
    "Cancelled": OrderStatus.CANCELED,
    "PartiallyFilledCanceled": OrderStatus.CANCELED,
    "Deactivated": OrderStatus.CANCELED,
    "Rejected": OrderStatus.REJECTED,
}


def _decimal(value, default: str = "0") -> Decimal:
    """Parse Bybit's string numbers; empty strings mean zero."""
    if value is None or value == "":
        return Decimal(default)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal(default)


def _from_ms(value) -> datetime:
    return _EPOCH + int(value or 0) * _ONE_MS


def to_ms(ts: datetime) -> int:
    """datetime -> epoch milliseconds, exact (naive input is taken as UTC)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return (ts - _EPOCH) // _ONE_MS


@dataclass
class NormalizerContext:
    """Margin tags stamped on every synced record."""

    is_margin: bool = False
    is_isolated: bool = False


class BybitNormalizer:
    """Converts raw Bybit REST payloads to tradecore value objects.

    Responsibilities:
    - Convert string values to appropriate types (Decimal, datetime)
    - Map Bybit enums (side, orderStatus) to tradecore enums
    - Tag records with the exchange name and margin flags
    """

    def __init__(self, context: Optional[NormalizerContext] = None):
        self._context = context or NormalizerContext()

    def normalize_balances(self, coins: list[dict]) -> dict[str, Balance]:
        """Convert wallet coin entries to currency -> Balance.

        Bybit coin entry:
        {
            "coin": "USDT",
            "walletBalance": "1000.5",
            "locked": "20",
            ...
        }
        walletBalance already includes locked funds.
        """
        balances = {}
        for coin in coins:
            currency = coin.get("coin", "")
            if not currency:
                continue
            total = _decimal(coin.get("walletBalance"))
            locked = _decimal(coin.get("locked"))
            balances[currency] = Balance(
                currency=currency,
                available=total - locked,
                locked=locked,
            )
        return balances

    def normalize_market(self, instrument: dict) -> Market:
        """Convert an instrument entry to Market.

        Bybit spot instrument:
        {
            "symbol": "BTCUSDT",
            "baseCoin": "BTC",
            "quoteCoin": "USDT",
            "status": "Trading",
            "lotSizeFilter": {"basePrecision": "0.000001", "minOrderQty": "0.000048"},
            "priceFilter": {"tickSize": "0.01"}
        }
        """
        lot = instrument.get("lotSizeFilter", {}) or {}
        price = instrument.get("priceFilter", {}) or {}
        return Market(
            symbol=instrument.get("symbol", ""),
            base_currency=instrument.get("baseCoin", ""),
            quote_currency=instrument.get("quoteCoin", ""),
            tick_size=_decimal(price.get("tickSize")) if price.get("tickSize") else None,
            step_size=_decimal(lot.get("basePrecision")) if lot.get("basePrecision") else None,
            min_quantity=_decimal(lot.get("minOrderQty")) if lot.get("minOrderQty") else None,
        )

    def normalize_execution(self, execution: dict) -> Optional[Trade]:
        """Convert an execution entry to Trade.

        Only execType == "Trade" entries are account fills; funding and
        settlement entries return None.

        Bybit execution entry:
        {
            "symbol": "BTCUSDT",
            "execId": "2100000000007764263",
            "orderId": "1456011470574347520",
            "side": "Buy",
            "execPrice": "42500.5",
            "execQty": "0.01",
            "execValue": "425.005",
            "execFee": "0.00001",
            "feeCurrency": "BTC",
            "execType": "Trade",
            "execTime": "1704639600000",
            "isMaker": false
        }
        """
        if execution.get("execType", "Trade") != "Trade":
            return None

        return Trade(
            exchange=EXCHANGE_NAME,
            trade_id=str(execution.get("execId", "")),
            order_id=str(execution.get("orderId", "")),
            symbol=execution.get("symbol", ""),
            side=Side(execution.get("side", "").lower()),
            price=_decimal(execution.get("execPrice")),
            quantity=_decimal(execution.get("execQty")),
            quote_quantity=_decimal(execution.get("execValue")),
            fee=_decimal(execution.get("execFee")),
            fee_currency=execution.get("feeCurrency", "") or "",
            is_maker=bool(execution.get("isMaker", False)),
            trade_time=_from_ms(execution.get("execTime")),
            is_margin=self._context.is_margin,
            is_isolated=self._context.is_isolated,
        )

    def normalize_order(self, order: dict) -> Order:
        """Convert an order history entry to Order.

        Bybit order entry:
        {
            "orderId": "1456011470574347520",
            "orderLinkId": "my-order-1",
            "symbol": "BTCUSDT",
            "price": "42500",
            "qty": "0.01",
            "side": "Buy",
            "orderStatus": "Filled",
            "orderType": "Limit",
            "cumExecQty": "0.01",
            "createdTime": "1704639600000",
            "updatedTime": "1704639601000"
        }
        """
        raw_status = order.get("orderStatus", "")
        status = _ORDER_STATUS.get(raw_status)
        if status is None:
            logger.warning(f"Unknown Bybit order status {raw_status!r} for order {order.get('orderId')}")

        return Order(
            exchange=EXCHANGE_NAME,
            order_id=str(order.get("orderId", "")),
            client_order_id=order.get("orderLinkId") or None,
            symbol=order.get("symbol", ""),
            side=Side(order.get("side", "").lower()),
            order_type=order.get("orderType", "").lower(),
            status=str(status) if status else raw_status.lower(),
            price=_decimal(order.get("price")),
            quantity=_decimal(order.get("qty")),
            executed_quantity=_decimal(order.get("cumExecQty")),
            created_time=_from_ms(order.get("createdTime")),
            updated_time=_from_ms(order.get("updatedTime") or order.get("createdTime")),
            is_margin=self._context.is_margin,
            is_isolated=self._context.is_isolated,
            raw=order,
        )
