"""
tradecore - exchange-agnostic types and contracts for trade history sync.

This package has no I/O of its own: it defines the domain types, the
Exchange and Stream contracts adapters implement, order request variants,
and balance-driven symbol discovery.
"""

from tradecore.types import Balance, Market, Trade, Order, Side, OrderType, OrderStatus
from tradecore.discovery import FIAT_CURRENCIES, find_fiat_assets, find_possible_symbols
from tradecore.orders import LimitOrder, MarketOrder, SubmitOrder, CancelOrderRequest, build_submit_order
from tradecore.exchange import Exchange
from tradecore.stream import (
    Channel,
    LoginRequest,
    StandardStream,
    Stream,
    StreamConnectError,
    StreamError,
    StreamState,
    StreamStateError,
    SubscribeOperation,
    SubscribeOptions,
    SubscriptionRequest,
    UnsupportedChannelError,
)

__version__ = "0.1.0"

__all__ = [
    "Balance",
    "Market",
    "Trade",
    "Order",
    "Side",
    "OrderType",
    "OrderStatus",
    "FIAT_CURRENCIES",
    "find_fiat_assets",
    "find_possible_symbols",
    "LimitOrder",
    "MarketOrder",
    "SubmitOrder",
    "CancelOrderRequest",
    "build_submit_order",
    "Exchange",
    "Channel",
    "LoginRequest",
    "StandardStream",
    "Stream",
    "StreamConnectError",
    "StreamError",
    "StreamState",
    "StreamStateError",
    "SubscribeOperation",
    "SubscribeOptions",
    "SubscriptionRequest",
    "UnsupportedChannelError",
]
