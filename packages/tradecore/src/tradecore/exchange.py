"""Contract every exchange integration implements."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from tradecore.orders import CancelOrderRequest, SubmitOrder
from tradecore.stream import Stream
from tradecore.types import Balance, Market, Order, Trade


class Exchange(ABC):
    """Blocking REST-side view of one exchange account.

    Methods perform I/O and are expected to be called from a worker thread
    when used from async code.

    Attributes:
        name: Short exchange identifier stored with every synced record.
        max_history_window: Longest start/end span a history query accepts.
        is_margin: Records synced through this handle are margin records.
        is_isolated_margin: Margin records belong to an isolated pair.
    """

    name: str = ""
    max_history_window: timedelta = timedelta(days=7)

    def __init__(self, is_margin: bool = False, is_isolated_margin: bool = False):
        self.is_margin = is_margin or is_isolated_margin
        self.is_isolated_margin = is_isolated_margin

    @abstractmethod
    def query_account_balances(self) -> dict[str, Balance]:
        """Return currency -> Balance for the account."""

    @abstractmethod
    def query_markets(self) -> list[Market]:
        """Return every market listed on the exchange."""

    @abstractmethod
    def query_trades(
        self,
        symbol: str,
        start_time: datetime,
        end_time: datetime,
        cursor: Optional[str] = None,
    ) -> tuple[list[Trade], Optional[str]]:
        """Return one page of account trades and the next page cursor.

        Covers [start_time, end_time] inclusive. Page order is up to the
        exchange (Bybit returns newest first); callers must not assume the
        first page holds the oldest records.
        """

    @abstractmethod
    def query_closed_orders(
        self,
        symbol: str,
        start_time: datetime,
        end_time: datetime,
        cursor: Optional[str] = None,
    ) -> tuple[list[Order], Optional[str]]:
        """Return one page of order history and the next page cursor.

        Same range and page-order rules as query_trades.
        """

    @abstractmethod
    def new_stream(self) -> Stream:
        """Create a fresh, unconnected stream for this account."""

    # Order management is optional; sync only needs the queries above

    def query_open_orders(self, symbol: str) -> list[Order]:
        raise NotImplementedError(f"{self.name} does not support listing open orders")

    def submit_order(self, order: SubmitOrder) -> dict:
        raise NotImplementedError(f"{self.name} does not support placing orders")

    def cancel_order(self, request: CancelOrderRequest) -> dict:
        raise NotImplementedError(f"{self.name} does not support canceling orders")
