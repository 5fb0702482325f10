"""BybitExchange: tradecore Exchange backed by the Bybit v5 REST API."""

from datetime import datetime
from typing import Optional
import logging

from tradecore.exchange import Exchange
from tradecore.orders import CancelOrderRequest, SubmitOrder
from tradecore.types import Balance, Market, Order, Trade

from bybit_adapter.normalizer import BybitNormalizer, EXCHANGE_NAME, NormalizerContext, to_ms
from bybit_adapter.rest_client import BybitRestClient
from bybit_adapter.stream import BybitStream


logger = logging.getLogger(__name__)


class BybitExchange(Exchange):
    """One Bybit account.

    Example:
        exchange = BybitExchange(api_key="xxx", api_secret="yyy", testnet=True)
        balances = exchange.query_account_balances()
        trades, cursor = exchange.query_trades("BTCUSDT", start, end)
    """

    name = EXCHANGE_NAME

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        testnet: bool = False,
        is_margin: bool = False,
        is_isolated_margin: bool = False,
        rest_client: Optional[BybitRestClient] = None,
    ):
        super().__init__(is_margin=is_margin, is_isolated_margin=is_isolated_margin)
        self._api_key = api_key
        self._api_secret = api_secret
        self.testnet = testnet
        self._client = rest_client or BybitRestClient(
            api_key=api_key, api_secret=api_secret, testnet=testnet
        )
        self._normalizer = BybitNormalizer(
            NormalizerContext(is_margin=self.is_margin, is_isolated=self.is_isolated_margin)
        )

    @property
    def client(self) -> BybitRestClient:
        return self._client

    def query_account_balances(self) -> dict[str, Balance]:
        return self._normalizer.normalize_balances(self._client.get_wallet_balance())

    def query_markets(self) -> list[Market]:
        return [self._normalizer.normalize_market(i) for i in self._client.get_instruments()]

    def query_trades(
        self,
        symbol: str,
        start_time: datetime,
        end_time: datetime,
        cursor: Optional[str] = None,
    ) -> tuple[list[Trade], Optional[str]]:
        executions, next_cursor = self._client.get_executions(
            symbol=symbol,
            start_time=to_ms(start_time),
            end_time=to_ms(end_time),
            cursor=cursor,
        )
        trades = []
        for execution in executions:
            trade = self._normalizer.normalize_execution(execution)
            if trade is not None:
                trades.append(trade)
        return trades, next_cursor

    def query_closed_orders(
        self,
        symbol: str,
        start_time: datetime,
        end_time: datetime,
        cursor: Optional[str] = None,
    ) -> tuple[list[Order], Optional[str]]:
        raw_orders, next_cursor = self._client.get_order_history(
            symbol=symbol,
            start_time=to_ms(start_time),
            end_time=to_ms(end_time),
            cursor=cursor,
        )
        return [self._normalizer.normalize_order(o) for o in raw_orders], next_cursor

    def query_open_orders(self, symbol: str) -> list[Order]:
        return [self._normalizer.normalize_order(o) for o in self._client.get_open_orders(symbol)]

    def submit_order(self, order: SubmitOrder) -> dict:
        return self._client.place_order(order)

    def cancel_order(self, request: CancelOrderRequest) -> dict:
        return self._client.cancel_order(request)

    def new_stream(self) -> BybitStream:
        return BybitStream(
            api_key=self._api_key,
            api_secret=self._api_secret,
            testnet=self.testnet,
        )
