"""Shared fixtures for integration tests.

A BybitExchange over a fake REST client that serves raw Bybit v5 payloads
filtered by the requested time range, so the whole path from wire format
through normalization, windowed sync and storage runs for real.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from bybit_adapter import BybitExchange, BybitRestClient
from sync_db import DatabaseFactory, DatabaseSettings


def ms(ts: datetime) -> str:
    return str(int(ts.timestamp() * 1000))


def raw_execution(exec_id: str, when: datetime, symbol: str = "BTCUSDT", exec_type: str = "Trade") -> dict:
    return {
        "symbol": symbol,
        "execId": exec_id,
        "orderId": f"order-{exec_id}",
        "side": "Buy",
        "execPrice": "42000.5",
        "execQty": "0.01",
        "execValue": "420.005",
        "execFee": "0.00001",
        "feeCurrency": symbol[:-4],
        "execType": exec_type,
        "execTime": ms(when),
        "isMaker": False,
    }


def raw_order(order_id: str, when: datetime, symbol: str = "BTCUSDT", status: str = "Filled") -> dict:
    return {
        "orderId": order_id,
        "orderLinkId": "",
        "symbol": symbol,
        "price": "42000",
        "qty": "0.01",
        "side": "Buy",
        "orderStatus": status,
        "orderType": "Limit",
        "cumExecQty": "0.01" if status == "Filled" else "0",
        "createdTime": ms(when),
        "updatedTime": ms(when),
    }


class FakeBybitApi:
    """Backs a MagicMock(spec=BybitRestClient) with in-memory payloads."""

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.coins = [
            {"coin": "USDT", "walletBalance": "1000", "locked": "0"},
            {"coin": "BTC", "walletBalance": "0.5", "locked": "0"},
            {"coin": "ETH", "walletBalance": "1", "locked": "1"},
        ]
        self.instruments = [
            {"symbol": "ETHUSDT", "baseCoin": "ETH", "quoteCoin": "USDT"},
            {"symbol": "BTCUSDT", "baseCoin": "BTC", "quoteCoin": "USDT"},
            {"symbol": "XRPUSDT", "baseCoin": "XRP", "quoteCoin": "USDT"},
        ]
        self.executions: list[dict] = []
        self.orders: list[dict] = []
        self.requests: list[tuple] = []
        self.newest_first = False
        self.fail_cursor_once: str | None = None

    def _page(self, records, time_key, symbol, start_time, end_time, cursor):
        if cursor is not None and cursor == self.fail_cursor_once:
            self.fail_cursor_once = None
            raise ConnectionError("connection reset by peer")
        matching = sorted(
            (r for r in records if r["symbol"] == symbol and start_time <= int(r[time_key]) <= end_time),
            key=lambda r: int(r[time_key]),
            reverse=self.newest_first,
        )
        offset = int(cursor or 0)
        page = matching[offset:offset + self.page_size]
        next_offset = offset + self.page_size
        return page, (str(next_offset) if next_offset < len(matching) else None)

    def get_executions(self, symbol, start_time, end_time, limit=100, cursor=None):
        self.requests.append(("executions", symbol, start_time, end_time, cursor))
        return self._page(self.executions, "execTime", symbol, start_time, end_time, cursor)

    def get_order_history(self, symbol, start_time, end_time, limit=50, cursor=None):
        self.requests.append(("orders", symbol, start_time, end_time, cursor))
        return self._page(self.orders, "updatedTime", symbol, start_time, end_time, cursor)

    def client(self) -> MagicMock:
        client = MagicMock(spec=BybitRestClient)
        client.get_wallet_balance.side_effect = lambda *a, **kw: list(self.coins)
        client.get_instruments.side_effect = lambda *a, **kw: list(self.instruments)
        client.get_executions.side_effect = self.get_executions
        client.get_order_history.side_effect = self.get_order_history
        return client


@pytest.fixture
def bybit_api():
    return FakeBybitApi()


@pytest.fixture
def bybit_exchange(bybit_api):
    return BybitExchange(api_key="key", api_secret="secret", rest_client=bybit_api.client())


@pytest.fixture
def db():
    database = DatabaseFactory(DatabaseSettings(db_type="sqlite", db_name=":memory:"))
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def raw():
    """Payload builders: raw.execution(...), raw.order(...)."""

    class _Raw:
        execution = staticmethod(raw_execution)
        order = staticmethod(raw_order)

    return _Raw
