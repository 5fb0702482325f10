"""Test fixtures for bybit_adapter tests."""

import json
import threading
from unittest.mock import patch

import pytest


@pytest.fixture
def sample_coins():
    """Coin entries from /v5/account/wallet-balance."""
    return [
        {"coin": "USDT", "walletBalance": "1000.5", "locked": "20"},
        {"coin": "BTC", "walletBalance": "0.5", "locked": ""},
        {"coin": "", "walletBalance": "1"},
    ]


@pytest.fixture
def sample_instrument():
    """Spot instrument from /v5/market/instruments-info."""
    return {
        "symbol": "BTCUSDT",
        "baseCoin": "BTC",
        "quoteCoin": "USDT",
        "status": "Trading",
        "lotSizeFilter": {"basePrecision": "0.000001", "minOrderQty": "0.000048"},
        "priceFilter": {"tickSize": "0.01"},
    }


@pytest.fixture
def sample_executions():
    """Execution entries from /v5/execution/list."""
    return [
        {
            "symbol": "BTCUSDT",
            "execId": "exec-1",
            "orderId": "order-1",
            "side": "Buy",
            "execPrice": "42500.5",
            "execQty": "0.01",
            "execValue": "425.005",
            "execFee": "0.00001",
            "feeCurrency": "BTC",
            "execType": "Trade",
            "execTime": "1704639600000",
            "isMaker": True,
        },
        {
            "symbol": "BTCUSDT",
            "execId": "exec-2",
            "orderId": "order-2",
            "side": "Sell",
            "execPrice": "42501",
            "execQty": "0.02",
            "execFee": "0",
            "execType": "Funding",
            "execTime": "1704639601000",
        },
    ]


@pytest.fixture
def sample_order():
    """Order entry from /v5/order/history."""
    return {
        "orderId": "order-1",
        "orderLinkId": "my-order-1",
        "symbol": "BTCUSDT",
        "price": "42500",
        "qty": "0.01",
        "side": "Buy",
        "orderStatus": "Filled",
        "orderType": "Limit",
        "cumExecQty": "0.01",
        "createdTime": "1704639600000",
        "updatedTime": "1704639601000",
    }


class FakeApp:
    """Stands in for websocket.WebSocketApp; run_forever runs on the service thread.

    Sockets whose URL contains one of ``fail_urls`` fail to open with
    ``fail_with``; ``fail_urls = None`` fails every socket.
    """

    fail_with = None
    fail_urls = None
    instances: list = []

    def __init__(self, url, on_open=None, on_message=None, on_error=None, on_close=None):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.sent = []
        self._stop = threading.Event()
        FakeApp.instances.append(self)

    def _should_fail(self) -> bool:
        if FakeApp.fail_with is None:
            return False
        return FakeApp.fail_urls is None or any(part in self.url for part in FakeApp.fail_urls)

    def run_forever(self):
        if self._should_fail():
            self.on_error(self, FakeApp.fail_with)
            self.on_close(self, None, None)
            return
        self.on_open(self)
        self._stop.wait()
        self.on_close(self, 1000, "bye")

    def send(self, data):
        self.sent.append(json.loads(data))

    def close(self):
        self._stop.set()

    def receive(self, payload: str):
        self.on_message(self, payload)

    def drop(self):
        """Remote side hangs up."""
        self._stop.set()


@pytest.fixture
def fake_app():
    """Patch websocket-client's WebSocketApp with FakeApp."""
    FakeApp.fail_with = None
    FakeApp.fail_urls = None
    FakeApp.instances = []
    with patch("bybit_adapter.websocket_service.websocket.WebSocketApp", FakeApp):
        yield FakeApp
    FakeApp.fail_with = None
    FakeApp.fail_urls = None
