"""Test fixtures for tradesync tests."""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

import pytest

from sync_db.database import DatabaseFactory
from sync_db.settings import DatabaseSettings
from tradecore.exchange import Exchange
from tradecore.stream import LoginRequest, Stream
from tradecore.types import Balance, Market, Order, OrderStatus, Side, Trade

from tradesync.environment import Environment, ExchangeSession
from tradesync.trade_sync import TradeSyncService


NOW = datetime(2024, 1, 20, 0, 0, tzinfo=UTC)


class FakeStream(Stream):
    """Stream over an in-memory transport."""

    def __init__(self):
        super().__init__()
        self.queue: list = []
        self.opened = False

    def _credentials(self):
        return "key", "secret"

    def _queue(self, request):
        if isinstance(request, LoginRequest):
            self.queue.insert(0, request)
        else:
            self.queue.append(request)

    def _unqueue(self, request):
        self.queue.remove(request)

    def _open(self, timeout: Optional[float]):
        self.opened = True

    def _shutdown(self):
        self.opened = False


class FakeExchange(Exchange):
    """In-memory exchange serving canned history in cursor pages.

    History is served oldest first unless newest_first is set, which is how
    Bybit orders its execution and order lists.

    Every call is appended to ``calls`` (and to ``log`` when one is shared
    between exchanges) so tests can assert on call order and arguments.
    """

    name = "fake"

    def __init__(
        self,
        balances: Optional[dict[str, Balance]] = None,
        markets: Optional[list[Market]] = None,
        trades: Optional[list[Trade]] = None,
        orders: Optional[list[Order]] = None,
        page_size: int = 100,
        log: Optional[list] = None,
        is_margin: bool = False,
        is_isolated_margin: bool = False,
        newest_first: bool = False,
    ):
        super().__init__(is_margin=is_margin, is_isolated_margin=is_isolated_margin)
        self.newest_first = newest_first
        self.balances = balances or {}
        self.markets = markets or []
        self.trades = list(trades or [])
        self.orders = list(orders or [])
        self.page_size = page_size
        self.calls: list[tuple] = []
        self.log = log if log is not None else []
        self.fail: dict[tuple[str, str], Exception] = {}
        self.streams: list[FakeStream] = []

    def _record(self, *call):
        self.calls.append(call)
        self.log.append((self, *call))

    def _page(self, kind, symbol, records, cursor):
        if (kind, symbol) in self.fail:
            raise self.fail[(kind, symbol)]
        offset = int(cursor or 0)
        page = records[offset:offset + self.page_size]
        next_offset = offset + self.page_size
        return page, (str(next_offset) if next_offset < len(records) else None)

    def query_account_balances(self):
        self._record("balances")
        if ("balances", "") in self.fail:
            raise self.fail[("balances", "")]
        return dict(self.balances)

    def query_markets(self):
        self._record("markets")
        return list(self.markets)

    def query_trades(self, symbol, start_time, end_time, cursor=None):
        self._record("trades", symbol, start_time, end_time, cursor)
        matching = sorted(
            (t for t in self.trades if t.symbol == symbol and start_time <= t.trade_time <= end_time),
            key=lambda t: t.trade_time,
            reverse=self.newest_first,
        )
        return self._page("trades", symbol, matching, cursor)

    def query_closed_orders(self, symbol, start_time, end_time, cursor=None):
        self._record("orders", symbol, start_time, end_time, cursor)
        matching = sorted(
            (o for o in self.orders if o.symbol == symbol and start_time <= o.updated_time <= end_time),
            key=lambda o: o.updated_time,
            reverse=self.newest_first,
        )
        return self._page("orders", symbol, matching, cursor)

    def query_open_orders(self, symbol):
        self._record("open_orders", symbol)
        return [o for o in self.orders if o.symbol == symbol and o.status == OrderStatus.NEW]

    def new_stream(self):
        stream = FakeStream()
        self.streams.append(stream)
        return stream


def make_trade(trade_id: str, when: datetime, symbol: str = "BTCUSDT", **overrides) -> Trade:
    fields = dict(
        exchange="fake",
        trade_id=trade_id,
        order_id=f"order-{trade_id}",
        symbol=symbol,
        side=Side.BUY,
        price=Decimal("42000"),
        quantity=Decimal("0.01"),
        trade_time=when,
    )
    fields.update(overrides)
    return Trade(**fields)


def make_order(order_id: str, when: datetime, symbol: str = "BTCUSDT", status: str = OrderStatus.FILLED, **overrides) -> Order:
    fields = dict(
        exchange="fake",
        order_id=order_id,
        symbol=symbol,
        side=Side.BUY,
        order_type="limit",
        status=status,
        price=Decimal("42000"),
        quantity=Decimal("0.01"),
        executed_quantity=Decimal("0.01") if status == OrderStatus.FILLED else Decimal("0"),
        created_time=when,
        updated_time=when,
    )
    fields.update(overrides)
    return Order(**fields)


def holding_balances(*currencies: str) -> dict[str, Balance]:
    return {c: Balance(currency=c, available=Decimal("1")) for c in currencies}


def spot_market(base: str, quote: str = "USDT") -> Market:
    return Market(symbol=f"{base}{quote}", base_currency=base, quote_currency=quote)


@pytest.fixture
def db():
    """Fresh in-memory database for each test."""
    database = DatabaseFactory(DatabaseSettings(db_type="sqlite", db_name=":memory:"))
    database.create_tables()
    yield database
    database.drop_tables()
    database.dispose()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def trade_sync(db, clock):
    return TradeSyncService(db, clock=clock)


@pytest.fixture
def build_environment(db, trade_sync):
    """Environment over fake sessions: build_environment(("main", exchange), ...)."""

    def _build(*sessions):
        built = []
        for entry in sessions:
            name, exchange, *rest = entry
            built.append(ExchangeSession(name, exchange, rest[0] if rest else None))
        return Environment(built, trade_sync=trade_sync, db=db)

    return _build


@pytest.fixture
def sample_config_yaml(tmp_path):
    """Write a YAML config and return its path."""

    def _write(text: str) -> str:
        path = tmp_path / "tradesync.yaml"
        path.write_text(text)
        return str(path)

    return _write


@pytest.fixture
def trade_factory():
    return make_trade


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def fake_exchange():
    """Build a FakeExchange: fake_exchange(trades=[...], page_size=2)."""
    return FakeExchange


@pytest.fixture
def market_factory():
    return spot_market


@pytest.fixture
def balances_factory():
    return holding_balances
