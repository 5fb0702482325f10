"""Test fixtures for database tests."""

from datetime import datetime, UTC
from decimal import Decimal

import pytest

from sync_db.database import DatabaseFactory
from sync_db.settings import DatabaseSettings
from tradecore.types import Order, Side, Trade


@pytest.fixture
def db_settings():
    """In-memory SQLite settings for testing."""
    return DatabaseSettings(db_type="sqlite", db_name=":memory:", echo_sql=False)


@pytest.fixture
def db(db_settings):
    """Create fresh database for each test."""
    database = DatabaseFactory(db_settings)
    database.create_tables()
    yield database
    database.drop_tables()


@pytest.fixture
def session(db):
    """Provide a session for each test; rolled back afterwards."""
    session = db.session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def make_trade(trade_id: str, minute: int = 0, symbol: str = "BTCUSDT", **overrides) -> Trade:
    fields = dict(
        exchange="bybit",
        trade_id=trade_id,
        order_id=f"order-{trade_id}",
        symbol=symbol,
        side=Side.BUY,
        price=Decimal("42000.5"),
        quantity=Decimal("0.01"),
        trade_time=datetime(2024, 1, 7, 15, minute, tzinfo=UTC),
        fee=Decimal("0.00001"),
        fee_currency="BTC",
    )
    fields.update(overrides)
    return Trade(**fields)


def make_order(order_id: str, status: str = "new", minute: int = 0, **overrides) -> Order:
    fields = dict(
        exchange="bybit",
        order_id=order_id,
        symbol="BTCUSDT",
        side=Side.SELL,
        order_type="limit",
        status=status,
        price=Decimal("43000"),
        quantity=Decimal("0.02"),
        executed_quantity=Decimal("0"),
        created_time=datetime(2024, 1, 7, 15, 0, tzinfo=UTC),
        updated_time=datetime(2024, 1, 7, 15, minute, tzinfo=UTC),
    )
    fields.update(overrides)
    return Order(**fields)


@pytest.fixture
def trade_factory():
    return make_trade


@pytest.fixture
def order_factory():
    return make_order
