"""Tests for ExchangeSession and Environment."""

import pytest

from bybit_adapter import BybitExchange
from tradesync.config import TradesyncConfig
from tradesync.environment import Environment, ExchangeSession
from tradesync.errors import SessionNotFoundError


class TestExchangeSession:
    def test_snapshot_requires_init(self, fake_exchange):
        session = ExchangeSession("main", fake_exchange())

        assert not session.initialized
        with pytest.raises(RuntimeError, match="not initialized"):
            session.balances()
        with pytest.raises(RuntimeError, match="not initialized"):
            session.markets()

    def test_init_fetches_balances_and_markets(self, fake_exchange, balances_factory, market_factory):
        exchange = fake_exchange(balances=balances_factory("USDT"), markets=[market_factory("BTC")])
        session = ExchangeSession("main", exchange)

        session.init()

        assert session.initialized
        assert list(session.balances()) == ["USDT"]
        assert [m.symbol for m in session.markets()] == ["BTCUSDT"]

    def test_snapshot_is_a_copy(self, fake_exchange, balances_factory):
        session = ExchangeSession("main", fake_exchange(balances=balances_factory("USDT")))
        session.init()

        session.balances().clear()

        assert list(session.balances()) == ["USDT"]

    def test_isolated_margin_follows_exchange(self, fake_exchange):
        session = ExchangeSession("iso", fake_exchange(is_isolated_margin=True), "BTCUSDT")

        assert session.isolated_margin
        assert session.exchange.is_margin

    def test_from_config_builds_bybit(self):
        config = TradesyncConfig(sessions=[{
            "name": "main",
            "api_key": "k",
            "api_secret": "s",
            "testnet": True,
            "isolated_margin": True,
            "isolated_margin_symbol": "BTCUSDT",
        }])

        session = ExchangeSession.from_config(config.sessions[0])

        assert isinstance(session.exchange, BybitExchange)
        assert session.isolated_margin
        assert session.isolated_margin_symbol == "BTCUSDT"


class TestEnvironment:
    def test_sessions_keep_order(self, fake_exchange):
        environment = Environment([
            ExchangeSession("b", fake_exchange()),
            ExchangeSession("a", fake_exchange()),
        ])

        assert [s.name for s in environment.sessions] == ["b", "a"]

    def test_unknown_session(self, fake_exchange):
        environment = Environment([ExchangeSession("main", fake_exchange())])

        with pytest.raises(SessionNotFoundError, match="'other' not found"):
            environment.session("other")

    def test_from_config_creates_database(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'sync.db'}"
        config = TradesyncConfig(database_url=url, sessions=[{"name": "main", "api_key": "k", "api_secret": "s"}])

        environment = Environment.from_config(config)
        try:
            assert environment.trade_sync is not None
            assert (tmp_path / "sync.db").exists()
            assert environment.session("main").exchange.name == "bybit"
        finally:
            environment.close()

    def test_from_config_without_database(self):
        config = TradesyncConfig(sessions=[{"name": "main"}])

        environment = Environment.from_config(config, with_database=False)

        assert environment.trade_sync is None
        assert environment.db is None
        environment.close()
