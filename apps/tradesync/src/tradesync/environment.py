"""Runtime environment: configured exchange sessions plus the sync engine.

Built once by the CLI from a TradesyncConfig and passed explicitly to the
orchestrator and command handlers.
"""

import logging
from typing import Optional

from bybit_adapter import BybitExchange
from sync_db import DatabaseFactory, DatabaseSettings
from tradecore.exchange import Exchange
from tradecore.types import Balance, Market

from tradesync.config import SessionConfig, TradesyncConfig
from tradesync.errors import SessionNotFoundError
from tradesync.trade_sync import TradeSyncService


logger = logging.getLogger(__name__)


class ExchangeSession:
    """One named exchange account and its last account snapshot.

    init() fetches balances and markets; calling it again replaces both.
    """

    def __init__(self, name: str, exchange: Exchange, isolated_margin_symbol: Optional[str] = None):
        self.name = name
        self.exchange = exchange
        self.isolated_margin_symbol = isolated_margin_symbol
        self._balances: dict[str, Balance] = {}
        self._markets: list[Market] = []
        self._initialized = False

    @classmethod
    def from_config(cls, config: SessionConfig) -> "ExchangeSession":
        exchange = BybitExchange(
            api_key=config.api_key,
            api_secret=config.api_secret,
            testnet=config.testnet,
            is_margin=config.margin,
            is_isolated_margin=config.isolated_margin,
        )
        return cls(config.name, exchange, config.isolated_margin_symbol)

    @property
    def isolated_margin(self) -> bool:
        return self.exchange.is_isolated_margin

    @property
    def initialized(self) -> bool:
        return self._initialized

    def init(self) -> None:
        """Fetch the balance snapshot and market list (blocking)."""
        logger.info(f"Initializing session {self.name} ({self.exchange.name})")
        balances = self.exchange.query_account_balances()
        markets = self.exchange.query_markets()
        self._balances = dict(balances)
        self._markets = list(markets)
        self._initialized = True
        logger.debug(f"Session {self.name}: {len(self._balances)} balances, {len(self._markets)} markets")

    def balances(self) -> dict[str, Balance]:
        self._require_init()
        return dict(self._balances)

    def markets(self) -> list[Market]:
        self._require_init()
        return list(self._markets)

    def _require_init(self) -> None:
        if not self._initialized:
            raise RuntimeError(f"session {self.name} is not initialized")

    def __repr__(self) -> str:
        return f"ExchangeSession(name={self.name!r}, exchange={self.exchange.name!r})"


class Environment:
    """Sessions in configuration order, the sync engine and its database."""

    def __init__(
        self,
        sessions: list[ExchangeSession],
        trade_sync: Optional[TradeSyncService] = None,
        db: Optional[DatabaseFactory] = None,
    ):
        self._sessions = list(sessions)
        self.trade_sync = trade_sync
        self.db = db

    @classmethod
    def from_config(cls, config: TradesyncConfig, with_database: bool = True) -> "Environment":
        """Build sessions and, unless with_database is False, the database and engine."""
        sessions = [ExchangeSession.from_config(s) for s in config.sessions]
        if not with_database:
            return cls(sessions)

        settings = DatabaseSettings(database_url=config.database_url) if config.database_url else DatabaseSettings()
        db = DatabaseFactory(settings)
        db.create_tables()
        return cls(sessions, TradeSyncService(db), db)

    @property
    def sessions(self) -> list[ExchangeSession]:
        return list(self._sessions)

    def session(self, name: str) -> ExchangeSession:
        """Look up a session by name.

        Raises:
            SessionNotFoundError: No session has that name.
        """
        for session in self._sessions:
            if session.name == name:
                return session
        raise SessionNotFoundError(name, [s.name for s in self._sessions])

    def close(self) -> None:
        if self.db is not None:
            self.db.dispose()
