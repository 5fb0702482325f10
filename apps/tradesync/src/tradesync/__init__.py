"""
Trade history sync for exchange accounts.

Discovers the symbols each configured session holds, pulls their trade and
order history into the sync database, and offers small order/stream
commands on top of the same sessions.
"""

from tradesync.config import SessionConfig, SyncConfig, TradesyncConfig, load_config
from tradesync.environment import Environment, ExchangeSession
from tradesync.errors import ConfigError, SessionNotFoundError, TradesyncError
from tradesync.sync import SyncOrchestrator, resolve_start_time
from tradesync.trade_sync import TradeSyncService

__all__ = [
    # Config
    "SessionConfig",
    "SyncConfig",
    "TradesyncConfig",
    "load_config",
    # Environment
    "Environment",
    "ExchangeSession",
    # Errors
    "TradesyncError",
    "ConfigError",
    "SessionNotFoundError",
    # Sync
    "SyncOrchestrator",
    "resolve_start_time",
    "TradeSyncService",
]
