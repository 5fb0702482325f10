"""
Storage for synced trade and order history.

Supports SQLite (development) and PostgreSQL (production).
"""

from sync_db.settings import DatabaseSettings
from sync_db.database import DatabaseFactory
from sync_db.models import Base, TradeRecord, OrderRecord, SyncCursorRecord
from sync_db.repositories import TradeRepository, OrderRepository, SyncCursorRepository
from sync_db.utils import redact_db_url

__all__ = [
    "DatabaseSettings",
    "DatabaseFactory",
    "Base",
    "TradeRecord",
    "OrderRecord",
    "SyncCursorRecord",
    "TradeRepository",
    "OrderRepository",
    "SyncCursorRepository",
    "redact_db_url",
]
