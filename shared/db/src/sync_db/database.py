"""Engine and session management for the sync database."""

from contextlib import contextmanager
from typing import Generator, Optional
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from sync_db.settings import DatabaseSettings
from sync_db.models import Base
from sync_db.utils import redact_db_url


logger = logging.getLogger(__name__)


class DatabaseFactory:
    """Owns one engine and hands out transactional sessions.

    The application builds one factory and passes it to whoever writes.

    Usage:
        db = DatabaseFactory(DatabaseSettings(database_url="sqlite:///sync.db"))
        db.create_tables()

        with db.get_session() as session:
            TradeRepository(session).bulk_insert(trades)
            # Commits automatically on success
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self.settings = settings or DatabaseSettings()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        """Lazy-load SQLAlchemy engine."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Lazy-load session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine,
            )
        return self._session_factory

    def _create_engine(self) -> Engine:
        url = self.settings.get_database_url()
        logger.info(f"Opening database {redact_db_url(url)}")

        if url.startswith("sqlite"):
            kwargs = {
                "echo": self.settings.echo_sql,
                # Sessions are used from asyncio.to_thread workers
                "connect_args": {"check_same_thread": False},
            }
            if ":memory:" in url:
                kwargs["poolclass"] = StaticPool
            return create_engine(url, **kwargs)

        return create_engine(
            url,
            echo=self.settings.echo_sql,
            poolclass=QueuePool,
            pool_size=self.settings.pool_size,
            max_overflow=self.settings.max_overflow,
            pool_timeout=self.settings.pool_timeout,
            pool_recycle=self.settings.pool_recycle,
        )

    def create_tables(self) -> None:
        """Create all tables defined in models."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution."""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """Close pooled connections."""
        if self._engine is not None:
            self._engine.dispose()

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Session that commits on success and rolls back on exception."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
