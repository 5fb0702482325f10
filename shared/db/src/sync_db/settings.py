"""Database configuration with dual-database support (SQLite/PostgreSQL)."""

from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Where synced trades and orders are stored.

    Configuration can be provided via:
    - Direct database_url parameter (the YAML config's database_url lands here)
    - Individual components (db_type, db_host, etc.)
    - Environment variables with TRADESYNC_ prefix (TRADESYNC_DB_NAME, ...)
    """

    database_url: Optional[str] = None

    db_type: str = "sqlite"  # 'sqlite' or 'postgresql'
    db_host: Optional[str] = None
    db_port: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_name: str = "tradesync.db"

    # PostgreSQL only
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800

    echo_sql: bool = False

    model_config = SettingsConfigDict(env_prefix="TRADESYNC_", env_file=".env", extra="ignore")

    def get_database_url(self) -> str:
        """Build the SQLAlchemy URL.

        Raises:
            ValueError: PostgreSQL selected with connection fields missing, or
                an unknown db_type.
        """
        if self.database_url:
            return self.database_url

        if self.db_type == "sqlite":
            return f"sqlite+pysqlite:///{self.db_name}"

        if self.db_type == "postgresql":
            missing = [
                name
                for name in ("db_host", "db_port", "db_user", "db_password")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"PostgreSQL requires {', '.join(missing)}")
            return (
                f"postgresql+psycopg2://{self.db_user}:{quote_plus(self.db_password)}"
                f"@{self.db_host}:{self.db_port}/{self.db_name}"
            )

        raise ValueError(f"Unsupported database type: {self.db_type}")
