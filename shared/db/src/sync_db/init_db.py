"""Database initialization script.

Usage:
    tradesync-init-db [--database-url URL]
    python -m sync_db.init_db

Environment variables:
    TRADESYNC_DATABASE_URL: Full SQLAlchemy URL (overrides the rest)
    TRADESYNC_DB_TYPE: 'sqlite' (default) or 'postgresql'
    TRADESYNC_DB_NAME: Database name or file path
    TRADESYNC_DB_HOST, TRADESYNC_DB_PORT, TRADESYNC_DB_USER, TRADESYNC_DB_PASSWORD: PostgreSQL config
"""

import argparse
import sys
from typing import Optional

from sqlalchemy import inspect

from sync_db.settings import DatabaseSettings
from sync_db.database import DatabaseFactory
from sync_db.utils import redact_db_url


def initialize_database(settings: Optional[DatabaseSettings] = None) -> DatabaseFactory:
    """Create all tables and return the factory that did it."""
    db = DatabaseFactory(settings or DatabaseSettings())
    db.create_tables()
    return db


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Create the tradesync database tables")
    parser.add_argument("--database-url", help="SQLAlchemy URL (overrides env settings)")
    parser.add_argument(
        "--db-type",
        choices=["sqlite", "postgresql"],
        help="Database type (default: sqlite)",
    )
    parser.add_argument("--db-name", help="Database name or file path")
    parser.add_argument("--echo-sql", action="store_true", help="Echo SQL statements (debug mode)")
    args = parser.parse_args(argv)

    settings_kwargs = {}
    if args.database_url:
        settings_kwargs["database_url"] = args.database_url
    if args.db_type:
        settings_kwargs["db_type"] = args.db_type
    if args.db_name:
        settings_kwargs["db_name"] = args.db_name
    if args.echo_sql:
        settings_kwargs["echo_sql"] = True

    try:
        settings = DatabaseSettings(**settings_kwargs)
        print(f"Initializing database: {redact_db_url(settings.get_database_url())}")
        db = initialize_database(settings)
        print("Database initialized successfully.")
        print("Tables created:")
        for table in inspect(db.engine).get_table_names():
            print(f"  - {table}")
        return 0
    except Exception as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
