"""SQLAlchemy ORM models for synced account history.

Three tables:
- trades: account fills, unique per (exchange, symbol, trade_id)
- orders: latest known state per (exchange, symbol, order_id)
- sync_cursors: how far history is complete per (exchange, symbol, kind, margin mode)
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Boolean,
    DateTime,
    Numeric,
    Index,
    UniqueConstraint,
    BigInteger,
    Integer,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TradeRecord(Base):
    """One fill of an account order."""

    __tablename__ = "trades"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    exchange: Mapped[str] = mapped_column(String(20), nullable=False)
    symbol: Mapped[str] = mapped_column(String(30), nullable=False)
    trade_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    side: Mapped[str] = mapped_column(String(4), nullable=False)  # 'buy' or 'sell'
    price: Mapped[Decimal] = mapped_column(Numeric(30, 12), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(30, 12), nullable=False)
    quote_quantity: Mapped[Decimal] = mapped_column(Numeric(30, 12), default=Decimal("0"))
    fee: Mapped[Decimal] = mapped_column(Numeric(30, 12), default=Decimal("0"))
    fee_currency: Mapped[str] = mapped_column(String(20), default="")
    is_maker: Mapped[bool] = mapped_column(Boolean, default=False)
    is_margin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_isolated: Mapped[bool] = mapped_column(Boolean, default=False)
    trade_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint("exchange", "symbol", "trade_id", name="uq_trades_exchange_symbol_trade"),
        Index("ix_trades_exchange_symbol_time", "exchange", "symbol", "trade_time"),
    )


class OrderRecord(Base):
    """Latest synced state of an account order."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    exchange: Mapped[str] = mapped_column(String(20), nullable=False)
    symbol: Mapped[str] = mapped_column(String(30), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    client_order_id: Mapped[Optional[str]] = mapped_column(String(64))
    side: Mapped[str] = mapped_column(String(4), nullable=False)
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(30, 12), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(30, 12), nullable=False)
    executed_quantity: Mapped[Decimal] = mapped_column(Numeric(30, 12), default=Decimal("0"))
    is_margin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_isolated: Mapped[bool] = mapped_column(Boolean, default=False)
    created_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("exchange", "symbol", "order_id", name="uq_orders_exchange_symbol_order"),
        Index("ix_orders_exchange_symbol_updated", "exchange", "symbol", "updated_time"),
    )


class SyncCursorRecord(Base):
    """End of the last fully synced history window for one key."""

    __tablename__ = "sync_cursors"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    exchange: Mapped[str] = mapped_column(String(20), nullable=False)
    symbol: Mapped[str] = mapped_column(String(30), nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)  # 'trades' or 'orders'
    is_margin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_isolated: Mapped[bool] = mapped_column(Boolean, default=False)
    synced_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint(
            "exchange", "symbol", "kind", "is_margin", "is_isolated",
            name="uq_sync_cursors_key",
        ),
    )
