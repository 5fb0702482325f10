"""Repositories for synced trades, orders and sync cursors.

Writes are idempotent bulk statements so a page fetched twice (a re-run, or
an overlapping history window) never creates duplicates.
"""

from datetime import datetime, UTC
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from tradecore.types import Order, Trade

from sync_db.models import OrderRecord, SyncCursorRecord, TradeRecord, utc_now


# Fields an order re-sync may change
ORDER_MUTABLE_COLUMNS = ("status", "executed_quantity", "updated_time", "price", "quantity")


def _as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if ts is not None and ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def trade_to_row(trade: Trade) -> dict:
    return {
        "exchange": trade.exchange,
        "symbol": trade.symbol,
        "trade_id": trade.trade_id,
        "order_id": trade.order_id,
        "side": str(trade.side),
        "price": trade.price,
        "quantity": trade.quantity,
        "quote_quantity": trade.quote_quantity,
        "fee": trade.fee,
        "fee_currency": trade.fee_currency,
        "is_maker": trade.is_maker,
        "is_margin": trade.is_margin,
        "is_isolated": trade.is_isolated,
        "trade_time": trade.trade_time,
        "created_at": utc_now(),
    }


def order_to_row(order: Order) -> dict:
    return {
        "exchange": order.exchange,
        "symbol": order.symbol,
        "order_id": order.order_id,
        "client_order_id": order.client_order_id,
        "side": str(order.side),
        "order_type": str(order.order_type),
        "status": str(order.status),
        "price": order.price,
        "quantity": order.quantity,
        "executed_quantity": order.executed_quantity,
        "is_margin": order.is_margin,
        "is_isolated": order.is_isolated,
        "created_time": order.created_time,
        "updated_time": order.updated_time,
    }


def _dialect_insert(session: Session, model):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Idempotent inserts are not supported on {dialect}")


class TradeRepository:
    """Read and write synced trades.

    Usage:
        with db.get_session() as session:
            repo = TradeRepository(session)
            repo.bulk_insert(trades)
    """

    def __init__(self, session: Session):
        self.session = session

    def count(self, exchange: Optional[str] = None, symbol: Optional[str] = None) -> int:
        stmt = select(func.count(TradeRecord.id))
        if exchange is not None:
            stmt = stmt.where(TradeRecord.exchange == exchange)
        if symbol is not None:
            stmt = stmt.where(TradeRecord.symbol == symbol)
        return self.session.execute(stmt).scalar_one()

    def bulk_insert(self, trades: List[Trade]) -> int:
        """Insert trades, skipping any (exchange, symbol, trade_id) already stored.

        Returns:
            Number of trades inserted (excluding duplicates).
        """
        if not trades:
            return 0

        stmt = _dialect_insert(self.session, TradeRecord).values([trade_to_row(t) for t in trades])
        stmt = stmt.on_conflict_do_nothing(index_elements=["exchange", "symbol", "trade_id"])

        result = self.session.execute(stmt)
        self.session.flush()
        return result.rowcount if result.rowcount else 0


class OrderRepository:
    """Read and upsert synced orders."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_order_id(self, exchange: str, symbol: str, order_id: str) -> Optional[OrderRecord]:
        stmt = select(OrderRecord).where(
            OrderRecord.exchange == exchange,
            OrderRecord.symbol == symbol,
            OrderRecord.order_id == order_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def count(self, exchange: Optional[str] = None, symbol: Optional[str] = None) -> int:
        stmt = select(func.count(OrderRecord.id))
        if exchange is not None:
            stmt = stmt.where(OrderRecord.exchange == exchange)
        if symbol is not None:
            stmt = stmt.where(OrderRecord.symbol == symbol)
        return self.session.execute(stmt).scalar_one()

    def bulk_upsert(self, orders: List[Order]) -> int:
        """Insert orders; an existing (exchange, symbol, order_id) gets its mutable fields updated.

        Returns:
            Number of rows inserted or updated.
        """
        if not orders:
            return 0

        # A page may carry the same order twice; the later entry wins
        rows = {}
        for order in orders:
            rows[(order.exchange, order.symbol, order.order_id)] = order_to_row(order)

        stmt = _dialect_insert(self.session, OrderRecord).values(list(rows.values()))
        stmt = stmt.on_conflict_do_update(
            index_elements=["exchange", "symbol", "order_id"],
            set_={column: stmt.excluded[column] for column in ORDER_MUTABLE_COLUMNS},
        )

        result = self.session.execute(stmt)
        self.session.flush()
        return result.rowcount if result.rowcount else 0


class SyncCursorRepository:
    """Track how far history has been fetched completely.

    A cursor only moves once every page of a history window is stored, so a
    run that stops part way through a window fetches that whole window again
    on the next run, whatever order the exchange returns pages in.
    """

    def __init__(self, session: Session):
        self.session = session

    def _key(self, exchange: str, symbol: str, kind: str, is_margin: bool, is_isolated: bool):
        return (
            SyncCursorRecord.exchange == exchange,
            SyncCursorRecord.symbol == symbol,
            SyncCursorRecord.kind == kind,
            SyncCursorRecord.is_margin == is_margin,
            SyncCursorRecord.is_isolated == is_isolated,
        )

    def get_synced_until(
        self,
        exchange: str,
        symbol: str,
        kind: str,
        is_margin: bool = False,
        is_isolated: bool = False,
    ) -> Optional[datetime]:
        """End of the last completed window for the key, or None before the first one."""
        stmt = select(SyncCursorRecord.synced_until).where(
            *self._key(exchange, symbol, kind, is_margin, is_isolated)
        )
        return _as_utc(self.session.execute(stmt).scalar_one_or_none())

    def advance(
        self,
        exchange: str,
        symbol: str,
        kind: str,
        synced_until: datetime,
        is_margin: bool = False,
        is_isolated: bool = False,
    ) -> None:
        """Record that history up to synced_until is complete; never moves backwards."""
        current = self.get_synced_until(exchange, symbol, kind, is_margin, is_isolated)
        if current is not None and current >= synced_until:
            return

        stmt = _dialect_insert(self.session, SyncCursorRecord).values(
            exchange=exchange,
            symbol=symbol,
            kind=kind,
            is_margin=is_margin,
            is_isolated=is_isolated,
            synced_until=synced_until,
            updated_at=utc_now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["exchange", "symbol", "kind", "is_margin", "is_isolated"],
            set_={"synced_until": stmt.excluded.synced_until, "updated_at": stmt.excluded.updated_at},
        )
        self.session.execute(stmt)
        self.session.flush()
