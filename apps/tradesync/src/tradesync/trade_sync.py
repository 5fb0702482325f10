"""Incremental trade and order history sync.

TradeSyncService pulls one exchange/symbol pair forward from the later of
the requested start and the end of the last completed history window, in
windows no longer than the exchange accepts, page by page. Each page is
written in its own transaction before the next page is requested. The sync
cursor moves only after every page of a window is stored, so a run that is
interrupted mid-window refetches that window on the next run; exchanges
may return pages newest first.

REST calls and database writes are blocking; each one runs in a worker
thread via asyncio.to_thread, which keeps the event loop free and lets
task cancellation land between pages.
"""

import asyncio
import logging
from datetime import datetime, timedelta, UTC
from typing import Callable, Optional

from sync_db import DatabaseFactory, OrderRepository, SyncCursorRepository, TradeRepository
from tradecore.exchange import Exchange
from tradecore.types import Order, Trade


logger = logging.getLogger(__name__)

# Exchange timestamps have millisecond resolution
CURSOR_STEP = timedelta(milliseconds=1)


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def effective_start(start_time: datetime, synced_until: Optional[datetime]) -> datetime:
    """Resume just after the last completed window, never before start_time."""
    start = _utc(start_time)
    if synced_until is None:
        return start
    return max(start, _utc(synced_until) + CURSOR_STEP)


class TradeSyncService:
    """Writes exchange history into the sync database.

    Example:
        service = TradeSyncService(db)
        written = await service.sync_trades(exchange, "BTCUSDT", start_time)
    """

    def __init__(self, db: DatabaseFactory, clock: Callable[[], datetime] = lambda: datetime.now(UTC)):
        self._db = db
        self._clock = clock

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def sync_trades(self, exchange: Exchange, symbol: str, start_time: datetime) -> int:
        """Fetch and store account trades for symbol since start_time.

        Returns:
            Number of trades written.
        """
        return await self._walk("trades", exchange, symbol, start_time, exchange.query_trades, self._store_trades)

    async def sync_orders(self, exchange: Exchange, symbol: str, start_time: datetime) -> int:
        """Fetch and upsert order history for symbol since start_time.

        Returns:
            Number of orders inserted or updated.
        """
        return await self._walk(
            "orders", exchange, symbol, start_time, exchange.query_closed_orders, self._store_orders
        )

    # -------------------------------------------------------------------------
    # Window / page walk
    # -------------------------------------------------------------------------

    async def _walk(self, kind: str, exchange: Exchange, symbol: str, start_time: datetime, fetch, store) -> int:
        synced_until = await asyncio.to_thread(self._synced_until, kind, exchange, symbol)
        start = effective_start(start_time, synced_until)
        until = _utc(self._clock())
        if start >= until:
            logger.info(f"{exchange.name} {symbol} {kind}: up to date")
            return 0

        logger.info(f"Syncing {exchange.name} {symbol} {kind} from {start.isoformat()}")
        written = 0
        pages = 0
        window_start = start

        while window_start < until:
            window_end = min(window_start + exchange.max_history_window, until)
            cursor = None
            while True:
                records, cursor = await asyncio.to_thread(fetch, symbol, window_start, window_end, cursor)
                pages += 1
                if records:
                    written += await asyncio.to_thread(store, records)
                if not cursor:
                    break
            await asyncio.to_thread(self._advance, kind, exchange, symbol, window_end)
            window_start = window_end + CURSOR_STEP

        logger.info(f"Synced {exchange.name} {symbol} {kind}: {written} written across {pages} pages")
        return written

    # -------------------------------------------------------------------------
    # Database (run in worker threads)
    # -------------------------------------------------------------------------

    def _synced_until(self, kind: str, exchange: Exchange, symbol: str) -> Optional[datetime]:
        with self._db.get_session() as session:
            return SyncCursorRepository(session).get_synced_until(
                exchange.name, symbol, kind, exchange.is_margin, exchange.is_isolated_margin
            )

    def _advance(self, kind: str, exchange: Exchange, symbol: str, synced_until: datetime) -> None:
        with self._db.get_session() as session:
            SyncCursorRepository(session).advance(
                exchange.name, symbol, kind, synced_until, exchange.is_margin, exchange.is_isolated_margin
            )

    def _store_trades(self, trades: list[Trade]) -> int:
        with self._db.get_session() as session:
            return TradeRepository(session).bulk_insert(trades)

    def _store_orders(self, orders: list[Order]) -> int:
        with self._db.get_session() as session:
            return OrderRepository(session).bulk_upsert(orders)
