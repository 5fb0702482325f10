"""Multi-session sync orchestration and start-time resolution."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from tradecore.discovery import find_possible_symbols

from tradesync.environment import Environment, ExchangeSession


logger = logging.getLogger(__name__)

# --since dates are calendar days in this zone
SINCE_TIMEZONE = ZoneInfo("Asia/Taipei")
DEFAULT_LOOKBACK_MONTHS = 3


def subtract_months(ts: datetime, months: int) -> datetime:
    """Move ts back by calendar months, keeping day and wall-clock time.

    A day that does not exist in the target month rolls forward into the
    next one: May 31 minus 3 months is March 3 in a non-leap year.
    """
    month_index = ts.month - 1 - months
    first_of_month = ts.replace(year=ts.year + month_index // 12, month=month_index % 12 + 1, day=1)
    return first_of_month + timedelta(days=ts.day - 1)


def resolve_start_time(
    since: Optional[str] = None,
    now: Optional[datetime] = None,
    lookback_months: int = DEFAULT_LOOKBACK_MONTHS,
) -> datetime:
    """Where a sync starts.

    Args:
        since: "YYYY-MM-DD", taken as midnight in Asia/Taipei.
        now: Reference time for the default (local now when omitted).
        lookback_months: Calendar months before now used when since is omitted.

    Raises:
        ValueError: since is not a valid YYYY-MM-DD date.
    """
    if since:
        try:
            day = datetime.strptime(since, "%Y-%m-%d")
        except ValueError as e:
            raise ValueError(f"invalid --since date {since!r}, expected YYYY-MM-DD") from e
        return day.replace(tzinfo=SINCE_TIMEZONE)

    now = now or datetime.now().astimezone()
    return subtract_months(now, lookback_months)


class SyncOrchestrator:
    """Runs the trade/order sync across sessions and symbols.

    Strictly sequential: one session at a time, one symbol at a time, and
    for each symbol the trade sync finishes before the order sync starts.
    The first failure aborts the run; pairs already synced stay committed.
    """

    def __init__(self, environment: Environment):
        if environment.trade_sync is None:
            raise ValueError("environment has no sync engine")
        self.environment = environment
        self._trade_sync = environment.trade_sync

    async def run(
        self,
        session_name: Optional[str] = None,
        symbol: Optional[str] = None,
        start_time: Optional[datetime] = None,
    ) -> None:
        """Sync one named session, or every session in configuration order.

        Raises:
            SessionNotFoundError: session_name is not configured.
            Exception: Whatever init, discovery or a sync call raised first.
        """
        if start_time is None:
            start_time = resolve_start_time()
        if session_name:
            sessions = [self.environment.session(session_name)]
        else:
            sessions = self.environment.sessions

        symbol = symbol.strip().upper() if symbol else None
        logger.info(f"Sync starting for {len(sessions)} session(s) from {start_time.isoformat()}")

        for session in sessions:
            await self._sync_session(session, symbol, start_time)

        logger.info("Sync finished")

    async def _sync_session(self, session: ExchangeSession, symbol: Optional[str], start_time: datetime) -> None:
        try:
            await asyncio.to_thread(session.init)
        except Exception as e:
            logger.error(f"Session {session.name}: init failed: {e}")
            raise

        if symbol:
            symbols = [symbol]
        else:
            symbols = sorted(find_possible_symbols(session.balances(), session.markets()))
            logger.info(f"Session {session.name}: discovered {len(symbols)} symbol(s): {', '.join(symbols) or '-'}")

        for discovered in symbols:
            await self._sync_pair(session, discovered, start_time)

    async def _sync_pair(self, session: ExchangeSession, symbol: str, start_time: datetime) -> None:
        if session.isolated_margin:
            symbol = session.isolated_margin_symbol

        logger.info(f"Session {session.name}: syncing {symbol}")
        try:
            trades = await self._trade_sync.sync_trades(session.exchange, symbol, start_time)
            orders = await self._trade_sync.sync_orders(session.exchange, symbol, start_time)
        except Exception as e:
            logger.error(f"Session {session.name} symbol {symbol}: sync failed: {e}")
            raise

        logger.info(f"Session {session.name} symbol {symbol}: {trades} trades, {orders} orders written")
