"""Live stream runner behind `tradesync stream`."""

import asyncio
import logging
from typing import Any, Optional

from tradecore.stream import Channel, Stream, SubscribeOptions

from tradesync.environment import ExchangeSession


logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0


class StreamRunner:
    """Connects one session's stream and logs every event until stopped.

    Example:
        runner = StreamRunner(session, "BTCUSDT", public_only=True)
        await runner.run(shutdown_event)
    """

    def __init__(
        self,
        session: ExchangeSession,
        symbol: str,
        public_only: bool = False,
        depth: Optional[int] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        self.session = session
        self.symbol = symbol
        self.public_only = public_only
        self.depth = depth
        self.connect_timeout = connect_timeout
        self.message_count = 0

    def build_stream(self) -> Stream:
        stream = self.session.exchange.new_stream()
        if self.public_only:
            stream.set_public_only()

        stream.standard_stream.on_message(self._on_message)
        stream.standard_stream.on_connect(lambda: logger.info(f"{self.session.name}: stream connected"))
        stream.standard_stream.on_disconnect(lambda: logger.warning(f"{self.session.name}: stream disconnected"))

        stream.subscribe(Channel.BOOK, self.symbol, SubscribeOptions(depth=self.depth))
        return stream

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Connect, wait for shutdown_event, close.

        Raises:
            StreamConnectError: The stream could not connect.
        """
        stream = self.build_stream()
        try:
            await asyncio.to_thread(stream.connect, self.connect_timeout)
            logger.info(f"{self.session.name}: streaming {self.symbol} (public_only={self.public_only})")
            await shutdown_event.wait()
        finally:
            await asyncio.to_thread(stream.close)
            logger.info(f"{self.session.name}: stream closed after {self.message_count} messages")

    def _on_message(self, message: Any) -> None:
        self.message_count += 1
        logger.info(f"{self.session.name}: {message}")
