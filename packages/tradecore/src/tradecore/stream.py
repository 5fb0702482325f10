"""
Streaming client contract shared by every exchange adapter.

A Stream owns one exchange connection (possibly more than one socket
internally), authenticates unless it was switched to public-only mode, keeps
the queue of subscription requests, and routes every inbound payload to a
StandardStream that downstream consumers listen on.

State machine:

    DISCONNECTED -> CONNECTING -> CONNECTED -> CLOSED
                         |            |
                         +------> FAILED <-+ (connection lost)
                                    |
                                    +-> CONNECTING (retry)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum, StrEnum
from typing import Any, Callable, Optional
import logging
import threading


logger = logging.getLogger(__name__)


class StreamState(Enum):
    """Lifecycle of a Stream."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"
    CLOSED = "closed"


class Channel(StrEnum):
    """Market data channels a caller may ask for."""
    BOOK = "book"
    KLINE = "kline"
    MARKET_TRADE = "trade"


class SubscribeOperation(StrEnum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


class StreamError(Exception):
    """Base class for stream errors."""


class StreamStateError(StreamError):
    """Operation not allowed in the current stream state."""


class StreamConnectError(StreamError):
    """The underlying transport could not be established."""


class UnsupportedChannelError(StreamError):
    """The adapter does not implement the requested channel."""

    def __init__(self, channel: Any, supported: frozenset):
        self.channel = channel
        self.supported = supported
        names = ", ".join(sorted(str(c) for c in supported))
        super().__init__(f"unsupported channel {channel!r} (supported: {names})")


def normalize_market(symbol: str) -> str:
    """Trim and uppercase a market symbol ("ltc-usdt " -> "LTC-USDT")."""
    return symbol.strip().upper()


@dataclass(frozen=True)
class SubscribeOptions:
    """Channel-specific knobs; adapters ignore what they do not use."""
    depth: Optional[int] = None
    interval: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionRequest:
    """A queued subscribe/unsubscribe request."""
    operation: SubscribeOperation
    channel: Channel
    market: str
    options: SubscribeOptions = field(default_factory=SubscribeOptions)

    def __post_init__(self):
        object.__setattr__(self, "market", normalize_market(self.market))


@dataclass(frozen=True)
class LoginRequest:
    """Credentials and timestamp the adapter signs into its auth message."""
    api_key: str
    api_secret: str = field(repr=False)
    timestamp: datetime


class StandardStream:
    """Shared event sink every Stream dispatches into.

    Callbacks run on the stream's reader thread. A failing callback is
    logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._message_callbacks: list[Callable[[Any], None]] = []
        self._connect_callbacks: list[Callable[[], None]] = []
        self._disconnect_callbacks: list[Callable[[], None]] = []

    def on_message(self, callback: Callable[[Any], None]) -> None:
        self._message_callbacks.append(callback)

    def on_connect(self, callback: Callable[[], None]) -> None:
        self._connect_callbacks.append(callback)

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._disconnect_callbacks.append(callback)

    def emit_message(self, message: Any) -> None:
        for callback in self._message_callbacks:
            try:
                callback(message)
            except Exception as e:
                logger.error(f"Error in message callback: {e}")

    def emit_connect(self) -> None:
        for callback in self._connect_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in connect callback: {e}")

    def emit_disconnect(self) -> None:
        for callback in self._disconnect_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in disconnect callback: {e}")


class Stream(ABC):
    """Connection/authentication/subscription state machine.

    Subclasses supply the transport through the ``_queue``/``_unqueue``/
    ``_open``/``_shutdown`` hooks and the signed login through
    ``_login_request``. The base class owns the ordering rules:

    - a login request is queued ahead of all subscriptions on every
      ``connect`` unless public-only mode was set;
    - public-only mode can only be switched on before the first connect;
    - a failed connect drops its login request and leaves the stream in
      FAILED, from where ``connect`` may be retried;
    - a transport that drops while connected reports it through
      ``_mark_lost``, which also leaves the stream in FAILED.
    """

    supported_channels: frozenset = frozenset({Channel.BOOK})

    def __init__(self, standard_stream: Optional[StandardStream] = None):
        self.standard_stream = standard_stream or StandardStream()
        # Event gives atomic set/read without exposing a lock to callers
        self._public_only = threading.Event()
        self._state = StreamState.DISCONNECTED
        self._lock = threading.Lock()

    @property
    def state(self) -> StreamState:
        with self._lock:
            return self._state

    @property
    def public_only(self) -> bool:
        return self._public_only.is_set()

    def set_public_only(self) -> None:
        """Never authenticate on this stream.

        Idempotent. Must be called before a successful ``connect``.

        Raises:
            StreamStateError: The stream already started connecting.
        """
        if self._public_only.is_set():
            return
        with self._lock:
            if self._state not in (StreamState.DISCONNECTED, StreamState.FAILED):
                raise StreamStateError(
                    f"public-only mode must be set before connect (state: {self._state.value})"
                )
            self._public_only.set()

    def connect(self, timeout: Optional[float] = None) -> None:
        """Authenticate (unless public-only) and establish the transport.

        Args:
            timeout: Seconds to wait for the transport; None waits forever.

        Raises:
            StreamStateError: Stream is connecting, connected or closed.
            StreamConnectError: The transport failed; state becomes FAILED.
        """
        with self._lock:
            if self._state not in (StreamState.DISCONNECTED, StreamState.FAILED):
                raise StreamStateError(f"cannot connect from state {self._state.value}")
            self._state = StreamState.CONNECTING

        login = None
        if not self._public_only.is_set():
            logger.info(f"{type(self).__name__}: subscribe private events")
            login = self._login_request()
            self._queue(login)

        try:
            self._open(timeout)
        except Exception as e:
            if login is not None:
                self._unqueue(login)
            with self._lock:
                self._state = StreamState.FAILED
            logger.error(f"{type(self).__name__}: connect failed: {e}")
            raise StreamConnectError(str(e)) from e

        with self._lock:
            self._state = StreamState.CONNECTED
        logger.info(f"{type(self).__name__}: connected (public_only={self.public_only})")
        self.standard_stream.emit_connect()

    def subscribe(
        self,
        channel: Channel,
        symbol: str,
        options: Optional[SubscribeOptions] = None,
    ) -> SubscriptionRequest:
        """Queue a subscription; sent now if connected, else on next connect.

        Raises:
            UnsupportedChannelError: The adapter does not serve ``channel``.
        """
        if channel not in self.supported_channels:
            raise UnsupportedChannelError(channel, self.supported_channels)

        request = SubscriptionRequest(
            operation=SubscribeOperation.SUBSCRIBE,
            channel=channel,
            market=symbol,
            options=options or SubscribeOptions(),
        )
        self._queue(request)
        logger.debug(f"{type(self).__name__}: subscribed {channel} {request.market}")
        return request

    def close(self) -> None:
        """Tear down the transport. Safe to call when never connected or twice."""
        with self._lock:
            was_connected = self._state is StreamState.CONNECTED
            if was_connected:
                self._state = StreamState.CLOSED

        self._shutdown()

        if was_connected:
            logger.info(f"{type(self).__name__}: closed")
            self.standard_stream.emit_disconnect()

    def _mark_lost(self) -> bool:
        """Record that the transport dropped on its own.

        Called by adapters from their reader thread. Shuts the rest of the
        transport down, then moves CONNECTED to FAILED and notifies
        disconnect listeners. Any other state is left alone.

        Returns:
            True if the stream was connected.
        """
        with self._lock:
            if self._state is not StreamState.CONNECTED:
                return False

        self._shutdown()

        with self._lock:
            # close() may have won the race while the transport shut down
            if self._state is not StreamState.CONNECTED:
                return False
            self._state = StreamState.FAILED

        logger.warning(f"{type(self).__name__}: connection lost")
        self.standard_stream.emit_disconnect()
        return True

    def _dispatch(self, message: Any) -> None:
        """Route one inbound payload to the event sink."""
        self.standard_stream.emit_message(message)

    def _login_request(self) -> LoginRequest:
        key, secret = self._credentials()
        return LoginRequest(api_key=key, api_secret=secret, timestamp=datetime.now(UTC))

    @abstractmethod
    def _credentials(self) -> tuple[str, str]:
        """Return (api_key, api_secret)."""

    @abstractmethod
    def _queue(self, request: LoginRequest | SubscriptionRequest) -> None:
        """Queue a request; send it immediately if the transport is open.

        LoginRequest must go ahead of any queued subscription.
        """

    @abstractmethod
    def _unqueue(self, request: LoginRequest | SubscriptionRequest) -> None:
        """Drop a request that has not been sent."""

    @abstractmethod
    def _open(self, timeout: Optional[float]) -> None:
        """Open the transport and flush the queue. Raise on failure."""

    @abstractmethod
    def _shutdown(self) -> None:
        """Close the transport if open; no-op otherwise."""
