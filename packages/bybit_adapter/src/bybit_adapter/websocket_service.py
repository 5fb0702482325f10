"""Single websocket connection with a persistent request queue.

WebsocketService keeps every request it was given. When the socket opens,
the whole queue is sent in order; requests added while the socket is open
are sent immediately. The socket loop runs on a daemon thread, and a second
daemon thread sends Bybit's application-level ping.

Reference:
- websocket-client: https://websocket-client.readthedocs.io/
- Bybit WebSocket Connect: https://bybit-exchange.github.io/docs/v5/ws/connect
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional
import json
import logging
import threading

import websocket


logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_INTERVAL = 20.0  # Bybit drops idle connections after ~30s
PING_MESSAGE = {"op": "ping"}


@dataclass
class WebsocketService:
    """Manages one websocket and the requests to replay on it.

    Example:
        service = WebsocketService(
            url="wss://stream.bybit.com/v5/public/spot",
            encode=lambda request: request,
            on_message=print,
        )
        service.subscribe({"op": "subscribe", "args": ["orderbook.50.BTCUSDT"]})
        service.connect(timeout=10)
        # ... later
        service.close()
    """

    url: str
    encode: Callable[[Any], dict]
    name: str = "BybitWS"
    on_message: Optional[Callable[[Any], None]] = None
    on_unexpected_close: Optional[Callable[[], None]] = None
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL

    _requests: list = field(default_factory=list, init=False, repr=False)
    _app: Optional[websocket.WebSocketApp] = field(default=None, init=False, repr=False)
    _thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _opened: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _settled: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _closing: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _error: Optional[BaseException] = field(default=None, init=False, repr=False)
    _heartbeat_thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _stop_heartbeat: threading.Event = field(default_factory=threading.Event, init=False, repr=False)

    @property
    def requests(self) -> list:
        """Snapshot of the queued requests, in send order."""
        with self._lock:
            return list(self._requests)

    def is_connected(self) -> bool:
        return self._opened.is_set()

    def subscribe(self, request: Any, first: bool = False) -> None:
        """Queue a request; send it right away when the socket is open.

        A request whose immediate send fails is not queued.

        Args:
            request: Anything ``encode`` understands.
            first: Put the request ahead of everything already queued.
        """
        with self._lock:
            if self._opened.is_set() and self._app is not None:
                self._send(self._app, request)

            if first:
                self._requests.insert(0, request)
            else:
                self._requests.append(request)

    def discard(self, request: Any) -> None:
        """Remove a queued request (no-op if absent)."""
        with self._lock:
            if request in self._requests:
                self._requests.remove(request)

    def connect(self, timeout: Optional[float] = None) -> None:
        """Open the socket and block until it is open or has failed.

        Args:
            timeout: Seconds to wait; None waits until the socket settles.

        Raises:
            ConnectionError: The socket closed or errored before opening.
            TimeoutError: The socket did not open within ``timeout``.
        """
        with self._lock:
            if self._app is not None:
                raise ConnectionError(f"{self.name} already connected")

            self._opened.clear()
            self._settled.clear()
            self._closing.clear()
            self._error = None

            logger.info(f"Connecting {self.name} to {self.url}")
            self._app = websocket.WebSocketApp(
                self.url,
                on_open=self._handle_open,
                on_message=self._handle_message,
                on_error=self._handle_error,
                on_close=self._handle_close,
            )
            self._thread = threading.Thread(
                target=self._app.run_forever,
                daemon=True,
                name=self.name,
            )
            self._thread.start()

        if not self._settled.wait(timeout):
            self.close()
            raise TimeoutError(f"{self.name} did not open within {timeout}s")

        if not self._opened.is_set():
            error = self._error
            self.close()
            raise ConnectionError(f"{self.name} failed to open: {error}")

        logger.info(f"{self.name} connected")
        self._start_heartbeat()

    def close(self) -> None:
        """Close the socket if open. Safe to call repeatedly."""
        self._stop_heartbeat_thread()

        with self._lock:
            app, thread = self._app, self._thread
            self._app = None
            self._thread = None
            self._closing.set()
            self._opened.clear()

        if app is None:
            return

        try:
            app.close()
        except Exception as e:
            logger.warning(f"Error during {self.name} close: {e}")

        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        logger.info(f"{self.name} disconnected")

    def _send(self, app: websocket.WebSocketApp, request: Any) -> None:
        """Encode and send one request (caller holds the lock)."""
        payload = self.encode(request)
        app.send(json.dumps(payload))
        logger.debug(f"{self.name} sent {payload.get('op', '?')}")

    def _handle_open(self, ws) -> None:
        with self._lock:
            for request in self._requests:
                self._send(ws, request)
            self._opened.set()
        self._settled.set()

    def _handle_message(self, ws, message: str) -> None:
        try:
            payload = json.loads(message)
        except (TypeError, ValueError):
            payload = message

        if self.on_message:
            try:
                self.on_message(payload)
            except Exception as e:
                logger.error(f"Error in {self.name} message callback: {e}")

    def _handle_error(self, ws, error) -> None:
        self._error = error
        logger.warning(f"{self.name} error: {error}")
        self._settled.set()

    def _handle_close(self, ws, close_status_code=None, close_msg=None) -> None:
        was_open = self._opened.is_set()
        self._opened.clear()
        self._settled.set()
        logger.info(f"{self.name} closed (code={close_status_code}, msg={close_msg})")

        if not was_open or self._closing.is_set():
            return

        # Remote hang-up; the next connect opens a fresh socket
        with self._lock:
            if self._app is ws:
                self._app = None
                self._thread = None
        self._stop_heartbeat_thread()

        if self.on_unexpected_close:
            try:
                self.on_unexpected_close()
            except Exception as e:
                logger.error(f"Error in {self.name} close callback: {e}")

    def _start_heartbeat(self) -> None:
        """Start background thread sending application-level pings."""
        self._stop_heartbeat.clear()
        self._heartbeat_thread = threading.Thread(
            target=self._heartbeat_loop,
            daemon=True,
            name=f"{self.name}-Heartbeat",
        )
        self._heartbeat_thread.start()

    def _stop_heartbeat_thread(self) -> None:
        self._stop_heartbeat.set()
        thread = self._heartbeat_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._heartbeat_thread = None

    def _heartbeat_loop(self) -> None:
        while not self._stop_heartbeat.wait(self.heartbeat_interval):
            with self._lock:
                app = self._app if self._opened.is_set() else None
                if app is None:
                    continue
                try:
                    app.send(json.dumps(PING_MESSAGE))
                except Exception as e:
                    logger.warning(f"{self.name} ping failed: {e}")
