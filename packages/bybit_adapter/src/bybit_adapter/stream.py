"""Bybit implementation of the tradecore Stream contract.

Bybit serves market data and account events on separate endpoints, so one
BybitStream drives two websockets:

- public spot socket: order book subscriptions
- private socket: auth, then order/execution/wallet topics (skipped
  entirely in public-only mode)

Reference:
- Connect & auth: https://bybit-exchange.github.io/docs/v5/ws/connect
- Orderbook: https://bybit-exchange.github.io/docs/v5/websocket/public/orderbook
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional
import hashlib
import hmac
import logging
import time

from tradecore.stream import (
    Channel,
    LoginRequest,
    StandardStream,
    Stream,
    SubscribeOptions,
    SubscriptionRequest,
)

from bybit_adapter.normalizer import to_ms
from bybit_adapter.websocket_service import WebsocketService


logger = logging.getLogger(__name__)

PUBLIC_SPOT_URL = "wss://stream.bybit.com/v5/public/spot"
PRIVATE_URL = "wss://stream.bybit.com/v5/private"
TESTNET_PUBLIC_SPOT_URL = "wss://stream-testnet.bybit.com/v5/public/spot"
TESTNET_PRIVATE_URL = "wss://stream-testnet.bybit.com/v5/private"

DEFAULT_PRIVATE_TOPICS = ("order", "execution", "wallet")
ORDERBOOK_DEPTHS = (1, 50, 200)
DEFAULT_ORDERBOOK_DEPTH = 50

# Auth signature stays valid this long after the login request was built
AUTH_EXPIRY = timedelta(seconds=10)


@dataclass(frozen=True)
class PrivateTopicsRequest:
    """Subscription to account topics, sent right after auth."""

    topics: tuple[str, ...]


def sign_auth(api_secret: str, expires_ms: int) -> str:
    """HMAC-SHA256 of "GET/realtime{expires}" as Bybit expects."""
    return hmac.new(
        api_secret.encode("utf-8"),
        f"GET/realtime{expires_ms}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def orderbook_topic(market: str, depth: Optional[int] = None) -> str:
    """orderbook.{depth}.{SYMBOL}; Bybit symbols carry no separator."""
    depth = depth or DEFAULT_ORDERBOOK_DEPTH
    if depth not in ORDERBOOK_DEPTHS:
        raise ValueError(f"unsupported orderbook depth {depth}, expected one of {ORDERBOOK_DEPTHS}")
    symbol = market.replace("-", "").replace("/", "")
    return f"orderbook.{depth}.{symbol}"


def encode_request(request: Any) -> dict:
    """Turn a queued request into Bybit's wire message."""
    if isinstance(request, LoginRequest):
        expires = to_ms(request.timestamp + AUTH_EXPIRY)
        return {
            "op": "auth",
            "args": [request.api_key, expires, sign_auth(request.api_secret, expires)],
        }

    if isinstance(request, PrivateTopicsRequest):
        return {"op": "subscribe", "args": list(request.topics)}

    if isinstance(request, SubscriptionRequest):
        if request.channel is not Channel.BOOK:
            raise ValueError(f"cannot encode channel {request.channel}")
        return {
            "op": str(request.operation),
            "args": [orderbook_topic(request.market, request.options.depth)],
        }

    raise TypeError(f"unknown request type {type(request).__name__}")


class BybitStream(Stream):
    """Authenticated (or public-only) Bybit stream.

    Example:
        stream = BybitStream(api_key="xxx", api_secret="yyy")
        stream.standard_stream.on_message(print)
        stream.subscribe(Channel.BOOK, "btcusdt")
        stream.connect(timeout=10)
        # ... later
        stream.close()
    """

    supported_channels = frozenset({Channel.BOOK})

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        testnet: bool = False,
        standard_stream: Optional[StandardStream] = None,
        private_topics: tuple[str, ...] = DEFAULT_PRIVATE_TOPICS,
    ):
        super().__init__(standard_stream)
        self._api_key = api_key
        self._api_secret = api_secret
        self.testnet = testnet

        self._public_ws = WebsocketService(
            url=TESTNET_PUBLIC_SPOT_URL if testnet else PUBLIC_SPOT_URL,
            encode=encode_request,
            name="BybitPublicWS",
            on_message=self._dispatch,
            on_unexpected_close=self._handle_unexpected_close,
        )
        self._private_ws = WebsocketService(
            url=TESTNET_PRIVATE_URL if testnet else PRIVATE_URL,
            encode=encode_request,
            name="BybitPrivateWS",
            on_message=self._dispatch,
            on_unexpected_close=self._handle_unexpected_close,
        )
        if private_topics:
            self._private_ws.subscribe(PrivateTopicsRequest(tuple(private_topics)))

    def subscribe(
        self,
        channel: Channel,
        symbol: str,
        options: Optional[SubscribeOptions] = None,
    ) -> SubscriptionRequest:
        """Queue an order book subscription.

        Raises:
            UnsupportedChannelError: channel is not Channel.BOOK.
            ValueError: options.depth is not a Bybit order book depth.
        """
        if channel in self.supported_channels and options is not None:
            orderbook_topic(symbol, options.depth)
        return super().subscribe(channel, symbol, options)

    def _credentials(self) -> tuple[str, str]:
        return self._api_key, self._api_secret

    def _queue(self, request) -> None:
        if isinstance(request, LoginRequest):
            # A login from an earlier connect carries a stale signature
            for queued in self._private_ws.requests:
                if isinstance(queued, LoginRequest):
                    self._private_ws.discard(queued)
            self._private_ws.subscribe(request, first=True)
        else:
            self._public_ws.subscribe(request)

    def _unqueue(self, request) -> None:
        if isinstance(request, LoginRequest):
            self._private_ws.discard(request)
        else:
            self._public_ws.discard(request)

    def _authenticating(self) -> bool:
        return any(isinstance(r, LoginRequest) for r in self._private_ws.requests)

    def _open(self, timeout: Optional[float]) -> None:
        deadline = None if timeout is None else time.monotonic() + timeout

        self._public_ws.connect(timeout)
        if not self._authenticating():
            return

        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            self._private_ws.connect(remaining)
        except Exception:
            self._public_ws.close()
            raise

    def _shutdown(self) -> None:
        self._private_ws.close()
        self._public_ws.close()

    def _handle_unexpected_close(self) -> None:
        logger.warning("Bybit stream socket closed by remote")
        self._mark_lost()
