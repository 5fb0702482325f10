"""Per-API-key request throttling for Bybit REST calls.

Bybit limits (per UID, spot):
- Order create/cancel: 20 requests/second
- Order/execution history queries: 10 requests/second

History sync is sequential, so a sliding window is enough: before each call
the client asks how long to wait, sleeps, then records the request.

Reference: https://bybit-exchange.github.io/docs/v5/rate-limit
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Literal
import time


RequestType = Literal["order", "query"]


@dataclass
class RateLimitConfig:
    """Requests allowed per window, by request type."""

    order_rate: int = 20
    query_rate: int = 10
    window_seconds: float = 1.0


@dataclass
class RateLimiter:
    """Sliding-window limiter keyed by request type.

    Timestamps come from time.monotonic so wall-clock jumps do not open or
    close the window.

    Example:
        limiter = RateLimiter()
        time.sleep(limiter.wait_time("query"))
        limiter.record_request("query")
    """

    config: RateLimitConfig = field(default_factory=RateLimitConfig)
    _sent: dict[str, deque] = field(
        default_factory=lambda: {"order": deque(), "query": deque()}, init=False
    )

    def _limit(self, request_type: RequestType) -> int:
        if request_type == "order":
            return self.config.order_rate
        return self.config.query_rate

    def _prune(self, request_type: RequestType, now: float) -> deque:
        sent = self._sent[request_type]
        while sent and now - sent[0] >= self.config.window_seconds:
            sent.popleft()
        return sent

    def record_request(self, request_type: RequestType) -> None:
        self._sent[request_type].append(time.monotonic())

    def available(self, request_type: RequestType) -> int:
        """Requests that can be made right now."""
        sent = self._prune(request_type, time.monotonic())
        return max(0, self._limit(request_type) - len(sent))

    def wait_time(self, request_type: RequestType) -> float:
        """Seconds until the next request of this type is allowed."""
        now = time.monotonic()
        sent = self._prune(request_type, now)
        if len(sent) < self._limit(request_type):
            return 0.0
        return max(0.0, sent[0] + self.config.window_seconds - now)
