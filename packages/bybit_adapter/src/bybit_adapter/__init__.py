"""Bybit adapter for tradecore.

This package provides:
- BybitExchange: balances, markets and paginated trade/order history
- BybitStream: public order book and authenticated private websockets
- REST API client with per-account rate limiting
- Normalization from Bybit payloads to tradecore types
"""

from bybit_adapter.normalizer import BybitNormalizer, NormalizerContext
from bybit_adapter.rest_client import BybitAPIError, BybitRestClient
from bybit_adapter.rate_limiter import RateLimiter, RateLimitConfig
from bybit_adapter.websocket_service import WebsocketService
from bybit_adapter.stream import BybitStream
from bybit_adapter.exchange import BybitExchange

__all__ = [
    "BybitNormalizer",
    "NormalizerContext",
    "BybitAPIError",
    "BybitRestClient",
    "RateLimiter",
    "RateLimitConfig",
    "WebsocketService",
    "BybitStream",
    "BybitExchange",
]
