"""REST API client for Bybit account history and order management.

This module provides REST API methods for:
- Account snapshot (wallet balance, instrument list)
- Paginated history (executions, order history) for incremental sync
- Order management (place, cancel, open orders)

Reference:
- Wallet Balance: https://bybit-exchange.github.io/docs/v5/account/wallet-balance
- Instruments Info: https://bybit-exchange.github.io/docs/v5/market/instrument
- Execution List: https://bybit-exchange.github.io/docs/v5/order/execution
- Order History: https://bybit-exchange.github.io/docs/v5/order/order-list
- Place Order: https://bybit-exchange.github.io/docs/v5/order/create-order
- Cancel Order: https://bybit-exchange.github.io/docs/v5/order/cancel-order
- Open Orders: https://bybit-exchange.github.io/docs/v5/order/open-order
"""

import time
from dataclasses import dataclass, field
from typing import Optional
import logging

from pybit.unified_trading import HTTP

from tradecore.orders import CancelOrderRequest, LimitOrder, SubmitOrder

from bybit_adapter.rate_limiter import RateLimiter, RateLimitConfig, RequestType


logger = logging.getLogger(__name__)

CATEGORY_SPOT = "spot"


class BybitAPIError(Exception):
    """Bybit answered with a non-zero retCode."""

    def __init__(self, method: str, ret_code: int, ret_msg: str):
        self.method = method
        self.ret_code = ret_code
        self.ret_msg = ret_msg
        super().__init__(f"Bybit API error in {method}: [{ret_code}] {ret_msg}")


@dataclass
class BybitRestClient:
    """REST API client for one Bybit account.

    Wraps pybit's HTTP session with rate limiting and retCode checking.
    Paginated endpoints return one page plus the next cursor; walking the
    pages is left to the caller so it can persist and check for
    cancellation between pages.

    Example:
        client = BybitRestClient(api_key="xxx", api_secret="yyy", testnet=True)

        executions, cursor = client.get_executions(
            symbol="BTCUSDT",
            start_time=1704639600000,
            end_time=1705244400000,
        )
    """

    api_key: str
    api_secret: str
    testnet: bool = False
    category: str = CATEGORY_SPOT
    rate_limit_config: RateLimitConfig = field(default_factory=RateLimitConfig)

    _session: Optional[HTTP] = field(default=None, init=False, repr=False)
    _rate_limiter: RateLimiter = field(default=None, init=False, repr=False)

    def __post_init__(self):
        """Initialize HTTP session and rate limiter."""
        self._session = HTTP(
            testnet=self.testnet,
            api_key=self.api_key or None,
            api_secret=self.api_secret or None,
        )
        self._rate_limiter = RateLimiter(config=self.rate_limit_config)

    def _wait_for_rate_limit(self, request_type: RequestType = "query") -> None:
        """Block until a request slot is available, then record the request."""
        wait = self._rate_limiter.wait_time(request_type)
        if wait > 0:
            logger.debug(f"Rate limit: waiting {wait:.3f}s before {request_type} request")
            time.sleep(wait)
        self._rate_limiter.record_request(request_type)

    # -------------------------------------------------------------------------
    # Account snapshot
    # -------------------------------------------------------------------------

    def get_wallet_balance(self, account_type: str = "UNIFIED") -> list[dict]:
        """Fetch coin balances of the account.

        Args:
            account_type: Account type (default "UNIFIED")

        Returns:
            List of coin dicts with keys: coin, walletBalance, locked, ...

        Raises:
            BybitAPIError: If API call fails
        """
        logger.debug(f"Fetching wallet balance for {account_type}")
        self._wait_for_rate_limit("query")

        response = self._session.get_wallet_balance(accountType=account_type)
        self._check_response(response, "get_wallet_balance")

        accounts = response.get("result", {}).get("list", [])
        coins = []
        for account in accounts:
            coins.extend(account.get("coin", []))

        logger.debug(f"Fetched {len(coins)} coin balances")
        return coins

    def get_instruments(self, max_pages: int = 20) -> list[dict]:
        """Fetch every instrument of the client's category.

        Args:
            max_pages: Maximum number of pages to fetch (safety limit)

        Returns:
            List of instrument dicts with keys: symbol, baseCoin, quoteCoin,
            status, priceFilter, lotSizeFilter

        Raises:
            BybitAPIError: If API call fails
        """
        instruments = []
        cursor = None
        page = 0

        while page < max_pages:
            self._wait_for_rate_limit("query")
            params = {"category": self.category}
            if cursor:
                params["cursor"] = cursor

            response = self._session.get_instruments_info(**params)
            self._check_response(response, "get_instruments_info")

            result = response.get("result", {})
            instruments.extend(result.get("list", []))
            cursor = result.get("nextPageCursor")
            page += 1
            if not cursor:
                break

        logger.debug(f"Fetched {len(instruments)} {self.category} instruments across {page} pages")
        return instruments

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def get_executions(
        self,
        symbol: str,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> tuple[list[dict], Optional[str]]:
        """Fetch one page of private execution history.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            start_time: Start time in milliseconds (optional)
            end_time: End time in milliseconds (optional, at most 7 days after start)
            limit: Maximum results per page (max 100)
            cursor: Pagination cursor from previous call

        Returns:
            Tuple of (executions list, next_cursor or None)

        Raises:
            BybitAPIError: If API call fails
        """
        logger.debug(f"Fetching executions for {symbol}, start={start_time}, end={end_time}")
        self._wait_for_rate_limit("query")

        params = {
            "category": self.category,
            "symbol": symbol,
            "limit": min(limit, 100),
        }
        if start_time:
            params["startTime"] = start_time
        if end_time:
            params["endTime"] = end_time
        if cursor:
            params["cursor"] = cursor

        response = self._session.get_executions(**params)
        self._check_response(response, "get_executions")

        result = response.get("result", {})
        executions = result.get("list", [])
        next_cursor = result.get("nextPageCursor")

        logger.debug(f"Fetched {len(executions)} executions, has_more={bool(next_cursor)}")
        return executions, next_cursor if next_cursor else None

    def get_order_history(
        self,
        symbol: str,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> tuple[list[dict], Optional[str]]:
        """One page of closed and open order history; same paging as get_executions (max 50 per page)."""
        logger.debug(f"Fetching order history for {symbol}, start={start_time}, end={end_time}")
        self._wait_for_rate_limit("query")

        params = {
            "category": self.category,
            "symbol": symbol,
            "limit": min(limit, 50),
        }
        if start_time:
            params["startTime"] = start_time
        if end_time:
            params["endTime"] = end_time
        if cursor:
            params["cursor"] = cursor

        response = self._session.get_order_history(**params)
        self._check_response(response, "get_order_history")

        result = response.get("result", {})
        orders = result.get("list", [])
        next_cursor = result.get("nextPageCursor")

        logger.debug(f"Fetched {len(orders)} orders, has_more={bool(next_cursor)}")
        return orders, next_cursor if next_cursor else None

    # -------------------------------------------------------------------------
    # Order Management Methods
    # -------------------------------------------------------------------------

    def get_open_orders(self, symbol: str, max_pages: int = 10) -> list[dict]:
        """Fetch all open orders for a symbol.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            max_pages: Maximum number of pages to fetch (safety limit)

        Returns:
            List of open order dicts

        Raises:
            BybitAPIError: If API call fails
        """
        all_orders = []
        cursor = None
        page = 0

        while page < max_pages:
            self._wait_for_rate_limit("query")
            params = {"category": self.category, "symbol": symbol, "limit": 50}
            if cursor:
                params["cursor"] = cursor

            response = self._session.get_open_orders(**params)
            self._check_response(response, "get_open_orders")

            result = response.get("result", {})
            all_orders.extend(result.get("list", []))
            cursor = result.get("nextPageCursor")
            page += 1
            if not cursor:
                break

        if page >= max_pages and cursor:
            logger.warning(f"get_open_orders reached max_pages={max_pages} with more data available")

        logger.debug(f"Fetched {len(all_orders)} open orders for {symbol}")
        return all_orders

    def place_order(self, order: SubmitOrder) -> dict:
        """Place a new order.

        Args:
            order: LimitOrder or MarketOrder

        Returns:
            Order response dict with keys: orderId, orderLinkId

        Raises:
            BybitAPIError: If API call fails
        """
        logger.info(
            f"Placing {order.order_type} {order.side} order: {order.symbol} "
            f"qty={order.quantity} price={getattr(order, 'price', None)}"
        )
        self._wait_for_rate_limit("order")

        params = {
            "category": self.category,
            "symbol": order.symbol,
            "side": order.side.capitalize(),
            "orderType": order.order_type.capitalize(),
            "qty": str(order.quantity),
        }
        if isinstance(order, LimitOrder):
            params["price"] = str(order.price)
        if order.client_order_id is not None:
            params["orderLinkId"] = order.client_order_id

        response = self._session.place_order(**params)
        self._check_response(response, "place_order")

        result = response.get("result", {})
        logger.info(f"Order placed successfully: {result.get('orderId', '')}")
        return result

    def cancel_order(self, request: CancelOrderRequest) -> dict:
        """Cancel an existing order.

        The exchange order id takes precedence over the client order id when
        both are given.

        Args:
            request: Validated cancel request

        Returns:
            Response dict with keys: orderId, orderLinkId

        Raises:
            BybitAPIError: If API call fails
        """
        logger.info(
            f"Canceling order: {request.symbol} order_id={request.order_id} "
            f"client_order_id={request.client_order_id}"
        )
        self._wait_for_rate_limit("order")

        params = {"category": self.category, "symbol": request.symbol}
        if request.order_id:
            params["orderId"] = request.order_id
        else:
            params["orderLinkId"] = request.client_order_id

        response = self._session.cancel_order(**params)
        self._check_response(response, "cancel_order")

        logger.info("Order cancelled successfully")
        return response.get("result", {})

    def _check_response(self, response: dict, method: str) -> None:
        """Raise BybitAPIError on a non-zero retCode."""
        ret_code = response.get("retCode", -1)
        if ret_code != 0:
            error = BybitAPIError(method, ret_code, response.get("retMsg", "Unknown error"))
            logger.error(str(error))
            raise error
