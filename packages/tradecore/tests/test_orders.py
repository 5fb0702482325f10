"""Tests for order request variants."""

from decimal import Decimal

import pytest

from tradecore.orders import CancelOrderRequest, LimitOrder, MarketOrder, build_submit_order
from tradecore.types import OrderType, Side


class TestLimitOrder:
    """Tests for LimitOrder."""

    def test_normalizes_symbol_and_side(self):
        order = LimitOrder(" ltc-usdt ", "buy", Decimal("1"), Decimal("50"))
        assert order.symbol == "LTC-USDT"
        assert order.side is Side.BUY
        assert order.order_type is OrderType.LIMIT

    def test_requires_positive_price(self):
        with pytest.raises(ValueError, match="price"):
            LimitOrder("BTCUSDT", Side.SELL, Decimal("1"), Decimal("0"))

    def test_requires_symbol(self):
        with pytest.raises(ValueError, match="symbol"):
            LimitOrder("  ", Side.SELL, Decimal("1"), Decimal("10"))


class TestMarketOrder:
    """Tests for MarketOrder."""

    def test_basic(self):
        order = MarketOrder("btcusdt", Side.SELL, Decimal("0.1"))
        assert order.symbol == "BTCUSDT"
        assert order.order_type is OrderType.MARKET
        assert not hasattr(order, "price")

    def test_requires_positive_quantity(self):
        with pytest.raises(ValueError, match="quantity"):
            MarketOrder("BTCUSDT", Side.BUY, Decimal("-1"))


class TestBuildSubmitOrder:
    """Tests for build_submit_order()."""

    def test_limit(self):
        order = build_submit_order("limit", "LTC-USDT", "buy", Decimal("1"), Decimal("50"))
        assert isinstance(order, LimitOrder)
        assert order.price == Decimal("50")

    def test_limit_without_price(self):
        with pytest.raises(ValueError, match="price is required"):
            build_submit_order("limit", "LTC-USDT", "buy", Decimal("1"))

    def test_market(self):
        order = build_submit_order("MARKET", "LTC-USDT", "SELL", Decimal("1"))
        assert isinstance(order, MarketOrder)
        assert order.side is Side.SELL

    def test_market_with_price_rejected(self):
        with pytest.raises(ValueError, match="not accepted"):
            build_submit_order("market", "LTC-USDT", "sell", Decimal("1"), Decimal("5"))

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            build_submit_order("stop", "LTC-USDT", "sell", Decimal("1"))

    def test_unknown_side(self):
        with pytest.raises(ValueError):
            build_submit_order("market", "LTC-USDT", "hold", Decimal("1"))


class TestCancelOrderRequest:
    """Tests for CancelOrderRequest."""

    def test_by_order_id(self):
        req = CancelOrderRequest("ltc-usdt", order_id="123")
        assert req.symbol == "LTC-USDT"
        assert req.order_id == "123"

    def test_by_client_order_id(self):
        req = CancelOrderRequest("LTC-USDT", client_order_id="my-order")
        assert req.client_order_id == "my-order"

    def test_requires_an_id(self):
        with pytest.raises(ValueError, match="either order id or client order id"):
            CancelOrderRequest("LTC-USDT")
