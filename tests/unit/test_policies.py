"""Tests for OrderingPolicy and InventoryPolicy."""

from decimal import Decimal

import pytest

from storefront_kernel.domain.policies import InventoryPolicy, OrderingPolicy


class TestOrderingPolicy:
    def test_defaults(self):
        policy = OrderingPolicy.with_defaults()
        assert policy.store_id == "default"
        assert policy.order_number_start == 7000
        assert policy.tax_rate == Decimal("0")
        assert policy.decrement_stock_on_checkout is False

    def test_format_and_parse(self):
        policy = OrderingPolicy()
        assert policy.format_order_number(7001) == "ORD-7001"
        assert policy.parse_order_number("ORD-7001") == 7001
        assert policy.parse_order_number("INV-7001") is None
        assert policy.parse_order_number("ORD-abc") is None

    def test_custom_prefix(self):
        policy = OrderingPolicy(store_id="eu", order_number_prefix="EU-")
        assert policy.format_order_number(12) == "EU-12"

    def test_from_dict_converts_tax_rate(self):
        policy = OrderingPolicy.from_dict({"tax_rate": 0.2, "store_id": "uk"})
        assert policy.tax_rate == Decimal("0.2")
        assert policy.store_id == "uk"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"store_id": " "},
            {"order_number_prefix": ""},
            {"order_number_start": -1},
            {"tax_rate": Decimal("1")},
            {"tax_rate": Decimal("-0.1")},
            {"tax_rate": 0.1},
            {"min_phone_length": 0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            OrderingPolicy(**kwargs)

    def test_frozen(self):
        policy = OrderingPolicy()
        with pytest.raises(AttributeError):
            policy.store_id = "other"


class TestInventoryPolicy:
    def test_defaults(self):
        policy = InventoryPolicy.with_defaults()
        assert policy.low_stock_threshold == 10
        assert policy.allow_negative_inventory is False

    def test_from_dict(self):
        policy = InventoryPolicy.from_dict({"low_stock_threshold": 3})
        assert policy.low_stock_threshold == 3

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            InventoryPolicy(low_stock_threshold=-1)
