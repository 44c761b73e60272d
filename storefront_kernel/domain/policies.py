"""
Ordering and inventory policies.

Defines the knobs the kernel services honour, with sensible defaults.
Actual values are loaded by ``storefront_config`` at runtime; the kernel
never reads configuration files itself.

    policy = OrderingPolicy(store_id="eu", order_number_start=9000)
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from storefront_kernel.logging_config import get_logger

logger = get_logger("domain.policies")


@dataclass(frozen=True)
class OrderingPolicy:
    """
    Checkout and order numbering settings.

    With the defaults the first order of a store is ``ORD-7001``.
    """

    store_id: str = "default"
    order_number_prefix: str = "ORD-"
    order_number_start: int = 7000
    tax_rate: Decimal = Decimal("0")
    min_phone_length: int = 10
    decrement_stock_on_checkout: bool = False

    def __post_init__(self):
        if not self.store_id or not self.store_id.strip():
            raise ValueError("store_id must not be empty")
        if not self.order_number_prefix:
            raise ValueError("order_number_prefix must not be empty")
        if self.order_number_start < 0:
            raise ValueError("order_number_start cannot be negative")
        if not isinstance(self.tax_rate, Decimal):
            raise ValueError(
                f"tax_rate must be a Decimal, got {type(self.tax_rate).__name__}"
            )
        if self.tax_rate < 0 or self.tax_rate >= 1:
            raise ValueError("tax_rate must be in [0, 1)")
        if self.min_phone_length < 1:
            raise ValueError("min_phone_length must be positive")

    def format_order_number(self, seq: int) -> str:
        return f"{self.order_number_prefix}{seq}"

    def parse_order_number(self, order_number: str) -> int | None:
        """Numeric suffix of an order number, or None if it isn't one of ours."""
        if not order_number.startswith(self.order_number_prefix):
            return None
        suffix = order_number[len(self.order_number_prefix):]
        return int(suffix) if suffix.isdigit() else None

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create policy from a dictionary (e.g. a YAML section)."""
        logger.debug(
            "ordering_policy_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        values = dict(data)
        if "tax_rate" in values:
            values["tax_rate"] = Decimal(str(values["tax_rate"]))
        return cls(**values)


@dataclass(frozen=True)
class InventoryPolicy:
    """Stock ledger settings."""

    low_stock_threshold: int = 10
    allow_negative_inventory: bool = False

    def __post_init__(self):
        if self.low_stock_threshold < 0:
            raise ValueError("low_stock_threshold cannot be negative")

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.debug(
            "inventory_policy_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
