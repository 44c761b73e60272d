"""
Data Transfer Objects (``storefront_kernel.domain.dtos``).

Responsibility
--------------
Frozen records returned by services and selectors.  ORM models convert to
these via ``to_dto()``; callers never receive a live ORM instance, so nothing
outside a service can mutate persisted state by accident.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from storefront_kernel.domain.lifecycle import DesignStatus, OrderStatus
from storefront_kernel.domain.values import (
    MediaItem,
    MovementKind,
    ProductCategory,
    ShippingAddress,
)


# =========================================================================
# Catalog
# =========================================================================


@dataclass(frozen=True)
class ProductRecord:
    """Snapshot of a catalog product."""

    product_id: UUID
    name: str
    description: str
    price: Decimal
    category: ProductCategory
    sizes: tuple[str, ...]
    colors: tuple[str, ...]
    media: tuple[MediaItem, ...]
    stock_on_hand: int
    sku: str | None = None
    is_new: bool = False
    created_at: datetime | None = None


# =========================================================================
# Orders
# =========================================================================


@dataclass(frozen=True)
class OrderPlacement:
    """Result of a successful checkout."""

    order_id: UUID
    order_number: str
    total: Decimal


@dataclass(frozen=True)
class OrderItemRecord:
    line_no: int
    product_id: UUID
    product_name: str | None
    quantity: int
    unit_price: Decimal
    line_subtotal: Decimal
    size: str
    color: str


@dataclass(frozen=True)
class OrderRecord:
    """Full view of a persisted order, items in line order."""

    order_id: UUID
    order_number: str
    store_id: str
    seq: int
    user_id: UUID | None
    status: OrderStatus
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    shipping_address: ShippingAddress
    items: tuple[OrderItemRecord, ...] = field(default_factory=tuple)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class DashboardSummary:
    """Headline numbers for the admin dashboard.

    ``total_revenue`` excludes cancelled orders.
    """

    total_revenue: Decimal
    total_orders: int
    pending_orders: int
    recent_orders: tuple[OrderRecord, ...] = field(default_factory=tuple)


# =========================================================================
# Stock ledger
# =========================================================================


@dataclass(frozen=True)
class MovementRecord:
    """One appended stock movement.

    ``movement_no`` is the 1-based position of this movement in the
    product's ledger; ``balance_after`` is the counter right after it.
    """

    movement_id: UUID
    product_id: UUID
    kind: MovementKind
    delta: int
    balance_after: int
    movement_no: int
    reason: str
    actor_id: UUID
    reference: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class StockLevel:
    product_id: UUID
    name: str
    category: ProductCategory
    stock_on_hand: int


@dataclass(frozen=True)
class MovementTotals:
    """Aggregate units moved in and out across the whole ledger."""

    total_in: int
    total_out: int
    movement_count: int

    @property
    def net(self) -> int:
        return self.total_in - self.total_out


@dataclass(frozen=True)
class StockDiscrepancy:
    """A product whose cached counter disagrees with its movement fold."""

    product_id: UUID
    name: str
    cached: int
    folded: int

    @property
    def difference(self) -> int:
        return self.cached - self.folded


@dataclass(frozen=True)
class ReconciliationReport:
    checked_count: int
    discrepancies: tuple[StockDiscrepancy, ...]
    repaired: bool = False

    @property
    def is_consistent(self) -> bool:
        return not self.discrepancies


# =========================================================================
# Designs
# =========================================================================


@dataclass(frozen=True)
class DesignRecord:
    """Snapshot of a design artifact and its review state."""

    design_id: UUID
    owner_id: UUID
    name: str
    prompt: str
    product_type: ProductCategory
    image_url: str
    status: DesignStatus
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    review_reason: str | None = None
    created_at: datetime | None = None
