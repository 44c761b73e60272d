"""
Pure domain layer.

This module contains value objects, lifecycle tables, validation and DTOs
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)

All domain objects are immutable and deterministic.
"""

from storefront_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from storefront_kernel.domain.dtos import (
    DashboardSummary,
    DesignRecord,
    MovementRecord,
    MovementTotals,
    OrderItemRecord,
    OrderPlacement,
    OrderRecord,
    ProductRecord,
    ReconciliationReport,
    StockDiscrepancy,
    StockLevel,
)
from storefront_kernel.domain.image_generation import ImageGenerator
from storefront_kernel.domain.lifecycle import (
    DESIGN_TRANSITIONS,
    ORDER_TRANSITIONS,
    TERMINAL_DESIGN_STATUSES,
    TERMINAL_ORDER_STATUSES,
    DesignStatus,
    OrderStatus,
    ReviewDecision,
)
from storefront_kernel.domain.values import (
    SYSTEM_ACTOR_ID,
    CartLine,
    MediaItem,
    MediaKind,
    MovementKind,
    Principal,
    ProductCategory,
    ShippingAddress,
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
    # Values
    "SYSTEM_ACTOR_ID",
    "CartLine",
    "MediaItem",
    "MediaKind",
    "MovementKind",
    "Principal",
    "ProductCategory",
    "ShippingAddress",
    # Lifecycle
    "OrderStatus",
    "DesignStatus",
    "ReviewDecision",
    "ORDER_TRANSITIONS",
    "DESIGN_TRANSITIONS",
    "TERMINAL_ORDER_STATUSES",
    "TERMINAL_DESIGN_STATUSES",
    # DTOs
    "DashboardSummary",
    "DesignRecord",
    "MovementRecord",
    "MovementTotals",
    "OrderItemRecord",
    "OrderPlacement",
    "OrderRecord",
    "ProductRecord",
    "ReconciliationReport",
    "StockDiscrepancy",
    "StockLevel",
    # Collaborators
    "ImageGenerator",
]
