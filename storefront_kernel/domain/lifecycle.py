"""
Lifecycle state machines (``storefront_kernel.domain.lifecycle``).

Responsibility
--------------
Closed status enums and their transition tables for orders and designs.
Services consult these tables before persisting any status change; the
tables are the only definition of a legal transition.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Terminal states have no outgoing edges.
* A design that has left DRAFT never returns to it.
"""

from __future__ import annotations

from enum import Enum


# =========================================================================
# Orders
# =========================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PROCESSING: frozenset({
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.SHIPPED: frozenset({
        OrderStatus.DELIVERED,
    }),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_ORDER_STATUSES: frozenset[OrderStatus] = frozenset(
    status for status, targets in ORDER_TRANSITIONS.items() if not targets
)


# =========================================================================
# Designs
# =========================================================================


class DesignStatus(str, Enum):
    """Design review states."""

    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewDecision(str, Enum):
    """Decision an admin reviewer can make on a draft design."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> DesignStatus:
        if self is ReviewDecision.APPROVE:
            return DesignStatus.APPROVED
        return DesignStatus.REJECTED


DESIGN_TRANSITIONS: dict[DesignStatus, frozenset[DesignStatus]] = {
    DesignStatus.DRAFT: frozenset({
        DesignStatus.APPROVED,
        DesignStatus.REJECTED,
    }),
    DesignStatus.APPROVED: frozenset(),
    DesignStatus.REJECTED: frozenset(),
}

TERMINAL_DESIGN_STATUSES: frozenset[DesignStatus] = frozenset({
    DesignStatus.APPROVED,
    DesignStatus.REJECTED,
})


def can_transition_order(current: OrderStatus, target: OrderStatus) -> bool:
    """Return True if ``current -> target`` is a legal order transition."""
    return target in ORDER_TRANSITIONS[current]


def can_transition_design(current: DesignStatus, target: DesignStatus) -> bool:
    """Return True if ``current -> target`` is a legal design transition."""
    return target in DESIGN_TRANSITIONS[current]
