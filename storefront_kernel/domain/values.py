"""
Value objects for the storefront kernel.

Responsibility:
    Immutable inputs that cross the service boundary: the authenticated
    principal, cart lines, the shipping address, and catalog enums.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  No imports from
    ``db/``, ``models/``, ``services/`` or ``selectors/``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

# Actor recorded as creator for guest checkouts and background jobs.
SYSTEM_ACTOR_ID = UUID(int=0)


class ProductCategory(str, Enum):
    """Closed set of apparel categories (also the design target types)."""

    T_SHIRT = "T-Shirt"
    HOODIE = "Hoodie"
    JACKET = "Jacket"
    CAP = "Cap"


class MediaKind(str, Enum):
    """Kind of a product media entry."""

    IMAGE = "image"
    VIDEO = "video"


class MovementKind(str, Enum):
    """Kind of a stock ledger movement.

    Contract: STOCK_IN deltas are positive, STOCK_OUT deltas are negative,
    ADJUSTMENT deltas may carry either sign (never zero).
    """

    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    ADJUSTMENT = "adjustment"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as supplied by the identity provider.

    The kernel trusts ``is_admin``; it does not verify sessions itself.
    """

    actor_id: UUID
    is_admin: bool = False


@dataclass(frozen=True)
class MediaItem:
    """One product image or video."""

    kind: MediaKind
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "url": self.url}


@dataclass(frozen=True)
class CartLine:
    """One line of a finalized cart.

    ``unit_price`` is the price snapshot the customer saw; it is copied onto
    the order item and never re-read from the catalog.
    """

    product_id: UUID
    quantity: int
    size: str
    color: str
    unit_price: Decimal
    product_name: str | None = None

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class ShippingAddress:
    """Structured shipping address captured at checkout."""

    name: str
    email: str
    street: str
    city: str
    state: str
    postal_code: str
    phone: str
