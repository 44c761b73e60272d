"""
Typed Exception Hierarchy for the Storefront Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Checkout and inventory callers must react to failures precisely: a rejected
stock-out is shown to the admin, a validation failure is mapped back onto
form fields, a persistence failure is retried (or not) by the caller.
Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger.record_movement(admin, product_id, -10, MovementKind.STOCK_OUT)
    except InsufficientStockError as e:
        api_response(code=e.code, on_hand=e.on_hand, requested=e.requested)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StorefrontError (base)
    |
    +-- ValidationFailedError
    +-- UnauthorizedError
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- OrderNotFoundError
    |   +-- DesignNotFoundError
    +-- InsufficientStockError
    +-- InvalidTransitionError
    +-- PersistenceFailedError
    |   +-- StoreTimeoutError
    +-- ConflictError
    +-- ImmutabilityViolationError
    +-- DesignGenerationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                      | When Raised
--------------------------|------------------------------------------------
VALIDATION_FAILED         | Bad input shape; raised before any write
UNAUTHORIZED              | Principal lacks the admin flag for the action
PRODUCT_NOT_FOUND         | Product id doesn't exist
ORDER_NOT_FOUND           | Order id / number doesn't exist
DESIGN_NOT_FOUND          | Design id doesn't exist
INSUFFICIENT_STOCK        | Movement would drive on-hand stock below zero
INVALID_TRANSITION        | Status change not allowed by the lifecycle table
PERSISTENCE_FAILED        | Store error; nothing was committed
STORE_TIMEOUT             | Lock / statement timeout; nothing was committed
CONFLICT                  | Unique constraint collision detected at commit
IMMUTABILITY_VIOLATION    | Update/delete of an append-only record
DESIGN_GENERATION_FAILED  | Image generation collaborator failed

===============================================================================
PROPAGATION
===============================================================================

Validation and authorization errors are raised before the store is touched.
Store errors are translated at the service boundary into
PersistenceFailedError / StoreTimeoutError / ConflictError and are NEVER
retried by the kernel; retry policy belongs to the caller.
"""

from typing import Any


class StorefrontError(Exception):
    """
    Base exception for all storefront kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "STOREFRONT_ERROR"


class ValidationFailedError(StorefrontError):
    """Input failed validation; no write was attempted."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, field_errors: list[dict[str, Any]]):
        self.field_errors = field_errors
        fields = ", ".join(str(e.get("field")) for e in field_errors)
        super().__init__(
            f"Validation failed: {len(field_errors)} error(s) [{fields}]"
        )

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailedError":
        """Build an error for one offending field."""
        return cls([{"field": field, "message": message}])


class UnauthorizedError(StorefrontError):
    """Principal is not allowed to perform the action."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor_id: str, action: str):
        self.actor_id = actor_id
        self.action = action
        super().__init__(f"Actor {actor_id} is not authorized to {action}")


# Lookup failures


class NotFoundError(StorefrontError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class OrderNotFoundError(NotFoundError):
    """Order with given ID or number was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class DesignNotFoundError(NotFoundError):
    """Design with given ID was not found."""

    code: str = "DESIGN_NOT_FOUND"

    def __init__(self, design_id: str):
        self.design_id = design_id
        super().__init__(f"Design not found: {design_id}")


# Inventory


class InsufficientStockError(StorefrontError):
    """
    Movement would drive on-hand stock below zero.

    Neither the counter nor the movement log was touched.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, on_hand: int, requested: int):
        self.product_id = product_id
        self.on_hand = on_hand
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"on hand {on_hand}, requested {requested}"
        )


# Lifecycle


class InvalidTransitionError(StorefrontError):
    """Status change is not permitted by the entity's lifecycle."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        from_status: str,
        to_status: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot transition {entity_type} {entity_id} "
            f"from {from_status} to {to_status}"
        )


# Store failures


class PersistenceFailedError(StorefrontError):
    """The store rejected or failed the operation; nothing was committed."""

    code: str = "PERSISTENCE_FAILED"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Persistence failed during {operation}: {reason}")


class StoreTimeoutError(PersistenceFailedError):
    """A lock or statement timeout expired before the store answered."""

    code: str = "STORE_TIMEOUT"


class ConflictError(StorefrontError):
    """
    A concurrent writer won a uniqueness race at commit time.

    Raised for order-number collisions and duplicate SKUs.  The kernel
    does not retry; the caller decides.
    """

    code: str = "CONFLICT"

    def __init__(self, resource: str, reason: str):
        self.resource = resource
        self.reason = reason
        super().__init__(f"Conflict on {resource}: {reason}")


class ImmutabilityViolationError(StorefrontError):
    """Attempted modification of an append-only or terminal record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Collaborators


class DesignGenerationError(StorefrontError):
    """The image generation collaborator failed or returned garbage."""

    code: str = "DESIGN_GENERATION_FAILED"

    def __init__(self, product_type: str, reason: str):
        self.product_type = product_type
        self.reason = reason
        super().__init__(
            f"Design generation failed for {product_type}: {reason}"
        )
