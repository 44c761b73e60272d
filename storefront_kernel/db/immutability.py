"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Order history and the stock ledger are only trustworthy if they cannot be
rewritten.  A wrong movement is corrected with a compensating movement; an
order line is never edited after checkout; a reviewed design keeps its
verdict.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check the rules:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

Counter maintenance (``products.stock_on_hand``) and design review go
through single conditional UPDATE statements issued by the services; those
statements are not ORM unit-of-work flushes and do not pass through these
listeners.  The listeners catch everything written through mapped
instances.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Rule
----------------|-------------------------------------------------------------
StockMovement   | ALWAYS immutable; never deleted
OrderItem       | ALWAYS immutable; never deleted
Order           | Never deleted; only status and audit fields may change
Design          | Frozen once approved or rejected
Product         | stock_on_hand / movement_count never assigned through the ORM
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from storefront_kernel.exceptions import ImmutabilityViolationError
from storefront_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})
_ORDER_MUTABLE_FIELDS = frozenset({"status"}) | _AUDIT_FIELDS
_PRODUCT_COUNTER_FIELDS = ("stock_on_hand", "movement_count")
_TERMINAL_DESIGN_STATUSES = frozenset({"approved", "rejected"})


def _block(entity_type: str, target, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [
        attr.key for attr in inspect(target).attrs if attr.history.has_changes()
    ]


# ---------------------------------------------------------------------------
# Stock movements and order items: append-only
# ---------------------------------------------------------------------------


def _check_stock_movement_immutability(mapper, connection, target):
    """Stock movements are never modified."""
    _block(
        "StockMovement",
        target,
        "UPDATE",
        "Stock movements are append-only; record a compensating movement",
    )


def _check_stock_movement_delete(mapper, connection, target):
    _block("StockMovement", target, "DELETE", "Stock movements cannot be deleted")


def _check_order_item_immutability(mapper, connection, target):
    """Order items are frozen once written."""
    _block("OrderItem", target, "UPDATE", "Order items cannot be modified")


def _check_order_item_delete(mapper, connection, target):
    _block("OrderItem", target, "DELETE", "Order items cannot be deleted")


# ---------------------------------------------------------------------------
# Orders: status-only updates
# ---------------------------------------------------------------------------


def _check_order_immutability(mapper, connection, target):
    """
    Allow only status and audit-field changes on an existing order.

    Lifecycle legality of the status change itself is checked by the
    sequencer against the order transition table.
    """
    for field in _changed_fields(target):
        if field not in _ORDER_MUTABLE_FIELDS:
            _block(
                "Order",
                target,
                "UPDATE",
                f"Cannot modify field '{field}' on a placed order",
                field=field,
            )


def _check_order_delete(mapper, connection, target):
    _block("Order", target, "DELETE", "Orders are never deleted")


# ---------------------------------------------------------------------------
# Designs: frozen after review
# ---------------------------------------------------------------------------


def _check_design_immutability(mapper, connection, target):
    """
    Block every change to a design whose status was already terminal.

    Covers the draft regression case: an approved or rejected design being
    set back to draft shows up as a status change whose old value is
    terminal.
    """
    status_history = get_history(target, "status")

    if status_history.deleted:
        previous = status_history.deleted[0]
    elif not status_history.added:
        previous = target.status
    else:
        previous = None

    previous = getattr(previous, "value", previous)
    if previous not in _TERMINAL_DESIGN_STATUSES:
        return

    for field in _changed_fields(target):
        if field in _AUDIT_FIELDS:
            continue
        _block(
            "Design",
            target,
            "UPDATE",
            f"Cannot modify field '{field}' on a {previous} design",
            field=field,
        )


# ---------------------------------------------------------------------------
# Products: counter fields move only through the ledger
# ---------------------------------------------------------------------------


def _check_product_counter_assignment(mapper, connection, target):
    for field in _PRODUCT_COUNTER_FIELDS:
        if get_history(target, field).has_changes():
            _block(
                "Product",
                target,
                "UPDATE",
                f"'{field}' changes only through stock movements",
                field=field,
            )


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def _listener_table():
    from storefront_kernel.models.design import Design
    from storefront_kernel.models.order import Order, OrderItem
    from storefront_kernel.models.product import Product
    from storefront_kernel.models.stock_movement import StockMovement

    return (
        (StockMovement, "before_update", _check_stock_movement_immutability),
        (StockMovement, "before_delete", _check_stock_movement_delete),
        (OrderItem, "before_update", _check_order_item_immutability),
        (OrderItem, "before_delete", _check_order_item_delete),
        (Order, "before_update", _check_order_immutability),
        (Order, "before_delete", _check_order_delete),
        (Design, "before_update", _check_design_immutability),
        (Product, "before_update", _check_product_counter_assignment),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Registering twice is harmless.
    """
    for target, event_name, listener_fn in _listener_table():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    corrupt data to verify detection (e.g. reconciliation tests).
    """
    for target, event_name, listener_fn in _listener_table():
        _safe_remove_listener(target, event_name, listener_fn)
