"""
OrderSequencer -- checkout persistence and order numbering.

Responsibility:
    Validates a finalized cart, allocates the next ``ORD-<n>`` number for
    the store from the locked sequence counter, and writes the order with
    all of its items as one unit.  Also drives admin status changes along
    the order lifecycle table.

Architecture position:
    Kernel > Services -- imperative shell.
    Uses SequenceService for numbers and StockLedger when checkout
    decrements stock.

Invariants enforced:
    - Order numbers are unique and strictly increasing per store, in
      commit order.  The first order of an empty store is
      ``<prefix><order_number_start + 1>`` (``ORD-7001`` by default).
    - No partial orders: number allocation, the order row, its items and
      any checkout stock-out movements share one savepoint.
    - subtotal = sum of line subtotals and total = subtotal + tax, checked
      against the caller's total before anything is written.
    - Status only moves along ORDER_TRANSITIONS.

Failure modes:
    - ValidationFailedError: bad cart, address or total (nothing written).
    - InsufficientStockError / ProductNotFoundError: checkout stock-out
      rejected (only with decrement_stock_on_checkout; nothing written).
    - ConflictError / PersistenceFailedError / StoreTimeoutError: store
      failure (nothing written).
    - OrderNotFoundError, InvalidTransitionError, UnauthorizedError:
      status changes.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront_kernel.domain.clock import Clock
from storefront_kernel.domain.dtos import OrderPlacement
from storefront_kernel.domain.lifecycle import OrderStatus, can_transition_order
from storefront_kernel.domain.money import round_money
from storefront_kernel.domain.policies import InventoryPolicy, OrderingPolicy
from storefront_kernel.domain.validation import validate_checkout
from storefront_kernel.domain.values import (
    SYSTEM_ACTOR_ID,
    CartLine,
    MovementKind,
    Principal,
    ShippingAddress,
)
from storefront_kernel.exceptions import (
    InvalidTransitionError,
    OrderNotFoundError,
    ValidationFailedError,
)
from storefront_kernel.logging_config import LogContext, get_logger
from storefront_kernel.models.order import Order, OrderItem
from storefront_kernel.services.base import BaseService, translate_store_errors
from storefront_kernel.services.sequence_service import SequenceService
from storefront_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.order_sequencer")


class OrderSequencer(BaseService):
    """
    Places orders and moves them through their lifecycle.

    Contract:
        ``place_order`` either returns an ``OrderPlacement`` for a fully
        written order or raises with nothing written.  The caller commits.

    Non-goals:
        - Does NOT commit or retry.
        - Does NOT re-price lines from the catalog; the cart's unit prices
          are the snapshot that gets stored.
    """

    def __init__(
        self,
        session: Session,
        policy: OrderingPolicy | None = None,
        inventory_policy: InventoryPolicy | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy or OrderingPolicy()
        self._inventory_policy = inventory_policy or InventoryPolicy()
        self._sequences = SequenceService(session)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def place_order(
        self,
        lines: Sequence[CartLine],
        total: Decimal,
        shipping_address: ShippingAddress,
        user_id: UUID | None = None,
    ) -> OrderPlacement:
        """
        Persist a checkout as a new order.

        Preconditions:
            - ``lines`` is the finalized cart (at least one line).
            - ``total`` is what the customer was shown.

        Postconditions:
            - One order row and one item row per line exist inside the
              caller's transaction, numbered with the next value of the
              store's counter.

        Args:
            lines: Cart lines with price snapshots.
            total: Expected order total; must equal subtotal + tax.
            shipping_address: Where to ship.
            user_id: Customer id, or None for a guest checkout.

        Returns:
            OrderPlacement with the internal id, the order number and the
            stored total.
        """
        policy = self._policy
        lines = list(lines)
        totals = validate_checkout(
            lines,
            total,
            shipping_address,
            tax_rate=policy.tax_rate,
            min_phone_length=policy.min_phone_length,
        )
        actor_id = user_id or SYSTEM_ACTOR_ID
        address = shipping_address

        with LogContext.bind(store_id=policy.store_id, actor_id=actor_id):
            with translate_store_errors("place_order"):
                with self.session.begin_nested():
                    seq = self._allocate_seq()
                    order_number = policy.format_order_number(seq)
                    now = self._clock.now()

                    order = Order(
                        store_id=policy.store_id,
                        seq=seq,
                        order_number=order_number,
                        user_id=user_id,
                        status=OrderStatus.PENDING.value,
                        stock_decremented=policy.decrement_stock_on_checkout,
                        subtotal=totals.subtotal,
                        tax=totals.tax,
                        total=totals.total,
                        ship_name=address.name.strip(),
                        ship_email=address.email.strip(),
                        ship_street=address.street.strip(),
                        ship_city=address.city.strip(),
                        ship_state=address.state.strip(),
                        ship_postal_code=address.postal_code.strip(),
                        ship_phone=address.phone.strip(),
                        created_at=now,
                        updated_at=now,
                        created_by_id=actor_id,
                    )
                    order.items = [
                        OrderItem(
                            line_no=line_no,
                            product_id=line.product_id,
                            product_name=line.product_name,
                            quantity=line.quantity,
                            unit_price=round_money(line.unit_price),
                            line_subtotal=round_money(line.line_subtotal),
                            size=line.size.strip(),
                            color=line.color.strip(),
                            created_at=now,
                        )
                        for line_no, line in enumerate(lines, start=1)
                    ]
                    self.session.add(order)
                    self.session.flush()

                    if policy.decrement_stock_on_checkout:
                        self._stock_out(order_number, lines, actor_id)

            logger.info(
                "order_placed",
                extra={
                    "order_id": str(order.id),
                    "order_number": order_number,
                    "seq": seq,
                    "line_count": len(lines),
                    "total": totals.total,
                },
            )

        return OrderPlacement(
            order_id=order.id,
            order_number=order_number,
            total=totals.total,
        )

    def _allocate_seq(self) -> int:
        """
        Next value of the store's order-number counter.

        A brand-new counter starts at the configured value, or at the
        highest existing order seq for the store if orders predate the
        counter, so numbering never goes backward.
        """
        name = SequenceService.order_number_sequence(self._policy.store_id)
        start = self._policy.order_number_start
        if self._sequences.current_value(name) is None:
            existing = self.session.execute(
                select(func.max(Order.seq)).where(
                    Order.store_id == self._policy.store_id
                )
            ).scalar_one_or_none()
            if existing is not None and existing > start:
                logger.warning(
                    "order_counter_seeded_from_existing_orders",
                    extra={"sequence_name": name, "start": existing},
                )
                start = existing
        return self._sequences.next_value(name, start=start)

    def _stock_out(
        self,
        order_number: str,
        lines: Sequence[CartLine],
        actor_id: UUID,
    ) -> None:
        ledger = StockLedger(self.session, self._inventory_policy, self._clock)
        for line in lines:
            ledger.apply_movement(
                actor_id,
                line.product_id,
                -line.quantity,
                MovementKind.STOCK_OUT,
                reason=f"Order {order_number}",
                reference=order_number,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def update_status(
        self,
        principal: Principal,
        order_id: UUID,
        new_status: OrderStatus | str,
    ) -> OrderStatus:
        """
        Move an order to ``new_status`` (admin only).

        Setting the current status again is a no-op.  Cancelling an order
        whose checkout took stock puts its quantities back with compensating
        STOCK_IN movements, whatever the policy says now.

        Raises:
            UnauthorizedError, ValidationFailedError, OrderNotFoundError,
            InvalidTransitionError, PersistenceFailedError.
        """
        self._require_admin(principal, "update order status")
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationFailedError.single(
                "status", f"Unknown order status: {new_status!r}"
            ) from None

        with LogContext.bind(actor_id=principal.actor_id, order_id=order_id):
            with translate_store_errors("update_order_status"):
                with self.session.begin_nested():
                    order = self.session.execute(
                        select(Order)
                        .where(Order.id == order_id)
                        .with_for_update()
                        .execution_options(populate_existing=True)
                    ).scalar_one_or_none()
                    if order is None:
                        raise OrderNotFoundError(str(order_id))

                    current = OrderStatus(order.status)
                    if current is target:
                        return current
                    if not can_transition_order(current, target):
                        logger.warning(
                            "order_transition_rejected",
                            extra={"from_status": current.value, "to_status": target.value},
                        )
                        raise InvalidTransitionError(
                            entity_type="Order",
                            entity_id=str(order_id),
                            from_status=current.value,
                            to_status=target.value,
                        )

                    order.status = target.value
                    order.updated_at = self._clock.now()
                    order.updated_by_id = principal.actor_id
                    self.session.flush()

                    if target is OrderStatus.CANCELLED and order.stock_decremented:
                        self._restock(order, principal.actor_id)

            logger.info(
                "order_status_changed",
                extra={
                    "order_number": order.order_number,
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )
        return target

    def _restock(self, order: Order, actor_id: UUID) -> None:
        ledger = StockLedger(self.session, self._inventory_policy, self._clock)
        for item in order.items:
            ledger.apply_movement(
                actor_id,
                item.product_id,
                item.quantity,
                MovementKind.STOCK_IN,
                reason=f"Order {order.order_number} cancelled",
                reference=order.order_number,
            )
