"""
StockLedger -- append-only stock movements with a cached on-hand counter.

Responsibility:
    Records STOCK_IN / STOCK_OUT / ADJUSTMENT movements and keeps
    ``products.stock_on_hand`` equal to the sum of each product's movement
    deltas.  Answers current-stock and low-stock queries from the counter.

Architecture position:
    Kernel > Services -- imperative shell.
    Called directly by admin flows and by OrderSequencer when checkout
    decrements stock.

Invariants enforced:
    - On-hand = sum of deltas.  The counter and the movement row are
      written in one savepoint; neither exists without the other.
    - No lost updates: the counter moves through a single conditional
      store-side statement

          UPDATE products
             SET stock_on_hand = stock_on_hand + :delta, ...
           WHERE id = :id AND stock_on_hand + :delta >= 0
       RETURNING stock_on_hand, movement_count

      so concurrent movements on one product serialize on its row and the
      counter can never go negative (unless the inventory policy allows it).
    - A rejected movement changes nothing: no counter change, no row.

Failure modes:
    - UnauthorizedError: principal is not an admin.
    - ValidationFailedError: zero delta, wrong sign for the kind, missing
      reason.
    - ProductNotFoundError: unknown product.
    - InsufficientStockError: movement would drive stock below zero.
    - PersistenceFailedError / StoreTimeoutError: store failure.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from storefront_kernel.domain.clock import Clock
from storefront_kernel.domain.dtos import MovementRecord, StockLevel
from storefront_kernel.domain.policies import InventoryPolicy
from storefront_kernel.domain.validation import validate_movement
from storefront_kernel.domain.values import MovementKind, Principal, ProductCategory
from storefront_kernel.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    ValidationFailedError,
)
from storefront_kernel.logging_config import LogContext, get_logger
from storefront_kernel.models.product import Product
from storefront_kernel.models.stock_movement import StockMovement
from storefront_kernel.services.base import BaseService, translate_store_errors

logger = get_logger("services.stock_ledger")


class StockLedger(BaseService):
    """
    Write side of the stock ledger.

    Contract:
        ``record_movement`` is the admin entry point.  ``apply_movement`` is
        the unauthenticated primitive used by kernel flows (checkout) after
        they have done their own checks.

    Non-goals:
        - Does NOT commit; the caller owns the transaction.
        - Does NOT retry on store failures.
    """

    def __init__(
        self,
        session: Session,
        policy: InventoryPolicy | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy or InventoryPolicy()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_movement(
        self,
        principal: Principal,
        product_id: UUID,
        delta: int,
        kind: MovementKind | str,
        reason: str | None = None,
        reference: str | None = None,
    ) -> MovementRecord:
        """
        Record an admin stock movement.

        Preconditions:
            - ``principal.is_admin`` is true.
            - ``delta`` is a non-zero int whose sign matches ``kind``.

        Postconditions:
            - The product's counter moved by exactly ``delta`` and one
              movement row with ``balance_after`` equal to the new counter
              was appended.

        Raises:
            UnauthorizedError, ValidationFailedError, ProductNotFoundError,
            InsufficientStockError, PersistenceFailedError.
        """
        self._require_admin(principal, "record stock movement")
        try:
            kind = MovementKind(kind)
        except ValueError:
            raise ValidationFailedError.single(
                "kind", f"Unknown movement kind: {kind!r}"
            ) from None
        reason = validate_movement(kind, delta, reason)
        return self.apply_movement(
            principal.actor_id, product_id, delta, kind, reason, reference,
        )

    def apply_movement(
        self,
        actor_id: UUID,
        product_id: UUID,
        delta: int,
        kind: MovementKind,
        reason: str,
        reference: str | None = None,
    ) -> MovementRecord:
        """Move the counter and append the movement in one savepoint."""
        with LogContext.bind(actor_id=actor_id, product_id=product_id):
            with translate_store_errors("record_movement"):
                with self.session.begin_nested():
                    row = self._bump_counter(product_id, delta)
                    if row is None:
                        self._raise_rejected(product_id, delta)
                    balance_after, movement_no = row

                    movement = StockMovement(
                        product_id=product_id,
                        movement_no=movement_no,
                        kind=kind.value,
                        delta=delta,
                        balance_after=balance_after,
                        reason=reason,
                        reference=reference,
                        actor_id=actor_id,
                        created_at=self._clock.now(),
                    )
                    self.session.add(movement)
                    self.session.flush()

            self._expire_cached(
                Product, product_id, "stock_on_hand", "movement_count", "updated_at",
            )
            logger.info(
                "stock_movement_recorded",
                extra={
                    "kind": kind.value,
                    "delta": delta,
                    "balance_after": balance_after,
                    "movement_no": movement_no,
                    "reference": reference,
                },
            )
        return movement.to_dto()

    def _bump_counter(self, product_id: UUID, delta: int):
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(
                stock_on_hand=Product.stock_on_hand + delta,
                movement_count=Product.movement_count + 1,
                updated_at=self._clock.now(),
            )
            .returning(Product.stock_on_hand, Product.movement_count)
            .execution_options(synchronize_session=False)
        )
        if not self._policy.allow_negative_inventory:
            stmt = stmt.where(Product.stock_on_hand + delta >= 0)
        return self.session.execute(stmt).one_or_none()

    def _raise_rejected(self, product_id: UUID, delta: int):
        on_hand = self.session.execute(
            select(Product.stock_on_hand).where(Product.id == product_id)
        ).scalar_one_or_none()
        if on_hand is None:
            logger.warning("stock_movement_unknown_product")
            raise ProductNotFoundError(str(product_id))
        logger.warning(
            "insufficient_stock_rejected",
            extra={"on_hand": on_hand, "requested": -delta},
        )
        raise InsufficientStockError(
            product_id=str(product_id),
            on_hand=on_hand,
            requested=-delta,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current_stock(self, product_id: UUID) -> int:
        """Cached on-hand counter, read fresh from the store."""
        on_hand = self.session.execute(
            select(Product.stock_on_hand).where(Product.id == product_id)
        ).scalar_one_or_none()
        if on_hand is None:
            raise ProductNotFoundError(str(product_id))
        return on_hand

    def low_stock(self, threshold: int | None = None) -> list[StockLevel]:
        """Products whose counter is strictly below ``threshold``.

        Ordered by stock ascending, then name.
        """
        limit = self._policy.low_stock_threshold if threshold is None else threshold
        rows = self.session.execute(
            select(Product.id, Product.name, Product.category, Product.stock_on_hand)
            .where(Product.stock_on_hand < limit)
            .order_by(Product.stock_on_hand, Product.name)
        ).all()
        return [
            StockLevel(
                product_id=row.id,
                name=row.name,
                category=ProductCategory(row.category),
                stock_on_hand=row.stock_on_hand,
            )
            for row in rows
        ]

    def movement_fold(self, product_id: UUID) -> int:
        """Sum of all deltas for a product -- the slow, authoritative path."""
        self.current_stock(product_id)
        return self.session.execute(
            select(func.coalesce(func.sum(StockMovement.delta), 0))
            .where(StockMovement.product_id == product_id)
        ).scalar_one()
