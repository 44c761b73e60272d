"""
StockReconciliationService -- rebuild on-hand counters from the ledger.

Responsibility:
    Folds the movement log per product, compares the result with the
    cached ``stock_on_hand`` counter and reports every disagreement.  With
    ``repair=True`` it overwrites each diverged counter with the fold.

Architecture position:
    Kernel > Services -- imperative shell.  An explicit maintenance job,
    never part of the checkout or movement hot path.

Invariants enforced:
    - The movement log is the source of truth; the counter is a
      materialized view of it.
    - Repairs happen under the product's row lock and recompute the fold
      inside the lock, so a movement that lands mid-job is not lost.

Failure modes:
    - PersistenceFailedError / StoreTimeoutError on store failure.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update

from storefront_kernel.domain.dtos import ReconciliationReport, StockDiscrepancy
from storefront_kernel.logging_config import LogContext, get_logger
from storefront_kernel.models.product import Product
from storefront_kernel.models.stock_movement import StockMovement
from storefront_kernel.services.base import BaseService, translate_store_errors

logger = get_logger("services.stock_reconciliation")


class StockReconciliationService(BaseService):
    """Replays the stock ledger against the cached counters."""

    def _folds(self):
        folded = (
            select(
                StockMovement.product_id.label("product_id"),
                func.sum(StockMovement.delta).label("folded"),
            )
            .group_by(StockMovement.product_id)
            .subquery()
        )
        return self.session.execute(
            select(
                Product.id,
                Product.name,
                Product.stock_on_hand,
                func.coalesce(folded.c.folded, 0).label("folded"),
            )
            .outerjoin(folded, folded.c.product_id == Product.id)
            .order_by(Product.name, Product.id)
        ).all()

    def reconcile(self, repair: bool = False) -> ReconciliationReport:
        """
        Compare every product's counter with its movement fold.

        Args:
            repair: When True, overwrite diverged counters with the fold.

        Returns:
            ReconciliationReport listing the discrepancies found (before
            any repair).
        """
        with translate_store_errors("reconcile_stock"):
            rows = self._folds()
            discrepancies = tuple(
                StockDiscrepancy(
                    product_id=row.id,
                    name=row.name,
                    cached=row.stock_on_hand,
                    folded=int(row.folded),
                )
                for row in rows
                if row.stock_on_hand != int(row.folded)
            )

            if repair:
                for discrepancy in discrepancies:
                    self._repair(discrepancy.product_id)

        logger.info(
            "stock_reconciliation_completed",
            extra={
                "checked_count": len(rows),
                "discrepancy_count": len(discrepancies),
                "repair": repair,
            },
        )
        return ReconciliationReport(
            checked_count=len(rows),
            discrepancies=discrepancies,
            repaired=repair and bool(discrepancies),
        )

    def _repair(self, product_id: UUID) -> None:
        with LogContext.bind(product_id=product_id):
            with self.session.begin_nested():
                cached = self.session.execute(
                    select(Product.stock_on_hand)
                    .where(Product.id == product_id)
                    .with_for_update()
                ).scalar_one()
                folded, last_no = self.session.execute(
                    select(
                        func.coalesce(func.sum(StockMovement.delta), 0),
                        func.coalesce(func.max(StockMovement.movement_no), 0),
                    ).where(StockMovement.product_id == product_id)
                ).one()
                self.session.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(
                        stock_on_hand=int(folded),
                        movement_count=int(last_no),
                        updated_at=self._clock.now(),
                    )
                    .execution_options(synchronize_session=False)
                )
                self._expire_cached(
                    Product, product_id, "stock_on_hand", "movement_count", "updated_at",
                )
            logger.warning(
                "stock_counter_repaired",
                extra={"cached": cached, "folded": int(folded)},
            )
