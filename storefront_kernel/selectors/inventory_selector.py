"""
Module: storefront_kernel.selectors.inventory_selector
Responsibility: Read-only access to the stock movement history and
    inventory totals for the admin inventory page.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import case, func, select

from storefront_kernel.domain.dtos import MovementRecord, MovementTotals
from storefront_kernel.domain.values import MovementKind
from storefront_kernel.models.product import Product
from storefront_kernel.models.stock_movement import StockMovement
from storefront_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector):
    """Selector for stock movement queries."""

    def movement_history(
        self,
        kind: MovementKind | str | None = None,
        product_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[MovementRecord]:
        """Movements newest first.

        Within one product, ``movement_no`` breaks ties between movements
        recorded in the same clock tick.
        """
        query = select(StockMovement)
        if kind is not None:
            query = query.where(StockMovement.kind == MovementKind(kind).value)
        if product_id is not None:
            query = query.where(StockMovement.product_id == product_id)
        query = query.order_by(
            StockMovement.created_at.desc(),
            StockMovement.movement_no.desc(),
        )
        if limit is not None:
            query = query.limit(limit)
        return [m.to_dto() for m in self.session.execute(query).scalars()]

    def movement_totals(self) -> MovementTotals:
        """Units received (positive deltas) and issued (negative deltas)."""
        total_in, total_out, count = self.session.execute(
            select(
                func.coalesce(
                    func.sum(case((StockMovement.delta > 0, StockMovement.delta), else_=0)),
                    0,
                ),
                func.coalesce(
                    func.sum(case((StockMovement.delta < 0, -StockMovement.delta), else_=0)),
                    0,
                ),
                func.count(StockMovement.id),
            )
        ).one()
        return MovementTotals(
            total_in=int(total_in),
            total_out=int(total_out),
            movement_count=count,
        )

    def total_stock(self) -> int:
        """Units on hand across the whole catalog."""
        return int(
            self.session.execute(
                select(func.coalesce(func.sum(Product.stock_on_hand), 0))
            ).scalar_one()
        )
