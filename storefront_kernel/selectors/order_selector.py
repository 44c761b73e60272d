"""
Module: storefront_kernel.selectors.order_selector
Responsibility: Read-only access to orders and the admin dashboard figures.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Items are returned in line order.
    - Lists are newest first (created_at, then seq, descending), so orders
      placed within the same clock tick still come back in number order.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from storefront_kernel.domain.dtos import DashboardSummary, OrderRecord
from storefront_kernel.domain.lifecycle import OrderStatus
from storefront_kernel.domain.money import round_money
from storefront_kernel.models.order import Order
from storefront_kernel.selectors.base import BaseSelector


class OrderSelector(BaseSelector):
    """Selector for order queries."""

    _NEWEST_FIRST = (Order.created_at.desc(), Order.seq.desc())

    def get_order(self, order_id: UUID) -> OrderRecord | None:
        order = self.session.get(Order, order_id)
        return order.to_dto() if order is not None else None

    def get_by_number(
        self, order_number: str, store_id: str | None = None
    ) -> OrderRecord | None:
        query = select(Order).where(Order.order_number == order_number)
        if store_id is not None:
            query = query.where(Order.store_id == store_id)
        order = self.session.execute(query.limit(1)).scalar_one_or_none()
        return order.to_dto() if order is not None else None

    def list_orders(
        self,
        status: OrderStatus | str | None = None,
        user_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[OrderRecord]:
        """Orders newest first, optionally filtered by status and customer."""
        query = select(Order)
        if status is not None:
            query = query.where(Order.status == OrderStatus(status).value)
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        query = query.order_by(*self._NEWEST_FIRST)
        if limit is not None:
            query = query.limit(limit)
        return [order.to_dto() for order in self.session.execute(query).scalars()]

    def recent_orders(self, limit: int = 5) -> list[OrderRecord]:
        return self.list_orders(limit=limit)

    def dashboard_summary(self, recent_limit: int = 5) -> DashboardSummary:
        """
        Revenue, order counts and the most recent orders.

        Revenue counts every order except cancelled ones.
        """
        revenue = self.session.execute(
            select(func.coalesce(func.sum(Order.total), 0))
            .where(Order.status != OrderStatus.CANCELLED.value)
        ).scalar_one()
        total_orders = self.session.execute(
            select(func.count(Order.id))
        ).scalar_one()
        pending_orders = self.session.execute(
            select(func.count(Order.id))
            .where(Order.status == OrderStatus.PENDING.value)
        ).scalar_one()

        return DashboardSummary(
            total_revenue=round_money(Decimal(str(revenue))),
            total_orders=total_orders,
            pending_orders=pending_orders,
            recent_orders=tuple(self.recent_orders(recent_limit)),
        )
