"""
Module: storefront_kernel.models.order
Responsibility: ORM persistence for orders and their line items.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (store_id, seq) and (store_id, order_number) are unique; the number is
      derived from seq, which comes from the locked sequence counter.
    - total = subtotal + tax; subtotal = sum of line subtotals.  Checked by
      the sequencer before insert.
    - Orders are never deleted.  Only status and audit fields change after
      insert (db/immutability.py).
    - Order items are immutable once written.
    - stock_decremented records whether checkout wrote STOCK_OUT movements;
      cancellation restocks only when it is set.

Failure modes:
    - IntegrityError on duplicate order number (a sequencing bug).
    - ImmutabilityViolationError on forbidden UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from storefront_kernel.domain.dtos import OrderItemRecord, OrderRecord


class Order(TrackedBase):
    """
    A placed order.

    Contract:
        Created atomically with all its items by the order sequencer.  After
        that only ``status`` moves, along the order lifecycle table.
    """

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("store_id", "seq", name="uq_orders_store_seq"),
        UniqueConstraint("store_id", "order_number", name="uq_orders_store_number"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'delivered', 'cancelled')",
            name="ck_orders_valid_status",
        ),
        Index("ix_orders_status_created", "status", "created_at"),
        Index("ix_orders_user", "user_id"),
    )

    store_id: Mapped[str] = mapped_column(String(50), nullable=False)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    stock_decremented: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    ship_name: Mapped[str] = mapped_column(String(200), nullable=False)
    ship_email: Mapped[str] = mapped_column(String(320), nullable=False)
    ship_street: Mapped[str] = mapped_column(String(500), nullable=False)
    ship_city: Mapped[str] = mapped_column(String(200), nullable=False)
    ship_state: Mapped[str] = mapped_column(String(200), nullable=False)
    ship_postal_code: Mapped[str] = mapped_column(String(50), nullable=False)
    ship_phone: Mapped[str] = mapped_column(String(50), nullable=False)

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.line_no",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} status={self.status}>"

    def to_dto(self) -> OrderRecord:
        """Convert ORM model to frozen domain DTO."""
        from storefront_kernel.domain.dtos import OrderRecord
        from storefront_kernel.domain.lifecycle import OrderStatus
        from storefront_kernel.domain.values import ShippingAddress

        return OrderRecord(
            order_id=self.id,
            order_number=self.order_number,
            store_id=self.store_id,
            seq=self.seq,
            user_id=self.user_id,
            status=OrderStatus(self.status),
            subtotal=Decimal(self.subtotal),
            tax=Decimal(self.tax),
            total=Decimal(self.total),
            shipping_address=ShippingAddress(
                name=self.ship_name,
                email=self.ship_email,
                street=self.ship_street,
                city=self.ship_city,
                state=self.ship_state,
                postal_code=self.ship_postal_code,
                phone=self.ship_phone,
            ),
            items=tuple(item.to_dto() for item in self.items),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class OrderItem(Base):
    """
    One line of an order.

    ``unit_price`` is the price the customer saw at checkout, not a pointer
    to the current catalog price.  ``product_id`` is kept as a plain column
    so catalog edits never cascade into order history.
    """

    __tablename__ = "order_items"

    __table_args__ = (
        UniqueConstraint("order_id", "line_no", name="uq_order_items_order_line"),
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        Index("ix_order_items_product", "product_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("orders.id"), nullable=False,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    product_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    line_subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    size: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )

    order: Mapped[Order] = relationship("Order", back_populates="items")

    def __repr__(self) -> str:
        return f"<OrderItem {self.line_no} x{self.quantity}>"

    def to_dto(self) -> OrderItemRecord:
        from storefront_kernel.domain.dtos import OrderItemRecord

        return OrderItemRecord(
            line_no=self.line_no,
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=Decimal(self.unit_price),
            line_subtotal=Decimal(self.line_subtotal),
            size=self.size,
            color=self.color,
        )
