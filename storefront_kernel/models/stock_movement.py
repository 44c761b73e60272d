"""
Module: storefront_kernel.models.stock_movement
Responsibility: ORM persistence for the append-only stock ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: movements are never updated or deleted
      (db/immutability.py).  Mistakes are reversed with a compensating
      movement.
    - A product's on-hand stock equals the sum of its movement deltas.
    - (product_id, movement_no) is unique; movement_no comes from the same
      conditional UPDATE that moved the counter, so each product's ledger
      has no gaps.
    - delta is never zero.

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE.
    - IntegrityError on a duplicate movement_no (a ledger bug).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from storefront_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from storefront_kernel.domain.dtos import MovementRecord


class StockMovement(Base):
    """One signed change to a product's on-hand quantity."""

    __tablename__ = "stock_movements"

    __table_args__ = (
        UniqueConstraint(
            "product_id", "movement_no", name="uq_stock_movements_product_no",
        ),
        CheckConstraint("delta <> 0", name="ck_stock_movements_nonzero_delta"),
        CheckConstraint(
            "kind IN ('stock_in', 'stock_out', 'adjustment')",
            name="ck_stock_movements_valid_kind",
        ),
        Index("ix_stock_movements_created", "created_at"),
        Index("ix_stock_movements_kind_created", "kind", "created_at"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False,
    )
    movement_no: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.kind} {self.delta:+d} "
            f"-> {self.balance_after}>"
        )

    def to_dto(self) -> MovementRecord:
        """Convert ORM model to frozen domain DTO."""
        from storefront_kernel.domain.dtos import MovementRecord
        from storefront_kernel.domain.values import MovementKind

        return MovementRecord(
            movement_id=self.id,
            product_id=self.product_id,
            kind=MovementKind(self.kind),
            delta=self.delta,
            balance_after=self.balance_after,
            movement_no=self.movement_no,
            reason=self.reason,
            actor_id=self.actor_id,
            reference=self.reference,
            created_at=self.created_at,
        )
