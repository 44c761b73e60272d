"""
Module: storefront_kernel.models.design
Responsibility: ORM persistence for AI-generated design artifacts and their
    review state.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Status values are limited by a check constraint; the service enforces
      the transition table and an ORM listener freezes terminal designs
      (approved and rejected never return to draft).

Failure modes:
    - ImmutabilityViolationError on any change to a terminal design.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from storefront_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from storefront_kernel.domain.dtos import DesignRecord


class Design(TrackedBase):
    """A generated design awaiting (or past) admin review."""

    __tablename__ = "designs"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'approved', 'rejected')",
            name="ck_designs_valid_status",
        ),
        CheckConstraint(
            "product_type IN ('T-Shirt', 'Hoodie', 'Jacket', 'Cap')",
            name="ck_designs_valid_product_type",
        ),
        Index("ix_designs_status_created", "status", "created_at"),
        Index("ix_designs_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    product_type: Mapped[str] = mapped_column(String(50), nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    reviewed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    review_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<Design {self.name} status={self.status}>"

    def to_dto(self) -> DesignRecord:
        """Convert ORM model to frozen domain DTO."""
        from storefront_kernel.domain.dtos import DesignRecord
        from storefront_kernel.domain.lifecycle import DesignStatus
        from storefront_kernel.domain.values import ProductCategory

        return DesignRecord(
            design_id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            prompt=self.prompt,
            product_type=ProductCategory(self.product_type),
            image_url=self.image_url,
            status=DesignStatus(self.status),
            reviewed_by_id=self.reviewed_by_id,
            reviewed_at=self.reviewed_at,
            review_reason=self.review_reason,
            created_at=self.created_at,
        )
