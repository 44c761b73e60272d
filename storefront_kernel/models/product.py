"""
Module: storefront_kernel.models.product
Responsibility: ORM persistence for catalog products and their cached
    on-hand stock counter.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - stock_on_hand is a cache of the stock movement fold.  It is only ever
      changed by a single conditional UPDATE in the stock ledger service
      (or by the reconciliation job), never by assigning the attribute.
    - movement_count counts the movements appended for this product and is
      bumped by the same UPDATE, so movement numbers are gap-free.
    - SKU is unique when present.

Failure modes:
    - IntegrityError on duplicate SKU.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from storefront_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from storefront_kernel.domain.dtos import ProductRecord


class Product(TrackedBase):
    """
    A sellable apparel product.

    ``sizes``, ``colors`` and ``media`` are ordered JSON arrays; media
    entries are ``{"kind": "image"|"video", "url": ...}``.
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint(
            "category IN ('T-Shirt', 'Hoodie', 'Jacket', 'Cap')",
            name="ck_products_valid_category",
        ),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        Index("ix_products_stock_on_hand", "stock_on_hand"),
        Index("ix_products_category", "category"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    sizes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    colors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    media: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list,
    )
    sku: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    is_new: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    stock_on_hand: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    movement_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Product {self.name} stock={self.stock_on_hand}>"

    def to_dto(self) -> ProductRecord:
        """Convert ORM model to frozen domain DTO."""
        from storefront_kernel.domain.dtos import ProductRecord
        from storefront_kernel.domain.values import (
            MediaItem,
            MediaKind,
            ProductCategory,
        )

        return ProductRecord(
            product_id=self.id,
            name=self.name,
            description=self.description,
            price=Decimal(self.price),
            category=ProductCategory(self.category),
            sizes=tuple(self.sizes or ()),
            colors=tuple(self.colors or ()),
            media=tuple(
                MediaItem(kind=MediaKind(m["kind"]), url=m["url"])
                for m in (self.media or ())
            ),
            stock_on_hand=self.stock_on_hand,
            sku=self.sku,
            is_new=self.is_new,
            created_at=self.created_at,
        )
