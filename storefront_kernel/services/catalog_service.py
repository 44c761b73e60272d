"""
CatalogService -- admin product creation.

Responsibility:
    Validates and inserts catalog products.  Stock always starts at zero;
    quantities only enter through the stock ledger.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Failure modes:
    - UnauthorizedError: caller is not an admin.
    - ValidationFailedError: bad name, price, category, colors or media.
    - ConflictError: SKU already in use.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import select

from storefront_kernel.domain.dtos import ProductRecord
from storefront_kernel.domain.money import round_money
from storefront_kernel.domain.validation import validate_product_input
from storefront_kernel.domain.values import MediaItem, Principal, ProductCategory
from storefront_kernel.exceptions import ConflictError
from storefront_kernel.logging_config import LogContext, get_logger
from storefront_kernel.models.product import Product
from storefront_kernel.services.base import BaseService, translate_store_errors

logger = get_logger("services.catalog")


class CatalogService(BaseService):
    """Write side of the product catalog."""

    def create_product(
        self,
        principal: Principal,
        name: str,
        description: str,
        price: Decimal,
        category: ProductCategory | str,
        sizes: Iterable[str],
        colors: Iterable[str],
        media: Iterable[MediaItem] = (),
        sku: str | None = None,
        is_new: bool = False,
    ) -> ProductRecord:
        """
        Create a product with zero stock (admin only).

        Returns:
            ProductRecord of the new product.
        """
        self._require_admin(principal, "create product")
        sizes = list(sizes) if sizes is not None else []
        colors = list(colors) if colors is not None else []
        media = list(media) if media is not None else []
        category = validate_product_input(
            name, description, price, category, sizes, colors, media,
        )
        sku = sku.strip() if sku and sku.strip() else None
        now = self._clock.now()

        with translate_store_errors("create_product"):
            if sku is not None:
                taken = self.session.execute(
                    select(Product.id).where(Product.sku == sku)
                ).scalar_one_or_none()
                if taken is not None:
                    raise ConflictError(
                        resource="product.sku", reason=f"SKU {sku!r} already exists",
                    )

            product = Product(
                name=name.strip(),
                description=description.strip(),
                price=round_money(price),
                category=category.value,
                sizes=[s.strip() for s in sizes],
                colors=[c.lower() for c in colors],
                media=[m.to_dict() for m in media],
                sku=sku,
                is_new=is_new,
                stock_on_hand=0,
                movement_count=0,
                created_at=now,
                updated_at=now,
                created_by_id=principal.actor_id,
            )
            self.session.add(product)
            self.session.flush()

        with LogContext.bind(actor_id=principal.actor_id, product_id=product.id):
            logger.info(
                "product_created",
                extra={"category": category.value, "sku": sku, "price": product.price},
            )
        return product.to_dto()
