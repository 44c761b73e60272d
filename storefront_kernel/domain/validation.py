"""
Input validation (``storefront_kernel.domain.validation``).

Responsibility
--------------
Checks every externally supplied value before a service touches the store.
Each validator collects *all* problems as ``{"field", "message"}`` dicts and
raises one ``ValidationFailedError`` so a form can highlight every bad field
at once.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from urllib.parse import urlparse
from uuid import UUID

from storefront_kernel.domain.money import round_money
from storefront_kernel.domain.values import (
    CartLine,
    MediaItem,
    MediaKind,
    MovementKind,
    ProductCategory,
    ShippingAddress,
)
from storefront_kernel.exceptions import ValidationFailedError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

MIN_PROMPT_LENGTH = 3
DEFAULT_STOCK_IN_REASON = "Stock received"

_ADDRESS_FIELDS = ("name", "email", "street", "city", "state", "postal_code", "phone")


def _error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def _raise_if(errors: list[dict[str, Any]]) -> None:
    if errors:
        raise ValidationFailedError(errors)


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def is_valid_email(value: str) -> bool:
    return bool(value) and _EMAIL_RE.match(value) is not None


def is_valid_url(value: str, *, allow_data: bool = False) -> bool:
    """True for absolute http(s) URLs, plus ``data:`` URIs when allowed."""
    if _blank(value):
        return False
    if allow_data and value.startswith("data:"):
        return True
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# =========================================================================
# Checkout
# =========================================================================


@dataclass(frozen=True)
class CheckoutTotals:
    """Money figures derived from the cart lines."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal


def compute_totals(lines: Sequence[CartLine], tax_rate: Decimal) -> CheckoutTotals:
    """Subtotal is the sum of rounded line subtotals; tax is rounded once on it."""
    subtotal = sum(
        (round_money(line.line_subtotal) for line in lines), Decimal("0.00")
    )
    tax = round_money(subtotal * tax_rate)
    return CheckoutTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def cart_line_errors(lines: Sequence[CartLine]) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    if not lines:
        errors.append(_error("items", "Order must contain at least one item"))
        return errors

    for i, line in enumerate(lines):
        prefix = f"items[{i}]"
        if line.product_id is None:
            errors.append(_error(f"{prefix}.product_id", "Product is required"))
        elif not isinstance(line.product_id, UUID):
            errors.append(_error(f"{prefix}.product_id", "Product id must be a UUID"))
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int):
            errors.append(_error(f"{prefix}.quantity", "Quantity must be an integer"))
        elif line.quantity < 1:
            errors.append(_error(f"{prefix}.quantity", "Quantity must be at least 1"))
        if _blank(line.size):
            errors.append(_error(f"{prefix}.size", "Size is required"))
        if _blank(line.color):
            errors.append(_error(f"{prefix}.color", "Color is required"))
        if not isinstance(line.unit_price, Decimal):
            errors.append(_error(f"{prefix}.unit_price", "Price must be a Decimal"))
        elif not line.unit_price.is_finite() or line.unit_price < 0:
            errors.append(_error(f"{prefix}.unit_price", "Price must be non-negative"))
    return errors


def shipping_address_errors(
    address: ShippingAddress | None,
    min_phone_length: int,
) -> list[dict[str, str]]:
    if address is None:
        return [_error("shipping_address", "Shipping address is required")]

    errors: list[dict[str, str]] = []
    for name in _ADDRESS_FIELDS:
        if _blank(getattr(address, name)):
            errors.append(_error(f"shipping_address.{name}", "Field is required"))

    if not _blank(address.email) and not is_valid_email(address.email.strip()):
        errors.append(_error("shipping_address.email", "Invalid email address"))
    if not _blank(address.phone) and len(address.phone.strip()) < min_phone_length:
        errors.append(
            _error(
                "shipping_address.phone",
                f"Phone number must be at least {min_phone_length} characters",
            )
        )
    return errors


def validate_checkout(
    lines: Sequence[CartLine],
    total: Decimal,
    address: ShippingAddress | None,
    *,
    tax_rate: Decimal,
    min_phone_length: int,
) -> CheckoutTotals:
    """
    Validate a checkout request and return the derived totals.

    Raises:
        ValidationFailedError: With every offending field listed.
    """
    errors = cart_line_errors(lines)
    errors.extend(shipping_address_errors(address, min_phone_length))

    if not isinstance(total, Decimal) or isinstance(total, bool):
        errors.append(_error("total", "Total must be a Decimal"))
    _raise_if(errors)

    totals = compute_totals(lines, tax_rate)
    if round_money(total) != totals.total:
        raise ValidationFailedError.single(
            "total",
            f"Total {total} does not match computed total {totals.total}",
        )
    return totals


# =========================================================================
# Stock movements
# =========================================================================


def validate_movement(
    kind: MovementKind,
    delta: int,
    reason: str | None,
) -> str:
    """
    Check sign rules for a movement and return the reason to record.

    STOCK_IN needs a positive delta and defaults its reason; STOCK_OUT needs
    a negative delta and an explicit reason; ADJUSTMENT accepts either sign.
    """
    errors: list[dict[str, str]] = []
    if not isinstance(kind, MovementKind):
        errors.append(_error("kind", f"Unknown movement kind: {kind!r}"))
    if isinstance(delta, bool) or not isinstance(delta, int):
        errors.append(_error("delta", "Delta must be an integer"))
    elif delta == 0:
        errors.append(_error("delta", "Delta must not be zero"))
    _raise_if(errors)

    if kind is MovementKind.STOCK_IN and delta < 0:
        errors.append(_error("delta", "Stock in requires a positive quantity"))
    if kind is MovementKind.STOCK_OUT and delta > 0:
        errors.append(_error("delta", "Stock out requires a negative quantity"))

    text = (reason or "").strip()
    if not text:
        if kind is MovementKind.STOCK_IN:
            text = DEFAULT_STOCK_IN_REASON
        else:
            errors.append(_error("reason", "Reason is required"))
    _raise_if(errors)
    return text


# =========================================================================
# Designs
# =========================================================================


def coerce_category(value: ProductCategory | str, field: str) -> ProductCategory:
    try:
        return ProductCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in ProductCategory)
        raise ValidationFailedError.single(
            field, f"Must be one of: {allowed}"
        ) from None


def validate_design_input(
    name: str,
    prompt: str,
    product_type: ProductCategory | str,
) -> ProductCategory:
    errors: list[dict[str, str]] = []
    if _blank(name):
        errors.append(_error("name", "Name is required"))
    if _blank(prompt) or len(prompt.strip()) < MIN_PROMPT_LENGTH:
        errors.append(
            _error("prompt", f"Prompt must be at least {MIN_PROMPT_LENGTH} characters")
        )
    _raise_if(errors)
    return coerce_category(product_type, "product_type")


def validate_image_url(image_url: str) -> None:
    if not is_valid_url(image_url, allow_data=True):
        raise ValidationFailedError.single("image_url", "Invalid image URL")


# =========================================================================
# Catalog
# =========================================================================


def validate_product_input(
    name: str,
    description: str,
    price: Decimal,
    category: ProductCategory | str,
    sizes: Iterable[str],
    colors: Iterable[str],
    media: Iterable[MediaItem],
) -> ProductCategory:
    errors: list[dict[str, str]] = []
    if _blank(name):
        errors.append(_error("name", "Name is required"))
    if _blank(description):
        errors.append(_error("description", "Description is required"))
    if not isinstance(price, Decimal) or not price.is_finite():
        errors.append(_error("price", "Price must be a Decimal"))
    elif price < 0:
        errors.append(_error("price", "Price must be non-negative"))

    sizes = list(sizes)
    if not sizes:
        errors.append(_error("sizes", "At least one size is required"))
    for i, size in enumerate(sizes):
        if _blank(size):
            errors.append(_error(f"sizes[{i}]", "Size must not be blank"))

    colors = list(colors)
    if not colors:
        errors.append(_error("colors", "At least one color is required"))
    for i, color in enumerate(colors):
        if not isinstance(color, str) or not _HEX_COLOR_RE.match(color):
            errors.append(_error(f"colors[{i}]", "Color must be a #rrggbb hex value"))

    for i, item in enumerate(media):
        if not isinstance(item, MediaItem) or not isinstance(item.kind, MediaKind):
            errors.append(_error(f"media[{i}]", "Media must be an image or video"))
        elif not is_valid_url(item.url):
            errors.append(_error(f"media[{i}].url", "Invalid media URL"))

    try:
        result = coerce_category(category, "category")
    except ValidationFailedError as exc:
        errors.extend(exc.field_errors)
        result = None
    _raise_if(errors)
    return result
