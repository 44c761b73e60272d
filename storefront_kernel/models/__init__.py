"""ORM models for the storefront kernel."""

from storefront_kernel.models.design import Design
from storefront_kernel.models.order import Order, OrderItem
from storefront_kernel.models.product import Product
from storefront_kernel.models.stock_movement import StockMovement

__all__ = [
    "Design",
    "Order",
    "OrderItem",
    "Product",
    "StockMovement",
]
