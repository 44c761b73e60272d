"""Read-only selectors.  Every method returns frozen DTOs."""

from storefront_kernel.selectors.base import BaseSelector
from storefront_kernel.selectors.design_selector import DesignSelector
from storefront_kernel.selectors.inventory_selector import InventorySelector
from storefront_kernel.selectors.order_selector import OrderSelector

__all__ = [
    "BaseSelector",
    "DesignSelector",
    "InventorySelector",
    "OrderSelector",
]
