"""Read-only selectors."""

from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.selectors.product_selector import ProductSelector

__all__ = ["MovementSelector", "ProductSelector"]
