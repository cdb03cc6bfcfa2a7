"""Domain models for the inventory kernel."""

from inventory_kernel.models.movement import StockMovement
from inventory_kernel.models.product import Product
from inventory_kernel.models.purchase_order import (
    VALID_ORDER_TRANSITIONS,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
)
from inventory_kernel.models.sequence import SequenceCounter
from inventory_kernel.models.supplier import Supplier, SupplierStatus
from inventory_kernel.models.user_role import UserRole
from inventory_kernel.models.webhook import WebhookEndpoint, WebhookStatus

__all__ = [
    "Product",
    "StockMovement",
    "Supplier",
    "SupplierStatus",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderStatus",
    "VALID_ORDER_TRANSITIONS",
    "SequenceCounter",
    "UserRole",
    "WebhookEndpoint",
    "WebhookStatus",
]
