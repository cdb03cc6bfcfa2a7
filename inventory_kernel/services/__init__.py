"""Flush-only kernel services.  Callers own commit and rollback."""

from inventory_kernel.services.product_service import ProductService
from inventory_kernel.services.purchase_order_service import (
    OrderLineInput,
    PurchaseOrderService,
)
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.services.stock_ledger import LedgerEntryResult, StockLedgerService
from inventory_kernel.services.supplier_service import SupplierService
from inventory_kernel.services.user_role_service import UserRoleService
from inventory_kernel.services.webhook_service import WebhookService

__all__ = [
    "LedgerEntryResult",
    "OrderLineInput",
    "ProductService",
    "PurchaseOrderService",
    "SequenceService",
    "StockLedgerService",
    "SupplierService",
    "UserRoleService",
    "WebhookService",
]
