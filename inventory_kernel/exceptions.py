"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger need to tell "not enough stock" apart from "someone
else changed this product" apart from "the database is down".  Parsing
message strings for that is fragile, so every error:

  1. Has its own exception class (catch by type, not message)
  2. Has a ``code`` class attribute (machine-readable, API-safe)
  3. Carries structured data as attributes (not just a message string)
  4. Has a ``public_message`` safe to show to end users

Example:
    try:
        posting.register_movement(actor, product_id, MovementType.EXIT, 10)
    except InsufficientStockError as e:
        return {"error": e.code, "available": e.current_stock}
    except ConcurrentModificationError:
        ...  # reload the product and let the user retry

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- LedgerError
    |   +-- InsufficientStockError
    |   +-- ProductNotFoundError
    |   +-- InvalidMovementError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentModificationError
    |
    +-- PersistenceError
    |   +-- PersistenceFailureError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuthorizationError
    |   +-- PermissionDeniedError
    |
    +-- CatalogError
    |   +-- InvalidProductError
    |   +-- DuplicateSkuError
    |   +-- SupplierNotFoundError
    |   +-- SupplierInactiveError
    |   +-- DuplicateSupplierError
    |   +-- InvalidSupplierError
    |
    +-- PurchasingError
    |   +-- PurchaseOrderNotFoundError
    |   +-- InvalidOrderError
    |   +-- InvalidOrderTransitionError
    |
    +-- IntegrationError
        +-- WebhookNotFoundError
        +-- InvalidWebhookUrlError
        +-- SubscriptionClosedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|-------------------------------------------
Ledger       | INSUFFICIENT_STOCK         | Exit would drive stock below zero
             | PRODUCT_NOT_FOUND          | Product ID doesn't exist
             | INVALID_MOVEMENT           | Bad type/quantity, inactive product
-------------|----------------------------|-------------------------------------------
Concurrency  | CONCURRENT_MODIFICATION    | Product version changed under us
-------------|----------------------------|-------------------------------------------
Persistence  | PERSISTENCE_FAILURE        | Atomic write could not complete
-------------|----------------------------|-------------------------------------------
Immutability | IMMUTABILITY_VIOLATION     | UPDATE/DELETE of a stock movement
-------------|----------------------------|-------------------------------------------
Authz        | PERMISSION_DENIED          | Actor role lacks the permission
-------------|----------------------------|-------------------------------------------
Catalog      | INVALID_PRODUCT            | Missing/invalid product fields
             | DUPLICATE_SKU              | SKU already used
             | SUPPLIER_NOT_FOUND         | Supplier ID doesn't exist
             | SUPPLIER_INACTIVE          | Ordering from an inactive supplier
             | DUPLICATE_SUPPLIER         | Supplier name already used
             | INVALID_SUPPLIER           | Missing supplier name, unknown field
-------------|----------------------------|-------------------------------------------
Purchasing   | PURCHASE_ORDER_NOT_FOUND   | Order ID doesn't exist
             | INVALID_ORDER              | Empty order, bad line values
             | INVALID_ORDER_TRANSITION   | Status change not allowed
-------------|----------------------------|-------------------------------------------
Integration  | WEBHOOK_NOT_FOUND          | Endpoint ID doesn't exist
             | INVALID_WEBHOOK_URL        | URL is not http(s)
             | SUBSCRIPTION_CLOSED        | Message on an unsubscribed handle

===============================================================================
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    public_message: str = "The operation could not be completed."


# Ledger exceptions


class LedgerError(InventoryKernelError):
    """Base exception for stock ledger errors."""

    code: str = "LEDGER_ERROR"


class InsufficientStockError(LedgerError):
    """An exit movement would drive current stock below zero."""

    code: str = "INSUFFICIENT_STOCK"
    public_message: str = "There is not enough stock for this movement."

    def __init__(self, product_id: str, current_stock: int, requested_quantity: int):
        self.product_id = product_id
        self.current_stock = current_stock
        self.requested_quantity = requested_quantity
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"current {current_stock}, requested {requested_quantity}"
        )


class ProductNotFoundError(LedgerError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"
    public_message: str = "The product no longer exists."

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InvalidMovementError(LedgerError):
    """Movement request is malformed or not allowed for the product."""

    code: str = "INVALID_MOVEMENT"
    public_message: str = "The movement is not valid."

    def __init__(self, reason: str, product_id: str | None = None):
        self.reason = reason
        self.product_id = product_id
        suffix = f" (product {product_id})" if product_id else ""
        super().__init__(f"Invalid movement: {reason}{suffix}")


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentModificationError(ConcurrencyError):
    """The product changed between read and write."""

    code: str = "CONCURRENT_MODIFICATION"
    public_message: str = "The product was modified by someone else. Please retry."

    def __init__(
        self,
        product_id: str,
        expected_version: int,
        actual_version: int | None = None,
    ):
        self.product_id = product_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification on product {product_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Persistence exceptions


class PersistenceError(InventoryKernelError):
    """Base exception for persistence errors."""

    code: str = "PERSISTENCE_ERROR"


class PersistenceFailureError(PersistenceError):
    """
    The atomic write could not complete.

    The original database exception is chained as ``__cause__`` and logged
    in full; only ``public_message`` should reach end users.
    """

    code: str = "PERSISTENCE_FAILURE"
    public_message: str = "The movement could not be saved. Please try again later."

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Authorization exceptions


class AuthorizationError(InventoryKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class PermissionDeniedError(AuthorizationError):
    """Actor's role does not grant the requested permission."""

    code: str = "PERMISSION_DENIED"
    public_message: str = "You are not allowed to perform this action."

    def __init__(self, actor_id: str, role: str, permission: str):
        self.actor_id = actor_id
        self.role = role
        self.permission = permission
        super().__init__(
            f"Actor {actor_id} with role {role} lacks permission {permission}"
        )


# Catalog exceptions


class CatalogError(InventoryKernelError):
    """Base exception for product and supplier errors."""

    code: str = "CATALOG_ERROR"


class InvalidProductError(CatalogError):
    """Product fields failed validation."""

    code: str = "INVALID_PRODUCT"

    def __init__(self, field_errors: list[str]):
        self.field_errors = field_errors
        super().__init__(f"Invalid product: {'; '.join(field_errors)}")


class DuplicateSkuError(CatalogError):
    """Another product already uses this SKU."""

    code: str = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"SKU already exists: {sku}")


class SupplierNotFoundError(CatalogError):
    """Supplier with given ID was not found."""

    code: str = "SUPPLIER_NOT_FOUND"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier not found: {supplier_id}")


class SupplierInactiveError(CatalogError):
    """Supplier is inactive and cannot receive new orders."""

    code: str = "SUPPLIER_INACTIVE"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Supplier is inactive: {supplier_id}")


class DuplicateSupplierError(CatalogError):
    """A supplier with the same name already exists."""

    code: str = "DUPLICATE_SUPPLIER"

    def __init__(self, supplier_name: str):
        self.supplier_name = supplier_name
        super().__init__(f"Supplier already exists: {supplier_name}")


class InvalidSupplierError(CatalogError):
    """Supplier fields failed validation."""

    code: str = "INVALID_SUPPLIER"

    def __init__(self, field_errors: list[str]):
        self.field_errors = field_errors
        super().__init__(f"Invalid supplier: {'; '.join(field_errors)}")


# Purchasing exceptions


class PurchasingError(InventoryKernelError):
    """Base exception for purchase order errors."""

    code: str = "PURCHASING_ERROR"


class PurchaseOrderNotFoundError(PurchasingError):
    """Purchase order with given ID was not found."""

    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Purchase order not found: {order_id}")


class InvalidOrderError(PurchasingError):
    """Purchase order contents failed validation."""

    code: str = "INVALID_ORDER"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid purchase order: {reason}")


class InvalidOrderTransitionError(PurchasingError):
    """Requested status change is not allowed from the current status."""

    code: str = "INVALID_ORDER_TRANSITION"

    def __init__(self, order_id: str, from_status: str, to_status: str):
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Purchase order {order_id} cannot move from {from_status} to {to_status}"
        )


# Integration exceptions


class IntegrationError(InventoryKernelError):
    """Base exception for webhook and integration feed errors."""

    code: str = "INTEGRATION_ERROR"


class WebhookNotFoundError(IntegrationError):
    """Webhook endpoint with given ID was not found."""

    code: str = "WEBHOOK_NOT_FOUND"

    def __init__(self, endpoint_id: str):
        self.endpoint_id = endpoint_id
        super().__init__(f"Webhook endpoint not found: {endpoint_id}")


class InvalidWebhookUrlError(IntegrationError):
    """Webhook URL is empty or not http(s)."""

    code: str = "INVALID_WEBHOOK_URL"

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid webhook URL: {url!r}")


class SubscriptionClosedError(IntegrationError):
    """A message arrived for a feed subscription that was already closed."""

    code: str = "SUBSCRIPTION_CLOSED"

    def __init__(self, subscription_id: str):
        self.subscription_id = subscription_id
        super().__init__(f"Feed subscription is closed: {subscription_id}")
