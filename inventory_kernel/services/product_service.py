"""
ProductService -- catalogue maintenance.

Responsibility:
    Creates and edits products.  Opening stock is recorded through the
    ledger as an adjustment with reference "OPENING", so a product's stock
    is explained by its movements from the first row.

Invariants enforced:
    - current_stock and version are never written here except through
      StockLedgerService.
    - SKU is unique and stored upper-case.

Failure modes:
    - PermissionDeniedError: actor lacks manage_catalog.
    - InvalidProductError: missing/invalid fields, or an attempt to set
      current_stock directly.
    - DuplicateSkuError, SupplierNotFoundError, ProductNotFoundError.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.authorization import Actor, Permission, authorize
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import ProductRecord
from inventory_kernel.domain.ledger import MovementRequest, MovementType
from inventory_kernel.exceptions import (
    DuplicateSkuError,
    InvalidProductError,
    ProductNotFoundError,
    SupplierNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.models.supplier import Supplier
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.stock_ledger import StockLedgerService

logger = get_logger("services.product")

OPENING_REFERENCE = "OPENING"

_EDITABLE_FIELDS = frozenset(
    {
        "sku",
        "name",
        "description",
        "category",
        "min_stock",
        "max_stock",
        "purchase_price",
        "selling_price",
        "supplier_id",
        "location",
    }
)
_LEDGER_FIELDS = frozenset({"current_stock", "version"})


def _normalize_sku(sku: str | None) -> str:
    return (sku or "").strip().upper()


def _validate_fields(values: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    for required in ("name", "sku", "category"):
        if required in values and not (values[required] or "").strip():
            errors.append(f"{required} is required")
    min_stock = values.get("min_stock")
    if min_stock is not None and min_stock < 0:
        errors.append("min_stock must be >= 0")
    max_stock = values.get("max_stock")
    if max_stock is not None:
        if max_stock < 0:
            errors.append("max_stock must be >= 0")
        elif min_stock is not None and 0 < max_stock < min_stock:
            errors.append("max_stock must be >= min_stock")
    for price in ("purchase_price", "selling_price"):
        value = values.get(price)
        if value is not None and Decimal(value) < 0:
            errors.append(f"{price} must be >= 0")
    return errors


class ProductService(BaseService[Product]):
    """Flush-only product maintenance."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._ledger = StockLedgerService(session, self.clock)

    def _get(self, product_id: UUID) -> Product:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def _check_sku_free(self, sku: str, exclude_id: UUID | None = None) -> None:
        query = select(Product.id).where(Product.sku == sku)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        if self.session.execute(query).first() is not None:
            raise DuplicateSkuError(sku)

    def _check_supplier(self, supplier_id: UUID | None) -> None:
        if supplier_id is not None and self.session.get(Supplier, supplier_id) is None:
            raise SupplierNotFoundError(str(supplier_id))

    def _warn_on_margin(self, sku: str, purchase_price: Decimal, selling_price: Decimal) -> None:
        if selling_price <= purchase_price:
            logger.warning(
                "selling_price_not_above_purchase_price",
                extra={
                    "sku": sku,
                    "purchase_price": purchase_price,
                    "selling_price": selling_price,
                },
            )

    def create_product(
        self,
        actor: Actor,
        *,
        sku: str,
        name: str,
        category: str,
        opening_stock: int = 0,
        min_stock: int = 0,
        max_stock: int | None = None,
        purchase_price: Decimal = Decimal("0"),
        selling_price: Decimal = Decimal("0"),
        description: str | None = None,
        supplier_id: UUID | None = None,
        location: str | None = None,
    ) -> ProductRecord:
        """
        Create a product and record its opening stock.

        Opening stock > 0 is applied as an ``adjustment`` movement with
        reference OPENING.  The caller commits.
        """
        authorize(actor, Permission.MANAGE_CATALOG)

        sku = _normalize_sku(sku)
        errors = _validate_fields(
            {
                "sku": sku,
                "name": name,
                "category": category,
                "min_stock": min_stock,
                "max_stock": max_stock,
                "purchase_price": purchase_price,
                "selling_price": selling_price,
            }
        )
        if isinstance(opening_stock, bool) or not isinstance(opening_stock, int) or opening_stock < 0:
            errors.append("opening_stock must be a non-negative integer")
        if errors:
            raise InvalidProductError(errors)

        self._check_sku_free(sku)
        self._check_supplier(supplier_id)
        purchase_price = Decimal(purchase_price)
        selling_price = Decimal(selling_price)
        self._warn_on_margin(sku, purchase_price, selling_price)

        product = Product(
            sku=sku,
            name=name.strip(),
            category=category.strip(),
            description=description,
            current_stock=0,
            min_stock=min_stock,
            max_stock=max_stock,
            purchase_price=purchase_price,
            selling_price=selling_price,
            supplier_id=supplier_id,
            location=location,
            is_active=True,
            version=0,
            created_by_id=actor.user_id,
        )
        self.session.add(product)
        self.session.flush()

        with LogContext.bind(product_id=str(product.id)):
            logger.info("product_created", extra={"sku": sku, "opening_stock": opening_stock})
            if opening_stock > 0:
                self._ledger.apply_movement(
                    product.id,
                    MovementRequest(
                        movement_type=MovementType.ADJUSTMENT,
                        quantity=opening_stock,
                        reference_number=OPENING_REFERENCE,
                        notes="Opening stock",
                        unit_cost=purchase_price,
                    ),
                    actor.user_id,
                )

        return ProductRecord.from_model(product)

    def update_product(self, actor: Actor, product_id: UUID, **changes: Any) -> ProductRecord:
        """
        Update descriptive fields.

        Stock is not editable here: passing current_stock or version raises
        InvalidProductError.  Register an adjustment instead.
        """
        authorize(actor, Permission.MANAGE_CATALOG)

        forbidden = sorted(_LEDGER_FIELDS & changes.keys())
        if forbidden:
            raise InvalidProductError(
                [f"{f} can only change through stock movements" for f in forbidden]
            )
        unknown = sorted(changes.keys() - _EDITABLE_FIELDS)
        if unknown:
            raise InvalidProductError([f"unknown field {f}" for f in unknown])

        product = self._get(product_id)
        if "sku" in changes:
            changes["sku"] = _normalize_sku(changes["sku"])

        merged = {
            "min_stock": product.min_stock,
            "max_stock": product.max_stock,
            **changes,
        }
        errors = _validate_fields(merged)
        if errors:
            raise InvalidProductError(errors)

        if "sku" in changes and changes["sku"] != product.sku:
            self._check_sku_free(changes["sku"], exclude_id=product.id)
        if "supplier_id" in changes:
            self._check_supplier(changes["supplier_id"])

        for field_name, value in changes.items():
            if field_name in ("purchase_price", "selling_price"):
                value = Decimal(value)
            elif field_name in ("name", "category") and isinstance(value, str):
                value = value.strip()
            setattr(product, field_name, value)
        product.updated_by_id = actor.user_id

        if {"purchase_price", "selling_price"} & changes.keys():
            self._warn_on_margin(product.sku, product.purchase_price, product.selling_price)

        self.session.flush()
        logger.info(
            "product_updated",
            extra={"product_id": str(product.id), "fields": sorted(changes)},
        )
        return ProductRecord.from_model(product)

    def set_active(self, actor: Actor, product_id: UUID, is_active: bool) -> ProductRecord:
        """Activate or deactivate a product.  Inactive products take no movements."""
        authorize(actor, Permission.MANAGE_CATALOG)
        product = self._get(product_id)
        product.is_active = is_active
        product.updated_by_id = actor.user_id
        self.session.flush()
        logger.info(
            "product_activation_changed",
            extra={"product_id": str(product.id), "is_active": is_active},
        )
        return ProductRecord.from_model(product)
