"""
DTOs -- Read-side data transfer objects.

Responsibility:
    Immutable records returned by selectors and services so callers never
    hold live ORM entities outside the session that loaded them.

Architecture position:
    Kernel > Domain -- pure.  from_model() class methods are boundary
    converters invoked only from the service and selector layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from inventory_kernel.domain.ledger import MovementType, StockStatus, stock_status

if TYPE_CHECKING:
    from inventory_kernel.models.movement import StockMovement
    from inventory_kernel.models.product import Product
    from inventory_kernel.models.purchase_order import PurchaseOrder


@dataclass(frozen=True)
class MovementRecord:
    id: UUID
    product_id: UUID
    movement_type: MovementType
    quantity: int
    previous_stock: int
    new_stock: int
    reference_number: str | None
    notes: str | None
    unit_cost: Decimal | None
    created_at: datetime
    user_id: UUID
    sequence: int
    product_name: str | None = None
    product_sku: str | None = None

    @classmethod
    def from_model(
        cls,
        model: StockMovement,
        product_name: str | None = None,
        product_sku: str | None = None,
    ) -> MovementRecord:
        return cls(
            id=model.id,
            product_id=model.product_id,
            movement_type=MovementType(model.movement_type),
            quantity=model.quantity,
            previous_stock=model.previous_stock,
            new_stock=model.new_stock,
            reference_number=model.reference_number,
            notes=model.notes,
            unit_cost=model.unit_cost,
            created_at=model.created_at,
            user_id=model.user_id,
            sequence=model.sequence,
            product_name=product_name,
            product_sku=product_sku,
        )


@dataclass(frozen=True)
class ProductRecord:
    id: UUID
    sku: str
    name: str
    category: str
    current_stock: int
    min_stock: int
    max_stock: int | None
    purchase_price: Decimal
    selling_price: Decimal
    supplier_id: UUID | None
    location: str | None
    is_active: bool
    version: int
    description: str | None = None

    @property
    def status(self) -> StockStatus:
        return stock_status(self.current_stock, self.min_stock)

    @classmethod
    def from_model(cls, model: Product) -> ProductRecord:
        return cls(
            id=model.id,
            sku=model.sku,
            name=model.name,
            category=model.category,
            current_stock=model.current_stock,
            min_stock=model.min_stock,
            max_stock=model.max_stock,
            purchase_price=model.purchase_price,
            selling_price=model.selling_price,
            supplier_id=model.supplier_id,
            location=model.location,
            is_active=model.is_active,
            version=model.version,
            description=model.description,
        )


@dataclass(frozen=True)
class OrderLineRecord:
    product_id: UUID
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class PurchaseOrderRecord:
    id: UUID
    order_number: str
    supplier_id: UUID
    status: str
    order_date: datetime
    expected_delivery_date: date | None
    delivery_date: datetime | None
    total_amount: Decimal
    lines: tuple[OrderLineRecord, ...]

    @classmethod
    def from_model(cls, model: PurchaseOrder) -> PurchaseOrderRecord:
        return cls(
            id=model.id,
            order_number=model.order_number,
            supplier_id=model.supplier_id,
            status=str(getattr(model.status, "value", model.status)),
            order_date=model.order_date,
            expected_delivery_date=model.expected_delivery_date,
            delivery_date=model.delivery_date,
            total_amount=model.total_amount,
            lines=tuple(
                OrderLineRecord(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                )
                for line in model.lines
            ),
        )


@dataclass(frozen=True)
class DashboardMetrics:
    total_products: int
    low_stock_products: int
    inventory_value: Decimal
    movements_today: int
    inactive_products: int
    active_suppliers: int


@dataclass(frozen=True)
class ConsistencyReport:
    """Result of walking a product's movement chain."""

    product_id: UUID
    current_stock: int
    movement_count: int
    latest_new_stock: int | None
    broken_links: tuple[UUID, ...]

    @property
    def is_consistent(self) -> bool:
        if self.broken_links:
            return False
        if self.latest_new_stock is None:
            return self.current_stock == 0
        return self.latest_new_stock == self.current_stock
