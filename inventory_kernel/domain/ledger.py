"""
Ledger -- Pure stock-change rule.

Responsibility:
    Given a snapshot of a product and a movement request, decide the signed
    movement quantity, the resulting stock level, and whether a low-stock
    alert is due.  Rejects invalid requests and exits that would drive stock
    negative.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    StockLedgerService before anything is written.

Invariants enforced:
    - non_negative_exit: an exit never produces new_stock < 0.
    - new_stock == previous_stock + signed_quantity for every change.

Failure modes:
    - InvalidMovementError: unknown movement type, non-integer or zero
      quantity, negative entry/exit magnitude, inactive product.
    - InsufficientStockError: exit beyond current stock, or a negative
      adjustment result when negative adjustments are disallowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from inventory_kernel.exceptions import InsufficientStockError, InvalidMovementError

if TYPE_CHECKING:
    from inventory_kernel.models.product import Product as ProductModel


class MovementType(str, Enum):
    """
    Kind of stock movement.

    ENTRY and EXIT take a magnitude; ADJUSTMENT takes a signed delta.
    """

    ENTRY = "entry"
    EXIT = "exit"
    ADJUSTMENT = "adjustment"

    @classmethod
    def parse(cls, value: MovementType | str) -> MovementType:
        """Coerce a raw value, raising InvalidMovementError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidMovementError(f"unknown movement type {value!r}") from None


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out_of_stock"
    LOW = "low"
    NORMAL = "normal"


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only view of the product fields the ledger rule needs."""

    product_id: UUID
    current_stock: int
    min_stock: int
    version: int
    is_active: bool = True
    sku: str | None = None
    name: str | None = None

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductSnapshot:
        return cls(
            product_id=model.id,
            current_stock=model.current_stock,
            min_stock=model.min_stock,
            version=model.version,
            is_active=model.is_active,
            sku=model.sku,
            name=model.name,
        )


@dataclass(frozen=True)
class MovementRequest:
    """What the caller asked for.  Quantity semantics depend on the type."""

    movement_type: MovementType
    quantity: int
    reference_number: str | None = None
    notes: str | None = None
    unit_cost: Decimal | None = None


@dataclass(frozen=True)
class StockChange:
    """
    Outcome of applying a request to a snapshot.

    signed_quantity is what gets recorded on the movement row; magnitude is
    the absolute amount moved.
    """

    product_id: UUID
    movement_type: MovementType
    magnitude: int
    signed_quantity: int
    previous_stock: int
    new_stock: int
    min_stock: int
    low_stock_alert: bool


def _validate_quantity(request: MovementRequest, product_id: UUID) -> None:
    quantity = request.quantity
    # bool is an int subclass; True is not a quantity.
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidMovementError(
            f"quantity must be an integer, got {quantity!r}", str(product_id)
        )
    if quantity == 0:
        raise InvalidMovementError("quantity must not be zero", str(product_id))
    if request.movement_type != MovementType.ADJUSTMENT and quantity < 0:
        raise InvalidMovementError(
            f"{request.movement_type.value} quantity must be positive, got {quantity}",
            str(product_id),
        )
    if request.unit_cost is not None and request.unit_cost < 0:
        raise InvalidMovementError("unit cost must not be negative", str(product_id))


def compute_stock_change(
    snapshot: ProductSnapshot,
    request: MovementRequest,
    *,
    allow_negative_adjustments: bool = True,
) -> StockChange:
    """
    Apply a movement request to a product snapshot.

    entry:      new = current + q,  recorded +q
    exit:       new = current - q,  recorded -q, fails if new < 0
    adjustment: new = current + q,  recorded q (signed)

    A low-stock alert is due only after an exit that leaves
    new_stock <= min_stock.

    Raises:
        InvalidMovementError: malformed request or inactive product.
        InsufficientStockError: exit beyond stock, or a negative adjustment
            result with allow_negative_adjustments=False.
    """
    movement_type = MovementType.parse(request.movement_type)
    if movement_type is not request.movement_type:
        request = MovementRequest(
            movement_type=movement_type,
            quantity=request.quantity,
            reference_number=request.reference_number,
            notes=request.notes,
            unit_cost=request.unit_cost,
        )
    _validate_quantity(request, snapshot.product_id)

    if not snapshot.is_active:
        raise InvalidMovementError("product is inactive", str(snapshot.product_id))

    current = snapshot.current_stock
    if movement_type == MovementType.ENTRY:
        signed = request.quantity
    elif movement_type == MovementType.EXIT:
        signed = -request.quantity
    else:
        signed = request.quantity

    new_stock = current + signed

    if new_stock < 0:
        if movement_type == MovementType.EXIT or not allow_negative_adjustments:
            raise InsufficientStockError(
                product_id=str(snapshot.product_id),
                current_stock=current,
                requested_quantity=request.quantity,
            )

    return StockChange(
        product_id=snapshot.product_id,
        movement_type=movement_type,
        magnitude=abs(signed),
        signed_quantity=signed,
        previous_stock=current,
        new_stock=new_stock,
        min_stock=snapshot.min_stock,
        low_stock_alert=(
            movement_type == MovementType.EXIT and new_stock <= snapshot.min_stock
        ),
    )


def stock_status(current_stock: int, min_stock: int) -> StockStatus:
    """Classify a stock level for display and low-stock listings."""
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= min_stock:
        return StockStatus.LOW
    return StockStatus.NORMAL
