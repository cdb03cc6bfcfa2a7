"""
PurchaseOrderService -- purchase order creation and status lifecycle.

Responsibility:
    Creates orders against active suppliers with a numbered, totalled set of
    lines, and moves them through the status lifecycle.

Invariants enforced:
    - order_number comes from the locked "purchase_order" counter
      (SequenceService), formatted PO-000001.
    - total_amount == sum(line.quantity * line.unit_price).
    - Status changes follow VALID_ORDER_TRANSITIONS.  DELIVERED stamps
      delivery_date.

Non-goals:
    - Does NOT move stock.  MovementPostingService.receive_purchase_order
      delivers an order and records the entry movements in one transaction.

Failure modes:
    - PermissionDeniedError: actor lacks manage_orders.
    - SupplierNotFoundError / SupplierInactiveError.
    - InvalidOrderError: no lines, bad quantity/price, inactive product.
    - ProductNotFoundError: a line references a missing product.
    - PurchaseOrderNotFoundError / InvalidOrderTransitionError.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.authorization import Actor, Permission, authorize
from inventory_kernel.exceptions import (
    InvalidOrderError,
    InvalidOrderTransitionError,
    ProductNotFoundError,
    PurchaseOrderNotFoundError,
    SupplierInactiveError,
    SupplierNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.product import Product
from inventory_kernel.models.purchase_order import (
    VALID_ORDER_TRANSITIONS,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
)
from inventory_kernel.models.supplier import Supplier, SupplierStatus
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.sequence_service import SequenceService

logger = get_logger("services.purchase_order")


@dataclass(frozen=True)
class OrderLineInput:
    product_id: UUID
    quantity: int
    unit_price: Decimal


def format_order_number(value: int) -> str:
    return f"PO-{value:06d}"


class PurchaseOrderService(BaseService[PurchaseOrder]):
    """Flush-only purchase order maintenance."""

    def get_for_update(self, order_id: UUID) -> PurchaseOrder:
        order = self.session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise PurchaseOrderNotFoundError(str(order_id))
        return order

    def _validate_lines(self, lines: Sequence[OrderLineInput]) -> None:
        if not lines:
            raise InvalidOrderError("an order needs at least one line")
        for index, line in enumerate(lines, start=1):
            if isinstance(line.quantity, bool) or not isinstance(line.quantity, int):
                raise InvalidOrderError(f"line {index}: quantity must be an integer")
            if line.quantity <= 0:
                raise InvalidOrderError(f"line {index}: quantity must be > 0")
            if Decimal(line.unit_price) < 0:
                raise InvalidOrderError(f"line {index}: unit price must be >= 0")
            product = self.session.get(Product, line.product_id)
            if product is None:
                raise ProductNotFoundError(str(line.product_id))
            if not product.is_active:
                raise InvalidOrderError(f"line {index}: product {product.sku} is inactive")

    def create_order(
        self,
        actor: Actor,
        supplier_id: UUID,
        lines: Sequence[OrderLineInput],
        expected_delivery_date: date | None = None,
        notes: str | None = None,
    ) -> PurchaseOrder:
        """Create a pending order.  The caller commits."""
        authorize(actor, Permission.MANAGE_ORDERS)

        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        if supplier.status != SupplierStatus.ACTIVE:
            raise SupplierInactiveError(str(supplier_id))
        self._validate_lines(lines)

        number = format_order_number(
            SequenceService(self.session).next_value(SequenceService.PURCHASE_ORDER)
        )
        order = PurchaseOrder(
            order_number=number,
            supplier_id=supplier_id,
            status=PurchaseOrderStatus.PENDING,
            order_date=self.clock.now_utc(),
            expected_delivery_date=expected_delivery_date,
            notes=notes,
            user_id=actor.user_id,
            created_by_id=actor.user_id,
        )
        total = Decimal("0")
        for line_number, line in enumerate(lines, start=1):
            unit_price = Decimal(line.unit_price)
            line_total = unit_price * line.quantity
            total += line_total
            order.lines.append(
                PurchaseOrderLine(
                    line_number=line_number,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    total_price=line_total,
                )
            )
        order.total_amount = total

        self.session.add(order)
        self.session.flush()

        with LogContext.bind(order_id=str(order.id)):
            logger.info(
                "purchase_order_created",
                extra={
                    "order_number": number,
                    "line_count": len(lines),
                    "total_amount": total,
                },
            )
        return order

    def transition(
        self,
        actor: Actor,
        order_id: UUID,
        new_status: PurchaseOrderStatus | str,
    ) -> PurchaseOrder:
        """
        Move an order to ``new_status``.

        Allowed: pending -> confirmed | cancelled, confirmed -> shipped |
        cancelled, shipped -> delivered.
        """
        authorize(actor, Permission.MANAGE_ORDERS)
        try:
            target = PurchaseOrderStatus(new_status)
        except ValueError:
            raise InvalidOrderError(f"unknown status {new_status!r}") from None

        order = self.get_for_update(order_id)
        current = PurchaseOrderStatus(order.status)
        if target not in VALID_ORDER_TRANSITIONS[current]:
            logger.warning(
                "purchase_order_transition_rejected",
                extra={
                    "order_id": str(order.id),
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )
            raise InvalidOrderTransitionError(str(order.id), current.value, target.value)

        order.status = target
        if target == PurchaseOrderStatus.DELIVERED:
            order.delivery_date = self.clock.now_utc()
        order.updated_by_id = actor.user_id
        self.session.flush()

        logger.info(
            "purchase_order_transitioned",
            extra={
                "order_id": str(order.id),
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return order
