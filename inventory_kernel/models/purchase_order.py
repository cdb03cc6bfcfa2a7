"""
Module: inventory_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders and their lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - order_number is unique (uq_purchase_order_number) and allocated from
      the "purchase_order" sequence counter.
    - Status follows VALID_ORDER_TRANSITIONS; terminal states are DELIVERED
      and CANCELLED.
    - Line quantity > 0 and unit_price >= 0 (check constraints).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString


class PurchaseOrderStatus(str, Enum):
    """Purchase order lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


VALID_ORDER_TRANSITIONS: dict[PurchaseOrderStatus, frozenset[PurchaseOrderStatus]] = {
    PurchaseOrderStatus.PENDING: frozenset(
        {PurchaseOrderStatus.CONFIRMED, PurchaseOrderStatus.CANCELLED}
    ),
    PurchaseOrderStatus.CONFIRMED: frozenset(
        {PurchaseOrderStatus.SHIPPED, PurchaseOrderStatus.CANCELLED}
    ),
    PurchaseOrderStatus.SHIPPED: frozenset({PurchaseOrderStatus.DELIVERED}),
    PurchaseOrderStatus.DELIVERED: frozenset(),
    PurchaseOrderStatus.CANCELLED: frozenset(),
}


class PurchaseOrder(TrackedBase):
    """
    An order placed with a supplier.

    Guarantees:
        - total_amount equals the sum of line total_price at creation.
        - delivery_date is set exactly when status becomes DELIVERED.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_purchase_order_number"),
        Index("idx_purchase_order_status", "status"),
        Index("idx_purchase_order_supplier", "supplier_id"),
    )

    order_number: Mapped[str] = mapped_column(String(20), nullable=False)

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=False,
    )

    status: Mapped[PurchaseOrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderStatus.PENDING,
    )

    order_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    expected_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    delivery_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    lines: Mapped[list["PurchaseOrderLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.order_number} {self.status}>"


class PurchaseOrderLine(Base):
    """One product line on a purchase order."""

    __tablename__ = "purchase_order_lines"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_po_line_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_po_line_price_non_negative"),
        UniqueConstraint("order_id", "line_number", name="uq_po_line_number"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(nullable=False)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    total_price: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped[PurchaseOrder] = relationship(back_populates="lines")
