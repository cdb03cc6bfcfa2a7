"""
Module: inventory_kernel.models.movement
Responsibility: ORM persistence for stock movements, the append-only ledger
    of every change to a product's quantity on hand.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: UPDATE and DELETE are blocked by db/immutability.py
      listeners and db/triggers.py database triggers.
    - new_stock == previous_stock + quantity for every row (ck_movement_arithmetic).

Audit relevance:
    The chain previous_stock -> new_stock across a product's movements
    explains its current stock completely.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString


class StockMovement(Base):
    """
    One immutable ledger entry for a product.

    movement_type holds a MovementType value ("entry", "exit", "adjustment").
    quantity is signed: entries positive, exits negative, adjustments as
    requested.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint(
            "new_stock = previous_stock + quantity",
            name="ck_movement_arithmetic",
        ),
        CheckConstraint(
            "movement_type IN ('entry', 'exit', 'adjustment')",
            name="ck_movement_type",
        ),
        UniqueConstraint("product_id", "sequence", name="uq_movement_product_sequence"),
        Index("idx_movement_product_created", "product_id", "created_at"),
        Index("idx_movement_reference", "reference_number"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    previous_stock: Mapped[int] = mapped_column(nullable=False)

    new_stock: Mapped[int] = mapped_column(nullable=False)

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Product version produced by this movement; orders movements per product.
    sequence: Mapped[int] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.movement_type} {self.quantity:+d}: "
            f"{self.previous_stock}->{self.new_stock}>"
        )
