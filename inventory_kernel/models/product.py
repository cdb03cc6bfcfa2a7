"""
Module: inventory_kernel.models.product
Responsibility: ORM persistence for catalogue products and their live stock
    level.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - sku is unique (uq_product_sku).
    - current_stock is mutated only by StockLedgerService's compare-and-swap
      update, which also bumps version.  ProductService never writes it.
    - version is the optimistic concurrency token for stock changes.

Failure modes:
    - IntegrityError on duplicate sku.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString


class Product(TrackedBase):
    """
    Catalogue item whose quantity on hand is tracked by the stock ledger.

    Guarantees:
        - current_stock equals new_stock of the product's latest movement.
        - version increases by exactly one per committed stock change.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_sku"),
        Index("idx_product_category", "category"),
        Index("idx_product_active", "is_active"),
    )

    sku: Mapped[str] = mapped_column(String(64), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    current_stock: Mapped[int] = mapped_column(nullable=False, default=0)

    min_stock: Mapped[int] = mapped_column(nullable=False, default=0)

    max_stock: Mapped[int | None] = mapped_column(nullable=True)

    purchase_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    selling_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=True,
    )

    location: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    version: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Product {self.sku}: stock={self.current_stock} v{self.version}>"
