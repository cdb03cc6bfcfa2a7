"""
Module: inventory_kernel.models.supplier
Responsibility: ORM persistence for suppliers that products are bought from.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - name_key (lower-cased name) is unique, so supplier names are unique
      case-insensitively.
    - Only ACTIVE suppliers may receive new purchase orders (enforced by
      PurchaseOrderService, this model is the data source).
"""

from enum import Enum

from sqlalchemy import Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class SupplierStatus(str, Enum):
    """Supplier lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Supplier(TrackedBase):
    """A company products are purchased from."""

    __tablename__ = "suppliers"

    __table_args__ = (
        UniqueConstraint("name_key", name="uq_supplier_name_key"),
        Index("idx_supplier_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    name_key: Mapped[str] = mapped_column(String(255), nullable=False)

    contact_person: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[SupplierStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SupplierStatus.ACTIVE,
    )

    @property
    def is_active(self) -> bool:
        return self.status == SupplierStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Supplier {self.name} ({self.status})>"
