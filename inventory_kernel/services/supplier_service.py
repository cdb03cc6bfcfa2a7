"""
SupplierService -- supplier maintenance.

Failure modes:
    - PermissionDeniedError: actor lacks manage_catalog.
    - InvalidSupplierError: blank name or unknown field.
    - DuplicateSupplierError: name already used (case-insensitive).
    - SupplierNotFoundError.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.authorization import Actor, Permission, authorize
from inventory_kernel.exceptions import (
    DuplicateSupplierError,
    InvalidSupplierError,
    SupplierNotFoundError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.supplier import Supplier, SupplierStatus
from inventory_kernel.services.base import BaseService

logger = get_logger("services.supplier")

_CONTACT_FIELDS = frozenset(
    {
        "contact_person",
        "email",
        "phone",
        "address",
        "city",
        "country",
        "postal_code",
        "website",
        "notes",
    }
)


def _name_key(name: str) -> str:
    return " ".join(name.split()).lower()


class SupplierService(BaseService[Supplier]):
    """Flush-only supplier maintenance."""

    def get(self, supplier_id: UUID) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        return supplier

    def _check_name_free(self, name: str, exclude_id: UUID | None = None) -> str:
        if not (name or "").strip():
            raise InvalidSupplierError(["supplier name is required"])
        key = _name_key(name)
        query = select(Supplier.id).where(Supplier.name_key == key)
        if exclude_id is not None:
            query = query.where(Supplier.id != exclude_id)
        if self.session.execute(query).first() is not None:
            raise DuplicateSupplierError(name.strip())
        return key

    def create_supplier(self, actor: Actor, name: str, **contact: Any) -> Supplier:
        authorize(actor, Permission.MANAGE_CATALOG)
        unknown = sorted(contact.keys() - _CONTACT_FIELDS)
        if unknown:
            raise InvalidSupplierError([f"unknown supplier field {f}" for f in unknown])

        key = self._check_name_free(name)
        supplier = Supplier(
            name=name.strip(),
            name_key=key,
            status=SupplierStatus.ACTIVE,
            created_by_id=actor.user_id,
            **contact,
        )
        self.session.add(supplier)
        self.session.flush()
        logger.info("supplier_created", extra={"supplier_id": str(supplier.id)})
        return supplier

    def update_supplier(self, actor: Actor, supplier_id: UUID, **changes: Any) -> Supplier:
        authorize(actor, Permission.MANAGE_CATALOG)
        unknown = sorted(changes.keys() - _CONTACT_FIELDS - {"name"})
        if unknown:
            raise InvalidSupplierError([f"unknown supplier field {f}" for f in unknown])

        supplier = self.get(supplier_id)
        if "name" in changes:
            supplier.name_key = self._check_name_free(changes["name"], exclude_id=supplier.id)
            changes["name"] = changes["name"].strip()
        for field_name, value in changes.items():
            setattr(supplier, field_name, value)
        supplier.updated_by_id = actor.user_id
        self.session.flush()
        logger.info(
            "supplier_updated",
            extra={"supplier_id": str(supplier.id), "fields": sorted(changes)},
        )
        return supplier

    def set_status(self, actor: Actor, supplier_id: UUID, status: SupplierStatus | str) -> Supplier:
        authorize(actor, Permission.MANAGE_CATALOG)
        supplier = self.get(supplier_id)
        supplier.status = SupplierStatus(status)
        supplier.updated_by_id = actor.user_id
        self.session.flush()
        logger.info(
            "supplier_status_changed",
            extra={"supplier_id": str(supplier.id), "status": supplier.status.value},
        )
        return supplier
