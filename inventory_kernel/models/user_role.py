"""
Module: inventory_kernel.models.user_role
Responsibility: ORM persistence for the role assigned to each user.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one role row per user (uq_user_role_user).  A user without a
      row has the default "user" role.
"""

from uuid import UUID

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString


class UserRole(TrackedBase):
    __tablename__ = "user_roles"

    __table_args__ = (UniqueConstraint("user_id", name="uq_user_role_user"),)

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Holds a Role value ("admin", "manager", "user").
    role: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<UserRole {self.user_id}: {self.role}>"
