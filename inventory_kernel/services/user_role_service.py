"""
UserRoleService -- role assignment and actor resolution.

A user with no user_roles row is a plain "user" (read-only).
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.authorization import DEFAULT_ROLE, Actor, Permission, Role, authorize
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.user_role import UserRole
from inventory_kernel.services.base import BaseService

logger = get_logger("services.user_role")


class UserRoleService(BaseService[UserRole]):
    def _row(self, user_id: UUID) -> UserRole | None:
        return self.session.execute(
            select(UserRole).where(UserRole.user_id == user_id)
        ).scalar_one_or_none()

    def resolve_actor(self, user_id: UUID) -> Actor:
        row = self._row(user_id)
        role = Role(row.role) if row is not None else DEFAULT_ROLE
        return Actor(user_id=user_id, role=role)

    def assign_role(self, actor: Actor, user_id: UUID, role: Role | str) -> Actor:
        """Give ``user_id`` a role.  Only admins may do this."""
        authorize(actor, Permission.MANAGE_USERS)
        role = Role(role)
        row = self._row(user_id)
        if row is None:
            row = UserRole(user_id=user_id, role=role.value, created_by_id=actor.user_id)
            self.session.add(row)
        else:
            row.role = role.value
            row.updated_by_id = actor.user_id
        self.session.flush()
        logger.info(
            "role_assigned",
            extra={"target_user_id": str(user_id), "role": role.value},
        )
        return Actor(user_id=user_id, role=role)
