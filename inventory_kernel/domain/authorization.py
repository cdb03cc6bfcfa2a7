"""
Authorization -- Role and permission rules.

Responsibility:
    Maps roles to permissions and checks an actor before any mutating
    operation.  The UI used to hide buttons per role; this is the server-side
    check that replaces it.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Actors are resolved
    from user_roles by UserRoleService.

Failure modes:
    - PermissionDeniedError when the actor's role lacks the permission.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from inventory_kernel.exceptions import PermissionDeniedError
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.authorization")


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


DEFAULT_ROLE = Role.USER


class Permission(str, Enum):
    VIEW = "view"
    REGISTER_MOVEMENT = "register_movement"
    MANAGE_CATALOG = "manage_catalog"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_INTEGRATIONS = "manage_integrations"
    MANAGE_USERS = "manage_users"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.MANAGER: frozenset(
        {
            Permission.VIEW,
            Permission.REGISTER_MOVEMENT,
            Permission.MANAGE_CATALOG,
            Permission.MANAGE_ORDERS,
        }
    ),
    Role.USER: frozenset({Permission.VIEW}),
}


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation."""

    user_id: UUID
    role: Role = DEFAULT_ROLE

    def can(self, permission: Permission) -> bool:
        return permission in ROLE_PERMISSIONS[self.role]


def authorize(actor: Actor, permission: Permission) -> None:
    """Raise PermissionDeniedError unless the actor holds ``permission``."""
    if actor.can(permission):
        return
    logger.warning(
        "permission_denied",
        extra={
            "actor_id": str(actor.user_id),
            "role": actor.role.value,
            "permission": permission.value,
        },
    )
    raise PermissionDeniedError(
        actor_id=str(actor.user_id),
        role=actor.role.value,
        permission=permission.value,
    )
