"""UserRoleService: actor resolution and admin-only role assignment."""

from uuid import uuid4

import pytest

from inventory_kernel.domain.authorization import Role
from inventory_kernel.exceptions import PermissionDeniedError
from inventory_kernel.services.user_role_service import UserRoleService


@pytest.fixture
def roles(session, clock):
    return UserRoleService(session, clock)


def test_unknown_user_is_plain_user(roles):
    assert roles.resolve_actor(uuid4()).role is Role.USER


def test_admin_assigns_and_reassigns(session, roles, admin):
    user_id = uuid4()
    roles.assign_role(admin, user_id, "manager")
    session.commit()
    assert roles.resolve_actor(user_id).role is Role.MANAGER

    roles.assign_role(admin, user_id, Role.ADMIN)
    session.commit()
    assert roles.resolve_actor(user_id).role is Role.ADMIN


def test_manager_cannot_assign(roles, manager):
    with pytest.raises(PermissionDeniedError):
        roles.assign_role(manager, uuid4(), Role.ADMIN)


def test_unknown_role(roles, admin):
    with pytest.raises(ValueError):
        roles.assign_role(admin, uuid4(), "superuser")
