"""Event builders and role permissions."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from inventory_kernel.domain import events
from inventory_kernel.domain.authorization import (
    ROLE_PERMISSIONS,
    Actor,
    Permission,
    Role,
    authorize,
)
from inventory_kernel.domain.ledger import (
    MovementRequest,
    MovementType,
    ProductSnapshot,
    compute_stock_change,
)
from inventory_kernel.exceptions import PermissionDeniedError

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def exit_change():
    snapshot = ProductSnapshot(product_id=uuid4(), current_stock=10, min_stock=5, version=3)
    return compute_stock_change(snapshot, MovementRequest(MovementType.EXIT, 6))


class TestEventBuilders:
    def test_movement_registered(self, exit_change):
        movement_id = uuid4()
        event = events.movement_registered(
            exit_change,
            movement_id=movement_id,
            reference_number="SO-1",
            timestamp=NOW,
            product_name="Widget",
        )
        assert event.type is events.EventType.MOVEMENT_REGISTERED
        assert event.severity is events.Severity.SUCCESS
        assert event.data["quantity"] == 6
        assert event.data["new_stock"] == 4
        assert event.data["movement_id"] == str(movement_id)
        assert "Widget" in event.message

    def test_stock_alert(self, exit_change):
        event = events.stock_alert(exit_change, timestamp=NOW, product_name="Widget")
        assert event.type is events.EventType.STOCK_ALERT
        assert event.severity is events.Severity.WARNING
        assert event.data["new_stock"] == 4
        assert event.data["min_stock"] == 5

    def test_data_is_frozen(self):
        event = events.integration_status(
            "connected",
            severity=events.Severity.SUCCESS,
            source="n8n",
            timestamp=NOW,
            data={"nested": {"a": 1}, "items": [1, 2]},
        )
        with pytest.raises(TypeError):
            event.data["new"] = 1
        with pytest.raises(TypeError):
            event.data["nested"]["a"] = 2

    def test_to_dict_is_plain(self):
        event = events.integration_status(
            "connected",
            severity=events.Severity.INFO,
            source="n8n",
            timestamp=NOW,
            data={"nested": {"a": 1}, "items": [1, 2]},
        )
        out = event.to_dict()
        assert out["type"] == "integration_status"
        assert out["data"] == {"nested": {"a": 1}, "items": [1, 2]}
        assert out["timestamp"] == NOW.isoformat()


class TestAuthorization:
    def test_admin_holds_every_permission(self):
        assert ROLE_PERMISSIONS[Role.ADMIN] == frozenset(Permission)

    @pytest.mark.parametrize(
        "permission",
        [Permission.REGISTER_MOVEMENT, Permission.MANAGE_CATALOG, Permission.MANAGE_ORDERS],
    )
    def test_manager_operational_permissions(self, permission):
        authorize(Actor(uuid4(), Role.MANAGER), permission)

    @pytest.mark.parametrize(
        "permission", [Permission.MANAGE_INTEGRATIONS, Permission.MANAGE_USERS]
    )
    def test_manager_denied_admin_permissions(self, permission):
        with pytest.raises(PermissionDeniedError):
            authorize(Actor(uuid4(), Role.MANAGER), permission)

    def test_user_is_read_only(self, captured_logs):
        actor = Actor(uuid4())
        assert actor.role is Role.USER
        authorize(actor, Permission.VIEW)
        with pytest.raises(PermissionDeniedError) as exc_info:
            authorize(actor, Permission.REGISTER_MOVEMENT)
        assert exc_info.value.permission == "register_movement"
        assert any(r["message"] == "permission_denied" for r in captured_logs())
