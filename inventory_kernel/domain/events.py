"""
Events -- Immutable notification records.

Responsibility:
    Defines InventoryEvent, the record delivered to the notification sink,
    and builders for every event the system raises.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Built by
    MovementPostingService and IntegrationFeed, delivered by EventHub.

Invariants enforced:
    - Event payloads are deep-frozen; subscribers cannot mutate what other
      subscribers see.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID, uuid4

from inventory_kernel.domain.ledger import StockChange


class EventType(str, Enum):
    MOVEMENT_REGISTERED = "movement_registered"
    STOCK_ALERT = "stock_alert"
    INTEGRATION_STATUS = "integration_status"
    WEBHOOK_RECEIVED = "webhook_received"
    INTEGRATION_SYNC = "integration_sync"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class InventoryEvent:
    """
    One notification.

    ``data`` is frozen on construction; use ``to_dict()`` for a plain,
    JSON-friendly copy.
    """

    type: EventType
    title: str
    message: str
    severity: Severity
    timestamp: datetime
    source: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _freeze(self.data))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "source": self.source,
            "data": _thaw(self.data),
            "timestamp": self.timestamp.isoformat(),
        }


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def movement_registered(
    change: StockChange,
    *,
    movement_id: UUID,
    reference_number: str | None,
    timestamp: datetime,
    product_name: str | None = None,
    source: str | None = "ledger",
) -> InventoryEvent:
    label = product_name or str(change.product_id)
    return InventoryEvent(
        type=EventType.MOVEMENT_REGISTERED,
        title="Movement registered",
        message=(
            f"{change.movement_type.value} of {change.magnitude} for {label}; "
            f"stock now {change.new_stock}"
        ),
        severity=Severity.SUCCESS,
        source=source,
        timestamp=timestamp,
        data={
            "product_id": str(change.product_id),
            "movement_id": str(movement_id),
            "movement_type": change.movement_type.value,
            "quantity": change.magnitude,
            "new_stock": change.new_stock,
            "reference_number": reference_number,
        },
    )


def stock_alert(
    change: StockChange,
    *,
    timestamp: datetime,
    product_name: str | None = None,
    source: str | None = "ledger",
) -> InventoryEvent:
    label = product_name or str(change.product_id)
    return InventoryEvent(
        type=EventType.STOCK_ALERT,
        title="Low stock",
        message=(
            f"{label} is at {change.new_stock}, at or below minimum {change.min_stock}"
        ),
        severity=Severity.WARNING,
        source=source,
        timestamp=timestamp,
        data={
            "product_id": str(change.product_id),
            "new_stock": change.new_stock,
            "min_stock": change.min_stock,
        },
    )


def integration_status(
    message: str,
    *,
    severity: Severity,
    source: str,
    timestamp: datetime,
    data: Mapping[str, Any] | None = None,
) -> InventoryEvent:
    return InventoryEvent(
        type=EventType.INTEGRATION_STATUS,
        title="Integration status",
        message=message,
        severity=severity,
        source=source,
        timestamp=timestamp,
        data=data or {},
    )
