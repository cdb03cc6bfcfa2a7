"""
EventHub -- in-process notification sink.

Responsibility:
    Keeps a bounded, newest-first history of InventoryEvents and delivers
    each published event to every subscriber.

Architecture position:
    Services -- imperative shell.  Fed by MovementPostingService (after
    commit) and IntegrationFeed.

Guarantees:
    - subscribe() returns an owned Subscription handle; unsubscribe(handle)
      removes exactly that subscriber and is a no-op the second time.
    - A subscriber that raises is logged and skipped; the others still
      receive the event.
    - Delivery happens outside the hub's lock, so a subscriber may publish
      or unsubscribe from inside its callback.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable
from uuid import UUID, uuid4

from inventory_kernel.domain.events import InventoryEvent
from inventory_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from inventory_config.schema import InventorySettings

logger = get_logger("services.event_hub")

EventCallback = Callable[[InventoryEvent], None]

DEFAULT_HISTORY_LIMIT = 100


@dataclass(frozen=True, eq=False)
class Subscription:
    """Handle returned by EventHub.subscribe()."""

    callback: EventCallback
    label: str | None = None
    id: UUID = field(default_factory=uuid4)


class EventHub:
    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT):
        if history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        self._history: deque[InventoryEvent] = deque(maxlen=history_limit)
        self._subscribers: dict[UUID, Subscription] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: InventorySettings) -> EventHub:
        return cls(history_limit=settings.events.history_limit)

    @property
    def history_limit(self) -> int:
        return self._history.maxlen or DEFAULT_HISTORY_LIMIT

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, callback: EventCallback, label: str | None = None) -> Subscription:
        handle = Subscription(callback=callback, label=label)
        with self._lock:
            self._subscribers[handle.id] = handle
        logger.debug("event_subscriber_added", extra={"subscription_id": str(handle.id)})
        return handle

    def unsubscribe(self, handle: Subscription) -> bool:
        """Remove ``handle``.  Returns False if it was already removed."""
        with self._lock:
            removed = self._subscribers.pop(handle.id, None)
        if removed is not None:
            logger.debug(
                "event_subscriber_removed", extra={"subscription_id": str(handle.id)}
            )
        return removed is not None

    def publish(self, event: InventoryEvent) -> None:
        with self._lock:
            self._history.appendleft(event)
            subscribers = list(self._subscribers.values())

        logger.info(
            "event_published",
            extra={
                "event_type": event.type.value,
                "severity": event.severity.value,
                "event_id": str(event.id),
                "subscriber_count": len(subscribers),
            },
        )

        for handle in subscribers:
            try:
                handle.callback(event)
            except Exception:
                # One broken subscriber must not starve the rest.
                logger.error(
                    "event_subscriber_failed",
                    extra={
                        "subscription_id": str(handle.id),
                        "event_type": event.type.value,
                    },
                    exc_info=True,
                )

    def recent(self, limit: int | None = None) -> list[InventoryEvent]:
        """Newest first."""
        with self._lock:
            events = list(self._history)
        return events if limit is None else events[:limit]

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
