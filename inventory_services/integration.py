"""
IntegrationFeed -- inbound automation messages turned into InventoryEvents.

Responsibility:
    Tracks one owned FeedSubscription per external source, translates the
    source's JSON messages into events on the EventHub, and applies the
    bounded reconnection policy.

Architecture position:
    Services -- imperative shell.  Transport-agnostic: whatever reads the
    socket or webhook calls ``receive()`` and the ``report_*`` methods.

Message types:
    stock_update      -> integration_sync (info)
    low_stock_alert   -> stock_alert (warning)
    order_processed   -> webhook_received (success)
    anything else     -> logged, no event

Failure modes:
    - SubscriptionClosedError: receive() on a closed or failed handle.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping
from uuid import UUID, uuid4

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.events import (
    EventType,
    InventoryEvent,
    Severity,
    integration_status,
)
from inventory_kernel.exceptions import SubscriptionClosedError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_services.event_hub import EventHub

if TYPE_CHECKING:
    from inventory_config.schema import InventorySettings

logger = get_logger("services.integration")


class FeedStatus(str, Enum):
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"
    CLOSED = "closed"


@dataclass(eq=False)
class FeedSubscription:
    """Owned handle for one source.  Mutated only by IntegrationFeed."""

    source_url: str
    connected_at: datetime
    status: FeedStatus = FeedStatus.CONNECTED
    reconnect_attempts: int = 0
    messages_received: int = 0
    next_attempt_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def is_open(self) -> bool:
        return self.status in (FeedStatus.CONNECTED, FeedStatus.RECONNECTING)


class IntegrationFeed:
    def __init__(
        self,
        hub: EventHub,
        clock: Clock | None = None,
        max_reconnect_attempts: int = 5,
        source: str = "n8n",
        reconnect_interval_seconds: int = 3,
    ):
        self._hub = hub
        self._clock = clock or SystemClock()
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_interval = timedelta(seconds=reconnect_interval_seconds)
        self.source = source

    @classmethod
    def from_settings(
        cls,
        hub: EventHub,
        settings: InventorySettings,
        clock: Clock | None = None,
        source: str = "n8n",
    ) -> IntegrationFeed:
        return cls(
            hub,
            clock=clock,
            max_reconnect_attempts=settings.integrations.max_reconnect_attempts,
            source=source,
            reconnect_interval_seconds=settings.integrations.reconnect_interval_seconds,
        )

    def _status(
        self,
        handle: FeedSubscription,
        message: str,
        severity: Severity,
    ) -> InventoryEvent:
        event = integration_status(
            message,
            severity=severity,
            source=self.source,
            timestamp=self._clock.now_utc(),
            data={
                "subscription_id": str(handle.id),
                "source_url": handle.source_url,
                "status": handle.status.value,
                "next_attempt_at": (
                    handle.next_attempt_at.isoformat() if handle.next_attempt_at else None
                ),
            },
        )
        self._hub.publish(event)
        return event

    def subscribe(self, source_url: str) -> FeedSubscription:
        handle = FeedSubscription(source_url=source_url, connected_at=self._clock.now_utc())
        with LogContext.bind(source=self.source):
            logger.info(
                "integration_feed_subscribed",
                extra={"subscription_id": str(handle.id), "source_url": source_url},
            )
        self._status(handle, f"Connected to {source_url}", Severity.SUCCESS)
        return handle

    def unsubscribe(self, handle: FeedSubscription) -> bool:
        """Close ``handle``.  Returns False if it was already closed."""
        if handle.status == FeedStatus.CLOSED:
            return False
        handle.status = FeedStatus.CLOSED
        with LogContext.bind(source=self.source):
            logger.info(
                "integration_feed_unsubscribed",
                extra={
                    "subscription_id": str(handle.id),
                    "messages_received": handle.messages_received,
                },
            )
        self._status(handle, f"Disconnected from {handle.source_url}", Severity.INFO)
        return True

    @staticmethod
    def _decode(message: str | bytes | Mapping[str, Any]) -> Mapping[str, Any] | None:
        if isinstance(message, Mapping):
            return message
        try:
            data = json.loads(message)
        except (TypeError, ValueError):
            return None
        return data if isinstance(data, Mapping) else None

    def receive(
        self,
        handle: FeedSubscription,
        message: str | bytes | Mapping[str, Any],
    ) -> InventoryEvent | None:
        """
        Translate one inbound message and publish the resulting event.

        Returns the published event, or None for unparseable or unknown
        messages.
        """
        if not handle.is_open:
            raise SubscriptionClosedError(str(handle.id))

        with LogContext.bind(source=self.source):
            data = self._decode(message)
            if data is None:
                logger.warning(
                    "integration_message_unparseable",
                    extra={"subscription_id": str(handle.id)},
                )
                return None

            handle.messages_received += 1
            kind = data.get("type")
            if kind == "stock_update":
                event_type, severity = EventType.INTEGRATION_SYNC, Severity.INFO
                title = "Stock updated"
                text = f"Stock updated for {data.get('product_name')}"
            elif kind == "low_stock_alert":
                event_type, severity = EventType.STOCK_ALERT, Severity.WARNING
                title = "Low stock alert"
                text = (
                    f"{data.get('product_name')} has critical stock "
                    f"({data.get('current_stock')} units)"
                )
            elif kind == "order_processed":
                event_type, severity = EventType.WEBHOOK_RECEIVED, Severity.SUCCESS
                title = "Order processed"
                text = f"Order #{data.get('order_id')} processed"
            else:
                logger.info(
                    "integration_message_ignored",
                    extra={"subscription_id": str(handle.id), "message_type": kind},
                )
                return None

            event = InventoryEvent(
                type=event_type,
                title=title,
                message=text,
                severity=severity,
                source=self.source,
                timestamp=self._clock.now_utc(),
                data=dict(data),
            )
            logger.info(
                "integration_message_received",
                extra={"subscription_id": str(handle.id), "message_type": kind},
            )
            self._hub.publish(event)
            return event

    def report_connection_lost(self, handle: FeedSubscription) -> InventoryEvent | None:
        """
        Record one failed reconnection attempt.

        Emits a warning per attempt up to max_reconnect_attempts and sets
        ``next_attempt_at`` one reconnect interval ahead; the next call
        after that emits an error and moves the handle to ERROR.
        """
        if not handle.is_open:
            return None

        with LogContext.bind(source=self.source):
            if handle.reconnect_attempts < self.max_reconnect_attempts:
                handle.reconnect_attempts += 1
                handle.status = FeedStatus.RECONNECTING
                handle.next_attempt_at = self._clock.now_utc() + self.reconnect_interval
                logger.warning(
                    "integration_feed_reconnecting",
                    extra={
                        "subscription_id": str(handle.id),
                        "attempt": handle.reconnect_attempts,
                        "max_attempts": self.max_reconnect_attempts,
                        "next_attempt_at": handle.next_attempt_at,
                    },
                )
                return self._status(
                    handle,
                    f"Reconnection attempt {handle.reconnect_attempts} "
                    f"of {self.max_reconnect_attempts}",
                    Severity.WARNING,
                )

            handle.status = FeedStatus.ERROR
            handle.next_attempt_at = None
            logger.error(
                "integration_feed_failed",
                extra={
                    "subscription_id": str(handle.id),
                    "attempts": handle.reconnect_attempts,
                },
            )
            return self._status(
                handle,
                "Could not reconnect after multiple attempts",
                Severity.ERROR,
            )

    def report_reconnected(self, handle: FeedSubscription) -> InventoryEvent | None:
        if handle.status != FeedStatus.RECONNECTING:
            return None
        handle.status = FeedStatus.CONNECTED
        handle.reconnect_attempts = 0
        handle.next_attempt_at = None
        with LogContext.bind(source=self.source):
            logger.info(
                "integration_feed_reconnected",
                extra={"subscription_id": str(handle.id)},
            )
        return self._status(handle, f"Reconnected to {handle.source_url}", Severity.SUCCESS)
