"""
Module: inventory_kernel.models.webhook
Responsibility: ORM persistence for registered outbound webhook endpoints.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UTCDateTime


class WebhookStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class WebhookEndpoint(TrackedBase):
    """An external URL notified of inventory events."""

    __tablename__ = "webhook_endpoints"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    url: Mapped[str] = mapped_column(String(2048), nullable=False)

    status: Mapped[WebhookStatus] = mapped_column(
        String(20),
        nullable=False,
        default=WebhookStatus.ACTIVE,
    )

    last_triggered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    event_count: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<WebhookEndpoint {self.name} {self.status}>"
