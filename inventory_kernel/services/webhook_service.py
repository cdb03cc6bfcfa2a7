"""
WebhookService -- registered outbound webhook endpoints.

Only http and https URLs with a host are accepted.  Delivery itself is out
of scope; record_delivery() is what a delivery worker calls after sending.
"""

from urllib.parse import urlparse
from uuid import UUID

from inventory_kernel.domain.authorization import Actor, Permission, authorize
from inventory_kernel.exceptions import InvalidWebhookUrlError, WebhookNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.webhook import WebhookEndpoint, WebhookStatus
from inventory_kernel.services.base import BaseService

logger = get_logger("services.webhook")


def validate_webhook_url(url: str) -> str:
    """Return the stripped URL, or raise InvalidWebhookUrlError."""
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidWebhookUrlError(url)
    return candidate


class WebhookService(BaseService[WebhookEndpoint]):
    def get(self, endpoint_id: UUID) -> WebhookEndpoint:
        endpoint = self.session.get(WebhookEndpoint, endpoint_id)
        if endpoint is None:
            raise WebhookNotFoundError(str(endpoint_id))
        return endpoint

    def register_endpoint(self, actor: Actor, name: str, url: str) -> WebhookEndpoint:
        authorize(actor, Permission.MANAGE_INTEGRATIONS)
        endpoint = WebhookEndpoint(
            name=(name or "").strip() or url,
            url=validate_webhook_url(url),
            status=WebhookStatus.ACTIVE,
            event_count=0,
            created_by_id=actor.user_id,
        )
        self.session.add(endpoint)
        self.session.flush()
        logger.info(
            "webhook_registered",
            extra={"endpoint_id": str(endpoint.id), "url": endpoint.url},
        )
        return endpoint

    def toggle(self, actor: Actor, endpoint_id: UUID) -> WebhookEndpoint:
        """Flip an endpoint between active and inactive."""
        authorize(actor, Permission.MANAGE_INTEGRATIONS)
        endpoint = self.get(endpoint_id)
        endpoint.status = (
            WebhookStatus.INACTIVE
            if endpoint.status == WebhookStatus.ACTIVE
            else WebhookStatus.ACTIVE
        )
        endpoint.updated_by_id = actor.user_id
        self.session.flush()
        logger.info(
            "webhook_toggled",
            extra={"endpoint_id": str(endpoint.id), "status": WebhookStatus(endpoint.status).value},
        )
        return endpoint

    def record_delivery(self, endpoint_id: UUID) -> WebhookEndpoint:
        endpoint = self.get(endpoint_id)
        endpoint.event_count = (endpoint.event_count or 0) + 1
        endpoint.last_triggered_at = self.clock.now_utc()
        self.session.flush()
        logger.debug(
            "webhook_delivery_recorded",
            extra={"endpoint_id": str(endpoint.id), "event_count": endpoint.event_count},
        )
        return endpoint
