"""
inventory_services -- orchestration over the inventory kernel.

Owns transactions, the in-process event hub, the committed stock cache
and the inbound integration feed.  May import inventory_kernel and
inventory_config; the kernel never imports this package.
"""

from inventory_services.event_hub import EventHub, Subscription
from inventory_services.integration import FeedStatus, FeedSubscription, IntegrationFeed
from inventory_services.movement_orchestrator import (
    MovementPostingResult,
    MovementPostingService,
    ReceiptResult,
)
from inventory_services.stock_cache import StockCache

__all__ = [
    "EventHub",
    "FeedStatus",
    "FeedSubscription",
    "IntegrationFeed",
    "MovementPostingResult",
    "MovementPostingService",
    "ReceiptResult",
    "StockCache",
    "Subscription",
]
