"""
ORM-Level Immutability Enforcement (layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

Stock movements are the ledger.  A product's current stock is only
explainable if every movement that produced it is still there, unchanged.
Corrections are new movements (adjustments), never edits.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (database triggers)
    - Catches raw SQL and bulk statements
    - Fires AT the database level, independent of application code

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update event] --> _check_stock_movement_update() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_stock_movement_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_stock_movement_update(mapper, connection, target):
    """Prevent any update of a StockMovement row."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": "append_only_movements",
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason="Stock movements are append-only and cannot be modified",
    )


def _check_stock_movement_delete(mapper, connection, target):
    """Prevent deletion of a StockMovement row."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": "append_only_movements",
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason="Stock movements are append-only and cannot be deleted",
    )


_LISTENERS = (
    ("before_update", _check_stock_movement_update),
    ("before_delete", _check_stock_movement_delete),
)


def register_immutability_listeners():
    """
    Register immutability enforcement event listeners.

    Call this after models are imported but before any database operations
    begin.  Registering twice is a no-op.
    """
    from inventory_kernel.models.movement import StockMovement

    for event_name, listener_fn in _LISTENERS:
        if not event.contains(StockMovement, event_name, listener_fn):
            event.listen(StockMovement, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that must violate the rule on purpose
    to verify the database-level triggers.
    """
    from inventory_kernel.models.movement import StockMovement

    for event_name, listener_fn in _LISTENERS:
        _safe_remove_listener(StockMovement, event_name, listener_fn)
