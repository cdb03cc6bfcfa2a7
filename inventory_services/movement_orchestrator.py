"""
MovementPostingService -- transaction-owning entry point for stock movements.

Responsibility:
    Authorizes the actor, runs StockLedgerService inside one transaction,
    commits, and only then updates the StockCache and publishes events.
    Also receives purchase orders: delivery plus one entry movement per
    line, all in one transaction.

Architecture position:
    Services -- imperative shell.  Composes kernel services; the kernel
    never calls back into this module.

Invariants enforced:
    atomic_commit -- commit on success, rollback on any failure.
    events_after_commit -- nothing is published and the cache is untouched
        unless the commit succeeded.
    optimistic_version -- ConcurrentModificationError is retried up to
        ``max_concurrency_retries`` times, and only when the caller did not
        pin ``expected_version``.  No other error is retried.

Failure modes:
    - PermissionDeniedError before any read-modify-write.
    - Ledger errors (InsufficientStockError, ProductNotFoundError,
      InvalidMovementError) propagate unchanged.
    - Any SQLAlchemyError during the write or the commit is logged with its
      traceback and re-raised as PersistenceFailureError.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_kernel.domain import events as event_builders
from inventory_kernel.domain.authorization import Actor, Permission, authorize
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import MovementRecord, PurchaseOrderRecord
from inventory_kernel.domain.events import InventoryEvent
from inventory_kernel.domain.ledger import MovementRequest, MovementType
from inventory_kernel.exceptions import (
    ConcurrentModificationError,
    InventoryKernelError,
    PersistenceFailureError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.purchase_order import PurchaseOrderStatus
from inventory_kernel.services.purchase_order_service import PurchaseOrderService
from inventory_kernel.services.stock_ledger import LedgerEntryResult, StockLedgerService
from inventory_services.event_hub import EventHub
from inventory_services.stock_cache import StockCache

if TYPE_CHECKING:
    from inventory_config.schema import InventorySettings

logger = get_logger("services.movement_orchestrator")

T = TypeVar("T")


@dataclass(frozen=True)
class MovementPostingResult:
    movement: MovementRecord
    new_stock: int
    events: tuple[InventoryEvent, ...]
    attempts: int = 1

    @property
    def low_stock_alert(self) -> bool:
        return any(e.type == event_builders.EventType.STOCK_ALERT for e in self.events)


@dataclass(frozen=True)
class ReceiptResult:
    order: PurchaseOrderRecord
    movements: tuple[MovementRecord, ...]
    events: tuple[InventoryEvent, ...]


class MovementPostingService:
    """
    Registers movements and receives purchase orders.

    The session passed in is owned by this service for the duration of each
    call: it is committed or rolled back before the call returns.
    """

    def __init__(
        self,
        session: Session,
        event_hub: EventHub | None = None,
        stock_cache: StockCache | None = None,
        clock: Clock | None = None,
        *,
        allow_negative_adjustments: bool = True,
        max_concurrency_retries: int = 3,
        ledger: StockLedgerService | None = None,
    ):
        if max_concurrency_retries < 0:
            raise ValueError("max_concurrency_retries must be >= 0")
        self._session = session
        self._clock = clock or SystemClock()
        self._hub = event_hub
        self._cache = stock_cache
        self._max_retries = max_concurrency_retries
        self._ledger = ledger or StockLedgerService(
            session,
            self._clock,
            allow_negative_adjustments=allow_negative_adjustments,
        )
        self._orders = PurchaseOrderService(session, self._clock)

    @classmethod
    def from_settings(
        cls,
        session: Session,
        settings: InventorySettings,
        event_hub: EventHub | None = None,
        stock_cache: StockCache | None = None,
        clock: Clock | None = None,
    ) -> MovementPostingService:
        return cls(
            session,
            event_hub=event_hub,
            stock_cache=stock_cache,
            clock=clock,
            allow_negative_adjustments=settings.ledger.allow_negative_adjustments,
            max_concurrency_retries=settings.ledger.max_concurrency_retries,
        )

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _commit_with_retries(
        self,
        operation: str,
        work: Callable[[], T],
        *,
        retry: bool,
    ) -> tuple[T, int]:
        """Run ``work`` and commit.  Returns (result, attempts)."""
        attempts = 0
        while True:
            attempts += 1
            try:
                result = work()
                self._session.commit()
                return result, attempts
            except ConcurrentModificationError as exc:
                self._session.rollback()
                if not retry or attempts > self._max_retries:
                    raise
                logger.warning(
                    "concurrent_modification_retry",
                    extra={
                        "attempt": attempts,
                        "max_retries": self._max_retries,
                        "expected_version": exc.expected_version,
                        "actual_version": exc.actual_version,
                    },
                )
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.error(
                    "persistence_failure",
                    extra={"operation": operation, "attempt": attempts},
                    exc_info=True,
                )
                raise PersistenceFailureError(operation, str(exc)) from exc

    def _publish(self, published: list[InventoryEvent]) -> None:
        if self._hub is None:
            return
        for event in published:
            self._hub.publish(event)

    def _events_for(
        self, entry: LedgerEntryResult, source: str
    ) -> list[InventoryEvent]:
        now = self._clock.now_utc()
        out = [
            event_builders.movement_registered(
                entry.change,
                movement_id=entry.movement.id,
                reference_number=entry.movement.reference_number,
                timestamp=now,
                product_name=entry.product_name,
                source=source,
            )
        ]
        if entry.low_stock_alert:
            logger.warning(
                "stock_alert_raised",
                extra={
                    "new_stock": entry.change.new_stock,
                    "min_stock": entry.change.min_stock,
                },
            )
            out.append(
                event_builders.stock_alert(
                    entry.change,
                    timestamp=now,
                    product_name=entry.product_name,
                    source=source,
                )
            )
        return out

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def register_movement(
        self,
        actor: Actor,
        product_id: UUID,
        movement_type: MovementType | str,
        quantity: int,
        *,
        reference_number: str | None = None,
        notes: str | None = None,
        unit_cost: Decimal | None = None,
        expected_version: int | None = None,
    ) -> MovementPostingResult:
        """
        Apply one movement and commit it.

        Args:
            actor: Who is moving stock; needs register_movement.
            product_id: Target product.
            movement_type: entry, exit or adjustment.
            quantity: Magnitude for entry/exit, signed delta for adjustment.
            expected_version: Product version the caller displayed.  When
                given, a mismatch fails immediately and is not retried.

        Returns:
            MovementPostingResult with the committed movement and the events
            that were published.
        """
        correlation_id = str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=str(actor.user_id),
            product_id=str(product_id),
        ):
            logger.info(
                "movement_registration_started",
                extra={
                    "movement_type": str(getattr(movement_type, "value", movement_type)),
                    "quantity": quantity,
                    "expected_version": expected_version,
                },
            )
            t0 = time.monotonic()

            try:
                authorize(actor, Permission.REGISTER_MOVEMENT)
                request = MovementRequest(
                    movement_type=MovementType.parse(movement_type),
                    quantity=quantity,
                    reference_number=reference_number,
                    notes=notes,
                    unit_cost=unit_cost,
                )
                entry, attempts = self._commit_with_retries(
                    "register_movement",
                    lambda: self._ledger.apply_movement(
                        product_id,
                        request,
                        actor.user_id,
                        expected_version=expected_version,
                    ),
                    retry=expected_version is None,
                )
            except InventoryKernelError as exc:
                self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.warning(
                    "movement_rejected",
                    extra={"error_code": exc.code, "duration_ms": duration_ms},
                )
                raise
            except Exception:
                self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.error(
                    "movement_registration_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise

            # Committed.  From here on nothing may undo the movement.
            if self._cache is not None:
                self._cache.set(product_id, entry.new_stock)
            published = self._events_for(entry, source="ledger")
            self._publish(published)

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "movement_registration_completed",
                extra={
                    "movement_id": str(entry.movement.id),
                    "new_stock": entry.new_stock,
                    "attempts": attempts,
                    "event_count": len(published),
                    "duration_ms": duration_ms,
                },
            )
            return MovementPostingResult(
                movement=entry.movement,
                new_stock=entry.new_stock,
                events=tuple(published),
                attempts=attempts,
            )

    def receive_purchase_order(self, actor: Actor, order_id: UUID) -> ReceiptResult:
        """
        Deliver a shipped order and book its lines into stock.

        The status change and every entry movement commit together; if any
        line fails, the order stays shipped and no stock moves.
        """
        correlation_id = str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=str(actor.user_id),
            order_id=str(order_id),
        ):
            logger.info("purchase_order_receipt_started")
            t0 = time.monotonic()

            def work() -> tuple[PurchaseOrderRecord, list[LedgerEntryResult]]:
                order = self._orders.transition(
                    actor, order_id, PurchaseOrderStatus.DELIVERED
                )
                entries = []
                for line in order.lines:
                    entries.append(
                        self._ledger.apply_movement(
                            line.product_id,
                            MovementRequest(
                                movement_type=MovementType.ENTRY,
                                quantity=line.quantity,
                                reference_number=order.order_number,
                                notes=f"Receipt of {order.order_number} line {line.line_number}",
                                unit_cost=line.unit_price,
                            ),
                            actor.user_id,
                        )
                    )
                return PurchaseOrderRecord.from_model(order), entries

            try:
                authorize(actor, Permission.REGISTER_MOVEMENT)
                (order, entries), attempts = self._commit_with_retries(
                    "receive_purchase_order", work, retry=True
                )
            except InventoryKernelError as exc:
                self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.warning(
                    "purchase_order_receipt_rejected",
                    extra={"error_code": exc.code, "duration_ms": duration_ms},
                )
                raise
            except Exception:
                self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.error(
                    "purchase_order_receipt_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise

            published: list[InventoryEvent] = []
            for entry in entries:
                if self._cache is not None:
                    self._cache.set(entry.change.product_id, entry.new_stock)
                published.extend(self._events_for(entry, source="purchasing"))
            self._publish(published)

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "purchase_order_receipt_completed",
                extra={
                    "order_number": order.order_number,
                    "line_count": len(entries),
                    "attempts": attempts,
                    "duration_ms": duration_ms,
                },
            )
            return ReceiptResult(
                order=order,
                movements=tuple(e.movement for e in entries),
                events=tuple(published),
            )
