"""
MovementPostingService: transaction boundaries, events after commit,
the stock cache, bounded retries and persistence failure wrapping.
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from inventory_config.schema import InventorySettings, LedgerSettings
from inventory_kernel.domain.events import EventType, Severity
from inventory_kernel.exceptions import (
    ConcurrentModificationError,
    InsufficientStockError,
    InvalidMovementError,
    PermissionDeniedError,
    PersistenceFailureError,
    ProductNotFoundError,
)
from inventory_kernel.models.movement import StockMovement
from inventory_kernel.models.product import Product
from inventory_kernel.services.stock_ledger import StockLedgerService
from inventory_services.movement_orchestrator import MovementPostingService


def _movement_count(session, product_id) -> int:
    return session.execute(
        select(func.count(StockMovement.id)).where(StockMovement.product_id == product_id)
    ).scalar_one()


class FlakyLedger(StockLedgerService):
    """Loses the compare-and-swap ``failures`` times, then behaves."""

    def __init__(self, session, clock, failures):
        super().__init__(session, clock)
        self.failures = failures
        self.calls = 0

    def apply_movement(self, product_id, request, actor_id, *, expected_version=None):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConcurrentModificationError(str(product_id), 1, 2)
        return super().apply_movement(
            product_id, request, actor_id, expected_version=expected_version
        )


class TestRegisterMovement:
    def test_exit_into_low_stock_publishes_both_events(
        self, session, posting, make_product, manager, event_hub, stock_cache
    ):
        product = make_product(stock=10, min_stock=5, name="Widget")

        result = posting.register_movement(manager, product.id, "exit", 6, reference_number="SO-9")

        assert result.new_stock == 4
        assert result.attempts == 1
        assert [e.type for e in result.events] == [
            EventType.MOVEMENT_REGISTERED,
            EventType.STOCK_ALERT,
        ]
        assert result.low_stock_alert
        # Newest first.
        assert [e.type for e in event_hub.recent()] == [
            EventType.STOCK_ALERT,
            EventType.MOVEMENT_REGISTERED,
        ]
        assert stock_cache.get(product.id) == 4
        assert session.get(Product, product.id).current_stock == 4

    def test_alert_repeats_without_suppression(self, posting, make_product, manager, clock):
        product = make_product(stock=10, min_stock=5)
        posting.register_movement(manager, product.id, "exit", 6)
        clock.tick()
        second = posting.register_movement(manager, product.id, "exit", 1)
        assert second.new_stock == 3
        assert second.events[-1].type is EventType.STOCK_ALERT
        assert second.events[-1].severity is Severity.WARNING

    def test_entry_publishes_no_alert_even_below_minimum(self, posting, make_product, manager):
        product = make_product(stock=1, min_stock=5)
        result = posting.register_movement(manager, product.id, "entry", 1)
        assert result.new_stock == 2
        assert [e.type for e in result.events] == [EventType.MOVEMENT_REGISTERED]

    def test_negative_adjustment_under_default_policy(self, posting, make_product, manager):
        product = make_product(stock=20)
        result = posting.register_movement(manager, product.id, "adjustment", -25)
        assert result.new_stock == -5
        assert result.movement.quantity == -25

    def test_subscribers_run_after_commit(self, session, posting, make_product, manager, event_hub):
        product = make_product(stock=3)
        seen = []
        event_hub.subscribe(lambda event: seen.append(session.in_transaction()))

        posting.register_movement(manager, product.id, "entry", 2)

        assert seen == [False]

    def test_completion_is_logged(self, posting, make_product, manager, captured_logs):
        product = make_product(stock=3)
        posting.register_movement(manager, product.id, "entry", 2)

        completed = [r for r in captured_logs() if r["message"] == "movement_registration_completed"]
        assert len(completed) == 1
        assert completed[0]["new_stock"] == 5
        assert completed[0]["product_id"] == str(product.id)
        assert "duration_ms" in completed[0]


class TestFailedCallsHaveNoEffect:
    def test_insufficient_stock_is_idempotent(
        self, session, posting, make_product, manager, event_hub, stock_cache, captured_logs
    ):
        product = make_product(stock=5)
        before = _movement_count(session, product.id)

        for _ in range(2):
            with pytest.raises(InsufficientStockError):
                posting.register_movement(manager, product.id, "exit", 10)

        assert session.get(Product, product.id).current_stock == 5
        assert _movement_count(session, product.id) == before
        assert event_hub.recent() == []
        assert stock_cache.get(product.id) is None
        rejected = [r for r in captured_logs() if r["message"] == "movement_rejected"]
        assert rejected[0]["error_code"] == "INSUFFICIENT_STOCK"

    def test_viewer_cannot_move_stock(self, session, posting, make_product, viewer, event_hub):
        product = make_product(stock=5)
        with pytest.raises(PermissionDeniedError):
            posting.register_movement(viewer, product.id, "entry", 1)
        assert _movement_count(session, product.id) == 1
        assert event_hub.recent() == []

    def test_unknown_product(self, posting, manager):
        with pytest.raises(ProductNotFoundError):
            posting.register_movement(manager, uuid4(), "entry", 1)

    def test_unknown_movement_type(self, posting, make_product, manager):
        product = make_product(stock=5)
        with pytest.raises(InvalidMovementError):
            posting.register_movement(manager, product.id, "transfer", 1)

    def test_commit_failure_is_wrapped(
        self, session, posting, make_product, manager, event_hub, stock_cache, monkeypatch, captured_logs
    ):
        product = make_product(stock=5)

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(session, "commit", failing_commit)

        with pytest.raises(PersistenceFailureError) as exc_info:
            posting.register_movement(manager, product.id, "entry", 3)

        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert exc_info.value.operation == "register_movement"
        assert event_hub.recent() == []
        assert stock_cache.get(product.id) is None

        monkeypatch.undo()
        assert session.get(Product, product.id).current_stock == 5
        assert _movement_count(session, product.id) == 1
        failure = [r for r in captured_logs() if r["message"] == "persistence_failure"]
        assert failure and "traceback" in failure[0]


class TestConcurrencyRetries:
    def test_lost_swap_is_retried(self, session, event_hub, clock, make_product, manager):
        product = make_product(stock=5)
        ledger = FlakyLedger(session, clock, failures=1)
        service = MovementPostingService(session, event_hub, clock=clock, ledger=ledger)

        result = service.register_movement(manager, product.id, "entry", 1)

        assert result.attempts == 2
        assert result.new_stock == 6
        assert ledger.calls == 2

    def test_retries_are_bounded(self, session, clock, make_product, manager):
        product = make_product(stock=5)
        ledger = FlakyLedger(session, clock, failures=10)
        service = MovementPostingService(
            session, clock=clock, ledger=ledger, max_concurrency_retries=2
        )

        with pytest.raises(ConcurrentModificationError):
            service.register_movement(manager, product.id, "entry", 1)
        assert ledger.calls == 3

    def test_pinned_version_is_not_retried(self, session, clock, make_product, manager):
        product = make_product(stock=5)
        ledger = FlakyLedger(session, clock, failures=1)
        service = MovementPostingService(session, clock=clock, ledger=ledger)

        with pytest.raises(ConcurrentModificationError):
            service.register_movement(
                manager, product.id, "entry", 1, expected_version=product.version
            )
        assert ledger.calls == 1

    def test_stale_pinned_version(self, session, posting, make_product, manager):
        product = make_product(stock=5)
        with pytest.raises(ConcurrentModificationError):
            posting.register_movement(
                manager, product.id, "entry", 1, expected_version=product.version - 1
            )
        assert _movement_count(session, product.id) == 1


def test_from_settings_applies_ledger_policy(session, clock, make_product, manager):
    product = make_product(stock=20)
    settings = InventorySettings(
        ledger=LedgerSettings(allow_negative_adjustments=False, max_concurrency_retries=0)
    )
    service = MovementPostingService.from_settings(session, settings, clock=clock)

    with pytest.raises(InsufficientStockError):
        service.register_movement(manager, product.id, "adjustment", -25)
    assert session.get(Product, product.id).current_stock == 20
