"""
StockLedgerService: the flush-only persistence step.

These tests drive the service directly and commit/rollback themselves,
the way MovementPostingService does.
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from inventory_kernel.domain.ledger import MovementRequest, MovementType
from inventory_kernel.exceptions import (
    ConcurrentModificationError,
    InsufficientStockError,
    ProductNotFoundError,
)
from inventory_kernel.models.movement import StockMovement
from inventory_kernel.models.product import Product
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.stock_ledger import StockLedgerService


def _movement_count(session, product_id) -> int:
    return session.execute(
        select(func.count(StockMovement.id)).where(StockMovement.product_id == product_id)
    ).scalar_one()


@pytest.fixture
def ledger(session, clock):
    return StockLedgerService(session, clock)


class TestApplyMovement:
    def test_entry_updates_product_and_appends_movement(self, session, ledger, make_product, admin):
        product = make_product(stock=10)
        result = ledger.apply_movement(
            product.id, MovementRequest(MovementType.ENTRY, 5, reference_number="GR-1"), admin.user_id
        )
        session.commit()

        row = session.get(Product, product.id)
        assert row.current_stock == 15
        assert row.version == product.version + 1
        assert result.movement.previous_stock == 10
        assert result.movement.new_stock == 15
        assert result.movement.quantity == 5
        assert result.movement.reference_number == "GR-1"
        assert result.movement.sequence == row.version

    def test_exit_records_negative_quantity(self, session, ledger, make_product, admin):
        product = make_product(stock=10, min_stock=5)
        result = ledger.apply_movement(
            product.id, MovementRequest(MovementType.EXIT, 6), admin.user_id
        )
        session.commit()
        assert result.movement.quantity == -6
        assert result.new_stock == 4
        assert result.low_stock_alert

    def test_missing_product(self, ledger, admin):
        with pytest.raises(ProductNotFoundError):
            ledger.apply_movement(uuid4(), MovementRequest(MovementType.ENTRY, 1), admin.user_id)

    def test_insufficient_stock_writes_nothing(self, session, ledger, make_product, admin):
        product = make_product(stock=5)
        before = _movement_count(session, product.id)
        with pytest.raises(InsufficientStockError):
            ledger.apply_movement(product.id, MovementRequest(MovementType.EXIT, 10), admin.user_id)
        session.rollback()
        assert session.get(Product, product.id).current_stock == 5
        assert _movement_count(session, product.id) == before

    def test_stale_expected_version_rejected_before_write(self, session, ledger, make_product, admin):
        product = make_product(stock=5)
        with pytest.raises(ConcurrentModificationError) as exc_info:
            ledger.apply_movement(
                product.id,
                MovementRequest(MovementType.ENTRY, 1),
                admin.user_id,
                expected_version=product.version - 1,
            )
        assert exc_info.value.actual_version == product.version
        session.rollback()
        assert _movement_count(session, product.id) == 1

    def test_ledger_stays_consistent_over_a_sequence(self, session, ledger, make_product, admin, clock):
        product = make_product(stock=3, min_stock=2)
        requests = [
            MovementRequest(MovementType.ENTRY, 7),
            MovementRequest(MovementType.EXIT, 4),
            MovementRequest(MovementType.ADJUSTMENT, -8),
            MovementRequest(MovementType.ENTRY, 2),
        ]
        for request in requests:
            clock.tick()
            ledger.apply_movement(product.id, request, admin.user_id)
            session.commit()

        report = MovementSelector(session).verify_ledger_consistency(product.id)
        assert report.is_consistent
        assert report.movement_count == 5
        assert report.current_stock == 0
