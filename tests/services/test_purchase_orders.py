"""
Purchase orders: creation, status lifecycle, and receipt into stock.
"""

from datetime import date
from decimal import Decimal

import pytest

from inventory_kernel.domain.events import EventType
from inventory_kernel.domain.ledger import MovementType
from inventory_kernel.exceptions import (
    InvalidMovementError,
    InvalidOrderError,
    InvalidOrderTransitionError,
    PermissionDeniedError,
    SupplierInactiveError,
)
from inventory_kernel.models.product import Product
from inventory_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from inventory_kernel.models.supplier import SupplierStatus
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.product_service import ProductService
from inventory_kernel.services.purchase_order_service import (
    OrderLineInput,
    PurchaseOrderService,
    format_order_number,
)
from inventory_kernel.services.supplier_service import SupplierService


@pytest.fixture
def orders(session, clock):
    return PurchaseOrderService(session, clock)


@pytest.fixture
def supplier(make_supplier):
    return make_supplier("Acme")


def _ship(session, orders, actor, order_id):
    orders.transition(actor, order_id, PurchaseOrderStatus.CONFIRMED)
    orders.transition(actor, order_id, PurchaseOrderStatus.SHIPPED)
    session.commit()


class TestCreateOrder:
    def test_numbering_and_totals(self, session, orders, supplier, make_product, manager):
        bolt = make_product(stock=0)
        nut = make_product(stock=0)

        first = orders.create_order(
            manager,
            supplier.id,
            [
                OrderLineInput(bolt.id, 10, Decimal("1.25")),
                OrderLineInput(nut.id, 4, Decimal("0.50")),
            ],
            expected_delivery_date=date(2024, 1, 10),
        )
        second = orders.create_order(manager, supplier.id, [OrderLineInput(bolt.id, 1, Decimal("1"))])
        session.commit()

        assert first.order_number == "PO-000001"
        assert second.order_number == "PO-000002"
        assert first.status == PurchaseOrderStatus.PENDING
        assert first.total_amount == Decimal("14.50")
        assert [line.line_number for line in first.lines] == [1, 2]
        assert first.lines[0].total_price == Decimal("12.50")

    def test_needs_lines(self, orders, supplier, manager):
        with pytest.raises(InvalidOrderError):
            orders.create_order(manager, supplier.id, [])

    def test_rejects_non_positive_quantity(self, orders, supplier, make_product, manager):
        product = make_product()
        with pytest.raises(InvalidOrderError):
            orders.create_order(manager, supplier.id, [OrderLineInput(product.id, 0, Decimal("1"))])

    def test_inactive_supplier(self, session, clock, orders, supplier, make_product, admin, manager):
        product = make_product()
        SupplierService(session, clock).set_status(admin, supplier.id, SupplierStatus.INACTIVE)
        with pytest.raises(SupplierInactiveError):
            orders.create_order(manager, supplier.id, [OrderLineInput(product.id, 1, Decimal("1"))])

    def test_viewer_cannot_order(self, orders, supplier, make_product, viewer):
        product = make_product()
        with pytest.raises(PermissionDeniedError):
            orders.create_order(viewer, supplier.id, [OrderLineInput(product.id, 1, Decimal("1"))])


class TestTransitions:
    @pytest.fixture
    def order(self, session, orders, supplier, make_product, manager):
        product = make_product()
        order = orders.create_order(manager, supplier.id, [OrderLineInput(product.id, 2, Decimal("3"))])
        session.commit()
        return order

    def test_happy_path_stamps_delivery(self, session, orders, order, manager, clock):
        _ship(session, orders, manager, order.id)
        delivered = orders.transition(manager, order.id, "delivered")
        assert delivered.status == PurchaseOrderStatus.DELIVERED
        assert delivered.delivery_date == clock.now_utc()

    def test_cancel_from_pending(self, orders, order, manager):
        assert orders.transition(manager, order.id, "cancelled").status == PurchaseOrderStatus.CANCELLED

    @pytest.mark.parametrize("target", ["shipped", "delivered", "pending"])
    def test_illegal_from_pending(self, orders, order, manager, target):
        with pytest.raises(InvalidOrderTransitionError):
            orders.transition(manager, order.id, target)

    def test_terminal_state(self, session, orders, order, manager):
        orders.transition(manager, order.id, "cancelled")
        session.commit()
        with pytest.raises(InvalidOrderTransitionError):
            orders.transition(manager, order.id, "confirmed")

    def test_unknown_status(self, orders, order, manager):
        with pytest.raises(InvalidOrderError):
            orders.transition(manager, order.id, "lost")


def test_format_order_number():
    assert format_order_number(42) == "PO-000042"


class TestReceivePurchaseOrder:
    def test_receipt_books_every_line(
        self, session, orders, posting, supplier, make_product, manager, event_hub, stock_cache
    ):
        bolt = make_product(stock=3, min_stock=5)
        nut = make_product(stock=0)
        order = orders.create_order(
            manager,
            supplier.id,
            [
                OrderLineInput(bolt.id, 10, Decimal("1.25")),
                OrderLineInput(nut.id, 4, Decimal("0.50")),
            ],
        )
        session.commit()
        _ship(session, orders, manager, order.id)

        receipt = posting.receive_purchase_order(manager, order.id)

        assert receipt.order.status == "delivered"
        assert receipt.order.delivery_date is not None
        assert [m.new_stock for m in receipt.movements] == [13, 4]
        assert all(m.movement_type is MovementType.ENTRY for m in receipt.movements)
        assert all(m.reference_number == order.order_number for m in receipt.movements)
        assert receipt.movements[0].unit_cost == Decimal("1.25")
        assert [e.type for e in receipt.events] == [EventType.MOVEMENT_REGISTERED] * 2
        assert all(e.source == "purchasing" for e in receipt.events)
        assert stock_cache.get(bolt.id) == 13
        assert len(event_hub.recent()) == 2
        assert MovementSelector(session).history(search=order.order_number, limit=None) != []

    def test_receipt_requires_shipped_order(
        self, session, orders, posting, supplier, make_product, manager, captured_logs
    ):
        product = make_product(stock=1)
        order = orders.create_order(manager, supplier.id, [OrderLineInput(product.id, 5, Decimal("1"))])
        session.commit()

        with pytest.raises(InvalidOrderTransitionError):
            posting.receive_purchase_order(manager, order.id)
        assert session.get(Product, product.id).current_stock == 1

        logs = captured_logs()
        rejected = [r for r in logs if r["message"] == "purchase_order_receipt_rejected"]
        assert rejected[0]["level"] == "WARNING"
        assert rejected[0]["error_code"] == "INVALID_ORDER_TRANSITION"
        assert "traceback" not in rejected[0]
        assert not any(r["message"] == "purchase_order_receipt_failed" for r in logs)

    def test_failed_line_rolls_back_whole_receipt(
        self, session, clock, orders, posting, supplier, make_product, manager, event_hub
    ):
        good = make_product(stock=1)
        retired = make_product(stock=1)
        order = orders.create_order(
            manager,
            supplier.id,
            [
                OrderLineInput(good.id, 5, Decimal("1")),
                OrderLineInput(retired.id, 5, Decimal("1")),
            ],
        )
        session.commit()
        _ship(session, orders, manager, order.id)
        ProductService(session, clock).set_active(manager, retired.id, False)
        session.commit()

        with pytest.raises(InvalidMovementError):
            posting.receive_purchase_order(manager, order.id)

        assert session.get(Product, good.id).current_stock == 1
        assert session.get(PurchaseOrder, order.id).status == PurchaseOrderStatus.SHIPPED
        assert event_hub.recent() == []
