"""
Pytest fixtures for the inventory kernel test suite.

Provides:
- An in-memory SQLite database per test (schema, triggers, ORM listeners,
  sequence counters)
- A deterministic clock and one actor per role
- Product/supplier builders
- Captured structured logs

Environment Variables:
- INVENTORY_TEST_DATABASE_URL: PostgreSQL URL for tests marked ``postgres``.
  Those tests are skipped when it is not set.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from inventory_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain.authorization import Actor, Role
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.services.product_service import ProductService
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.services.supplier_service import SupplierService
from inventory_services.event_hub import EventHub
from inventory_services.movement_orchestrator import MovementPostingService
from inventory_services.stock_cache import StockCache


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, posting):
            posting.register_movement(...)
            logs = captured_logs()
            assert any(r["message"] == "movement_registration_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


def _prepare_database(url: str):
    engine = init_engine_from_url(url)
    create_tables()
    register_immutability_listeners()
    session = get_session()
    try:
        SequenceService(session).initialize_sequences()
        session.commit()
    finally:
        session.close()
    return engine


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database for one test."""
    eng = _prepare_database("sqlite://")
    yield eng
    # A test may have removed the listeners to reach the triggers.
    register_immutability_listeners()
    reset_engine()


@pytest.fixture
def file_engine(tmp_path):
    """
    File-backed SQLite database.

    Needed where two sessions must hold independent connections.
    """
    eng = _prepare_database(f"sqlite:///{tmp_path / 'inventory.db'}")
    yield eng
    reset_engine()


@pytest.fixture
def postgres_engine():
    url = os.environ.get("INVENTORY_TEST_DATABASE_URL")
    if not url:
        pytest.skip("INVENTORY_TEST_DATABASE_URL not set")
    from inventory_kernel.db.engine import drop_tables

    eng = init_engine_from_url(url)
    drop_tables()
    _prepare_database(url)
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine):
    s = get_session_factory()()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Actors and clock
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def admin():
    return Actor(user_id=uuid4(), role=Role.ADMIN)


@pytest.fixture
def manager():
    return Actor(user_id=uuid4(), role=Role.MANAGER)


@pytest.fixture
def viewer():
    return Actor(user_id=uuid4(), role=Role.USER)


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def make_product(session, clock, admin):
    """
    Create and commit a product.

    Usage::

        product = make_product(stock=10, min_stock=5)
    """
    counter = {"n": 0}

    def _make(
        stock: int = 0,
        min_stock: int = 0,
        *,
        sku: str | None = None,
        name: str | None = None,
        purchase_price: Decimal = Decimal("2.50"),
        selling_price: Decimal = Decimal("4.00"),
        supplier_id=None,
    ):
        counter["n"] += 1
        record = ProductService(session, clock).create_product(
            admin,
            sku=sku or f"SKU-{counter['n']:04d}",
            name=name or f"Product {counter['n']}",
            category="General",
            opening_stock=stock,
            min_stock=min_stock,
            purchase_price=purchase_price,
            selling_price=selling_price,
            supplier_id=supplier_id,
        )
        session.commit()
        return record

    return _make


@pytest.fixture
def make_supplier(session, clock, admin):
    counter = {"n": 0}

    def _make(name: str | None = None):
        counter["n"] += 1
        supplier = SupplierService(session, clock).create_supplier(
            admin, name or f"Supplier {counter['n']}", email="orders@example.com"
        )
        session.commit()
        return supplier

    return _make


@pytest.fixture
def event_hub():
    return EventHub(history_limit=100)


@pytest.fixture
def stock_cache():
    return StockCache()


@pytest.fixture
def posting(session, event_hub, stock_cache, clock):
    return MovementPostingService(
        session,
        event_hub=event_hub,
        stock_cache=stock_cache,
        clock=clock,
    )
