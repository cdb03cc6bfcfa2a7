"""scripts/ledger_cli.py against a temporary SQLite file."""

import importlib.util
from pathlib import Path
from uuid import uuid4

import pytest

from inventory_kernel.db.engine import get_session, reset_engine
from inventory_kernel.domain.authorization import Role
from inventory_kernel.services.product_service import ProductService
from inventory_kernel.services.user_role_service import UserRoleService

CLI_PATH = Path(__file__).resolve().parents[1] / "scripts" / "ledger_cli.py"


@pytest.fixture
def cli():
    spec = importlib.util.spec_from_file_location("ledger_cli", CLI_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    yield module
    reset_engine()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def seeded(cli, db_url, admin):
    assert cli.main(["--db-url", db_url, "init-db"]) == 0
    manager_id = uuid4()
    session = get_session()
    try:
        UserRoleService(session).assign_role(admin, manager_id, Role.MANAGER)
        ProductService(session).create_product(
            admin, sku="CLI-1", name="Widget", category="Parts", opening_stock=10, min_stock=8
        )
        session.commit()
    finally:
        session.close()
    return manager_id


def test_movement_then_history(cli, db_url, seeded, capsys):
    code = cli.main([
        "--db-url", db_url, "movement",
        "--sku", "cli-1", "--user-id", str(seeded),
        "--type", "exit", "--quantity", "3", "--reference", "SO-9",
    ])
    out = capsys.readouterr().out
    assert code == 0
    assert "10 -> 7" in out
    assert "[warning]" in out

    assert cli.main(["--db-url", db_url, "history", "--type", "exit"]) == 0
    out = capsys.readouterr().out
    assert "CLI-1" in out
    assert "SO-9" in out
    assert "OPENING" not in out


def test_rejected_movement_reports_error_code(cli, db_url, seeded, capsys):
    code = cli.main([
        "--db-url", db_url, "movement",
        "--sku", "CLI-1", "--user-id", str(seeded),
        "--type", "exit", "--quantity", "50",
    ])
    assert code == 1
    assert "ERROR [INSUFFICIENT_STOCK]" in capsys.readouterr().err


def test_unknown_sku(cli, db_url, seeded, capsys):
    code = cli.main([
        "--db-url", db_url, "movement",
        "--sku", "NOPE", "--user-id", str(seeded),
        "--type", "entry", "--quantity", "1",
    ])
    assert code == 1
    assert "no product with SKU" in capsys.readouterr().err


def test_plain_user_is_denied(cli, db_url, seeded, capsys):
    code = cli.main([
        "--db-url", db_url, "movement",
        "--sku", "CLI-1", "--user-id", str(uuid4()),
        "--type", "entry", "--quantity", "1",
    ])
    assert code == 1
    assert "ERROR [" in capsys.readouterr().err


def test_dashboard(cli, db_url, seeded, capsys):
    assert cli.main(["--db-url", db_url, "dashboard"]) == 0
    out = capsys.readouterr().out
    assert "Active products:    1" in out
    assert "Low stock:          0" in out
