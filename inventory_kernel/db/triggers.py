"""
Module: inventory_kernel.db.triggers
Responsibility: Installing and verifying database-level immutability triggers
    on stock_movements.  This is the database-level complement to the ORM
    listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.

Invariants enforced:
    - stock_movements rows: no UPDATE, no DELETE, even through raw SQL.

Failure modes:
    - PostgreSQL RAISE EXCEPTION / SQLite RAISE(ABORT) on any violation,
      surfaced by SQLAlchemy as a DBAPI error (IntegrityError,
      InternalError or OperationalError depending on the driver).
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

ALL_TRIGGER_NAMES = [
    "trg_stock_movement_immutability_update",
    "trg_stock_movement_immutability_delete",
]

_POSTGRES_INSTALL = [
    """
    CREATE OR REPLACE FUNCTION prevent_stock_movement_change()
    RETURNS TRIGGER AS $$
    BEGIN
        RAISE EXCEPTION 'stock_movements are append-only (%)', TG_OP;
    END;
    $$ LANGUAGE plpgsql;
    """,
    "DROP TRIGGER IF EXISTS trg_stock_movement_immutability_update ON stock_movements",
    """
    CREATE TRIGGER trg_stock_movement_immutability_update
    BEFORE UPDATE ON stock_movements
    FOR EACH ROW EXECUTE FUNCTION prevent_stock_movement_change()
    """,
    "DROP TRIGGER IF EXISTS trg_stock_movement_immutability_delete ON stock_movements",
    """
    CREATE TRIGGER trg_stock_movement_immutability_delete
    BEFORE DELETE ON stock_movements
    FOR EACH ROW EXECUTE FUNCTION prevent_stock_movement_change()
    """,
]

_POSTGRES_DROP = [
    "DROP TRIGGER IF EXISTS trg_stock_movement_immutability_update ON stock_movements",
    "DROP TRIGGER IF EXISTS trg_stock_movement_immutability_delete ON stock_movements",
    "DROP FUNCTION IF EXISTS prevent_stock_movement_change()",
]

_SQLITE_INSTALL = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_stock_movement_immutability_update
    BEFORE UPDATE ON stock_movements
    BEGIN
        SELECT RAISE(ABORT, 'stock_movements are append-only (UPDATE)');
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_stock_movement_immutability_delete
    BEFORE DELETE ON stock_movements
    BEGIN
        SELECT RAISE(ABORT, 'stock_movements are append-only (DELETE)');
    END
    """,
]

_SQLITE_DROP = [
    "DROP TRIGGER IF EXISTS trg_stock_movement_immutability_update",
    "DROP TRIGGER IF EXISTS trg_stock_movement_immutability_delete",
]


def _statements(engine: Engine, install: bool) -> list[str]:
    if engine.dialect.name == "postgresql":
        return _POSTGRES_INSTALL if install else _POSTGRES_DROP
    if engine.dialect.name == "sqlite":
        return _SQLITE_INSTALL if install else _SQLITE_DROP
    raise RuntimeError(f"Unsupported dialect for triggers: {engine.dialect.name}")


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers on stock_movements.

    Preconditions: Tables must exist (call after create_all()).
    Postconditions: Every trigger in ALL_TRIGGER_NAMES is installed.
    """
    with engine.connect() as conn:
        for statement in _statements(engine, install=True):
            conn.execute(text(statement))
        conn.commit()


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove database-level immutability triggers.

    WARNING: Only use this for maintenance that must rewrite history.
    Re-install the triggers immediately afterwards.
    """
    with engine.connect() as conn:
        for statement in _statements(engine, install=False):
            conn.execute(text(statement))
        conn.commit()


def get_installed_triggers(engine: Engine) -> list[str]:
    """Get the list of installed immutability triggers, sorted by name."""
    if engine.dialect.name == "postgresql":
        query = "SELECT tgname FROM pg_trigger WHERE tgname = ANY(:names)"
    else:
        query = (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'trigger' AND name IN (:n0, :n1)"
        )
    params: dict = (
        {"names": ALL_TRIGGER_NAMES}
        if engine.dialect.name == "postgresql"
        else {f"n{i}": name for i, name in enumerate(ALL_TRIGGER_NAMES)}
    )
    with engine.connect() as conn:
        return sorted(row[0] for row in conn.execute(text(query), params))


def triggers_installed(engine: Engine) -> bool:
    """Check if all immutability triggers are installed."""
    return set(get_installed_triggers(engine)) == set(ALL_TRIGGER_NAMES)
