#!/usr/bin/env python3
"""
Operator CLI for the inventory ledger.

Commands:
  init-db     create tables, immutability triggers and sequence counters
  movement    register one movement (entry | exit | adjustment)
  history     print movements, newest first
  dashboard   print the dashboard metrics for today

Usage:
  python3 scripts/ledger_cli.py [--config FILE] [--db-url URL] init-db
  python3 scripts/ledger_cli.py movement --user-id UUID --sku SKU-1 \\
      --type exit --quantity 3 [--reference REF] [--expected-version N]
  python3 scripts/ledger_cli.py history [--search TEXT] [--type exit] \\
      [--from 2024-01-01] [--to 2024-01-31] [--limit 50]

The database URL comes from inventory_config (packaged defaults, --config,
then INVENTORY_DATABASE_URL / DATABASE_URL); --db-url overrides all of them.
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from inventory_config import get_active_config  # noqa: E402
from inventory_kernel.db.engine import (  # noqa: E402
    create_tables,
    get_session,
    init_engine_from_url,
)
from inventory_kernel.db.immutability import register_immutability_listeners  # noqa: E402
from inventory_kernel.domain.clock import SystemClock  # noqa: E402
from inventory_kernel.exceptions import InventoryKernelError  # noqa: E402
from inventory_kernel.logging_config import configure_logging  # noqa: E402
from inventory_kernel.selectors.movement_selector import MovementSelector  # noqa: E402
from inventory_kernel.selectors.product_selector import ProductSelector  # noqa: E402
from inventory_kernel.services.sequence_service import SequenceService  # noqa: E402
from inventory_kernel.services.user_role_service import UserRoleService  # noqa: E402
from inventory_services.event_hub import EventHub  # noqa: E402
from inventory_services.movement_orchestrator import MovementPostingService  # noqa: E402


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Inventory ledger operations")
    p.add_argument("--config", type=Path, default=None, help="YAML file overlaid on the defaults")
    p.add_argument("--db-url", default=None, help="Database URL (overrides configuration)")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create schema, triggers and sequence counters")

    mv = sub.add_parser("movement", help="Register one stock movement")
    target = mv.add_mutually_exclusive_group(required=True)
    target.add_argument("--sku")
    target.add_argument("--product-id", type=UUID)
    mv.add_argument("--user-id", type=UUID, required=True)
    mv.add_argument("--type", dest="movement_type", required=True,
                    choices=["entry", "exit", "adjustment"])
    mv.add_argument("--quantity", type=int, required=True)
    mv.add_argument("--reference", default=None)
    mv.add_argument("--notes", default=None)
    mv.add_argument("--expected-version", type=int, default=None)

    hist = sub.add_parser("history", help="Print movement history")
    hist.add_argument("--search", default=None)
    hist.add_argument("--type", dest="movement_type", default=None,
                      choices=["entry", "exit", "adjustment"])
    hist.add_argument("--from", dest="date_from", type=date.fromisoformat, default=None)
    hist.add_argument("--to", dest="date_to", type=date.fromisoformat, default=None)
    hist.add_argument("--limit", type=int, default=50)

    sub.add_parser("dashboard", help="Print today's dashboard metrics")
    return p.parse_args(argv)


def _init_db() -> int:
    create_tables()
    session = get_session()
    try:
        SequenceService(session).initialize_sequences()
        session.commit()
    finally:
        session.close()
    print("  Schema, triggers and sequence counters ready.")
    return 0


def _movement(args: argparse.Namespace, settings) -> int:
    session = get_session()
    try:
        product_id = args.product_id
        if product_id is None:
            product = ProductSelector(session).get_by_sku(args.sku)
            if product is None:
                print(f"  ERROR: no product with SKU {args.sku!r}", file=sys.stderr)
                return 1
            product_id = product.id

        actor = UserRoleService(session).resolve_actor(args.user_id)
        service = MovementPostingService.from_settings(
            session, settings, event_hub=EventHub.from_settings(settings), clock=SystemClock()
        )
        result = service.register_movement(
            actor,
            product_id,
            args.movement_type,
            args.quantity,
            reference_number=args.reference,
            notes=args.notes,
            expected_version=args.expected_version,
        )
    except InventoryKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()

    m = result.movement
    print(f"  {m.movement_type.value} {m.quantity:+d}: {m.previous_stock} -> {m.new_stock}")
    for event in result.events:
        print(f"  [{event.severity.value}] {event.title}: {event.message}")
    return 0


def _history(args: argparse.Namespace) -> int:
    session = get_session()
    try:
        rows = MovementSelector(session).history(
            search=args.search,
            movement_type=args.movement_type,
            date_from=args.date_from,
            date_to=args.date_to,
            limit=args.limit,
        )
    finally:
        session.close()

    if not rows:
        print("  No movements.")
        return 0
    for m in rows:
        print(
            f"  {m.created_at:%Y-%m-%d %H:%M}  {m.product_sku:<12} "
            f"{m.movement_type.value:<10} {m.quantity:>+7d}  "
            f"{m.previous_stock:>6} -> {m.new_stock:<6} {m.reference_number or ''}"
        )
    return 0


def _dashboard() -> int:
    session = get_session()
    try:
        metrics = ProductSelector(session).dashboard_metrics(SystemClock().today())
    finally:
        session.close()
    print(f"  Active products:    {metrics.total_products}")
    print(f"  Low stock:          {metrics.low_stock_products}")
    print(f"  Inventory value:    {metrics.inventory_value:,.2f}")
    print(f"  Movements today:    {metrics.movements_today}")
    print(f"  Inactive products:  {metrics.inactive_products}")
    print(f"  Active suppliers:   {metrics.active_suppliers}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_active_config(args.config)
    configure_logging(level=settings.logging.level)

    db = settings.database
    init_engine_from_url(
        args.db_url or db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    register_immutability_listeners()

    if args.command == "init-db":
        return _init_db()
    if args.command == "movement":
        return _movement(args, settings)
    if args.command == "history":
        return _history(args)
    return _dashboard()


if __name__ == "__main__":
    sys.exit(main())
