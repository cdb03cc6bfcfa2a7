"""
Kernel Invariants Contract.

These invariants are structural law. They are hardcoded in the ledger
boundary and ORM listeners. No configuration value may switch them off.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across the ledger rule, StockLedgerService,
the immutability listeners and MovementPostingService.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    LEDGER_CONSISTENCY = "ledger_consistency"
    """A product's current_stock equals new_stock of its latest movement.
    Enforced by StockLedgerService writing both rows in one transaction."""

    NON_NEGATIVE_EXIT = "non_negative_exit"
    """An exit movement never drives current_stock below zero. Enforced by
    compute_stock_change before any write."""

    APPEND_ONLY_MOVEMENTS = "append_only_movements"
    """Stock movements are never updated or deleted. Enforced by ORM
    listeners (inventory_kernel.db.immutability)."""

    ATOMIC_COMMIT = "atomic_commit"
    """Movement insert and stock update commit or roll back together.
    Enforced by MovementPostingService owning the transaction."""

    OPTIMISTIC_VERSION = "optimistic_version"
    """Stock updates are compare-and-swap on products.version. Enforced by
    StockLedgerService."""

    EVENTS_AFTER_COMMIT = "events_after_commit"
    """Notifications and cache updates happen only after a successful
    commit. Enforced by MovementPostingService."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "inventory_services",
    "inventory_config",
)
