"""
Inventory Kernel

A ledger-first stock management core with:
- Append-only stock movements
- Atomic movement + stock update
- Optimistic concurrency on product stock
- Low-stock alerting
- Typed, coded errors and structured logging
"""

__version__ = "0.1.0"
