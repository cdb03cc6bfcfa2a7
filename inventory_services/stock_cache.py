"""
StockCache -- last committed stock level per product.

Written only by MovementPostingService after a successful commit, so a
reader never sees a stock level that was later rolled back.
"""

from __future__ import annotations

import threading
from typing import Iterable
from uuid import UUID

from inventory_kernel.domain.dtos import ProductRecord


class StockCache:
    def __init__(self) -> None:
        self._levels: dict[UUID, int] = {}
        self._lock = threading.Lock()

    def get(self, product_id: UUID) -> int | None:
        with self._lock:
            return self._levels.get(product_id)

    def set(self, product_id: UUID, current_stock: int) -> None:
        with self._lock:
            self._levels[product_id] = current_stock

    def prime(self, products: Iterable[ProductRecord]) -> None:
        """Load committed levels, e.g. from ProductSelector.list_products()."""
        with self._lock:
            for product in products:
                self._levels[product.id] = product.current_stock

    def invalidate(self, product_id: UUID) -> None:
        with self._lock:
            self._levels.pop(product_id, None)

    def snapshot(self) -> dict[UUID, int]:
        with self._lock:
            return dict(self._levels)

    def __len__(self) -> int:
        with self._lock:
            return len(self._levels)
