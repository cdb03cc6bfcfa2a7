"""
StockLedgerService -- the persistence step of a stock movement.

Responsibility:
    Locks the product row, applies the pure ledger rule, writes the
    compare-and-swap stock update and appends the movement row, all inside
    the caller's transaction.

Architecture position:
    Kernel > Services -- imperative shell.  Called by MovementPostingService
    (which owns commit/rollback) and by ProductService for opening stock.

Invariants enforced:
    ledger_consistency -- movement.new_stock and product.current_stock are
        written in the same transaction from the same StockChange.
    non_negative_exit -- via compute_stock_change before any write.
    optimistic_version -- ``UPDATE products ... WHERE version = :read``;
        zero rows updated raises ConcurrentModificationError.

Failure modes:
    - ProductNotFoundError: no product row with that id.
    - ConcurrentModificationError: caller-pinned expected_version differs,
      or the compare-and-swap lost.  The swap runs before the movement
      insert, so a lost swap leaves no movement row and never trips the
      (product_id, sequence) unique constraint.
    - InvalidMovementError / InsufficientStockError from the ledger rule,
      raised before anything is written.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import MovementRecord
from inventory_kernel.domain.ledger import (
    MovementRequest,
    ProductSnapshot,
    StockChange,
    compute_stock_change,
)
from inventory_kernel.exceptions import ConcurrentModificationError, ProductNotFoundError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.movement import StockMovement
from inventory_kernel.models.product import Product
from inventory_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")


@dataclass(frozen=True)
class LedgerEntryResult:
    """What one applied movement produced."""

    movement: MovementRecord
    change: StockChange
    product_name: str

    @property
    def new_stock(self) -> int:
        return self.change.new_stock

    @property
    def low_stock_alert(self) -> bool:
        return self.change.low_stock_alert


class StockLedgerService(BaseService[StockMovement]):
    """
    Applies one movement to one product.

    Contract:
        apply_movement() either flushes exactly one StockMovement and one
        product stock update, or raises without leaving a movement that the
        caller would commit.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT publish events; that happens after commit.
        - Does NOT check permissions; the orchestrator authorizes first.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        allow_negative_adjustments: bool = True,
    ):
        super().__init__(session, clock)
        self.allow_negative_adjustments = allow_negative_adjustments

    def _lock_product(self, product_id: UUID) -> Product:
        product = self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def _compare_and_swap(
        self,
        product: Product,
        read_version: int,
        new_stock: int,
        actor_id: UUID,
    ) -> None:
        result = self.session.execute(
            update(Product)
            .where(Product.id == product.id, Product.version == read_version)
            .values(
                current_stock=new_stock,
                version=Product.version + 1,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            actual = self.session.execute(
                select(Product.version).where(Product.id == product.id)
            ).scalar_one_or_none()
            logger.warning(
                "stock_update_conflict",
                extra={
                    "expected_version": read_version,
                    "actual_version": actual,
                },
            )
            raise ConcurrentModificationError(str(product.id), read_version, actual)
        self.session.refresh(product)

    def apply_movement(
        self,
        product_id: UUID,
        request: MovementRequest,
        actor_id: UUID,
        *,
        expected_version: int | None = None,
    ) -> LedgerEntryResult:
        """
        Apply ``request`` to the product and flush the result.

        Args:
            product_id: Product to move.
            request: Movement type, quantity and descriptive fields.
            actor_id: User recorded on the movement.
            expected_version: Version the caller last saw.  A mismatch
                raises ConcurrentModificationError before any write.
        """
        with LogContext.bind(product_id=str(product_id)):
            product = self._lock_product(product_id)

            if expected_version is not None and product.version != expected_version:
                logger.info(
                    "stale_product_version",
                    extra={
                        "expected_version": expected_version,
                        "actual_version": product.version,
                    },
                )
                raise ConcurrentModificationError(
                    str(product_id), expected_version, product.version
                )

            snapshot = ProductSnapshot.from_model(product)
            change = compute_stock_change(
                snapshot,
                request,
                allow_negative_adjustments=self.allow_negative_adjustments,
            )

            # Swap first: the sequence below is only ours once the version is.
            self._compare_and_swap(product, snapshot.version, change.new_stock, actor_id)

            movement = StockMovement(
                product_id=product.id,
                movement_type=change.movement_type.value,
                quantity=change.signed_quantity,
                previous_stock=change.previous_stock,
                new_stock=change.new_stock,
                reference_number=request.reference_number,
                notes=request.notes,
                unit_cost=request.unit_cost,
                created_at=self.clock.now_utc(),
                user_id=actor_id,
                sequence=snapshot.version + 1,
            )
            self.session.add(movement)
            self.session.flush()

            logger.info(
                "stock_movement_applied",
                extra={
                    "movement_id": str(movement.id),
                    "movement_type": change.movement_type.value,
                    "quantity": change.signed_quantity,
                    "previous_stock": change.previous_stock,
                    "new_stock": change.new_stock,
                    "version": product.version,
                },
            )

            return LedgerEntryResult(
                movement=MovementRecord.from_model(
                    movement, product_name=product.name, product_sku=product.sku
                ),
                change=change,
                product_name=product.name,
            )
