"""
MovementSelector -- movement history and ledger verification.

Responsibility:
    Read-side queries over stock_movements: filtered history for the
    movements page, the latest movement per product, and a consistency walk
    that proves a product's current stock is explained by its movements.

Architecture position:
    Kernel > Selectors -- read-only, returns frozen DTOs.
"""

from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, or_, select

from inventory_kernel.domain.dtos import ConsistencyReport, MovementRecord
from inventory_kernel.domain.ledger import MovementType
from inventory_kernel.exceptions import ProductNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.movement import StockMovement
from inventory_kernel.models.product import Product
from inventory_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.movement")


def _start_of(day: date | datetime) -> datetime:
    if isinstance(day, datetime):
        return day if day.tzinfo else day.replace(tzinfo=timezone.utc)
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _end_of(day: date | datetime) -> datetime:
    """Exclusive upper bound; a date covers the whole day."""
    if isinstance(day, datetime):
        moment = day if day.tzinfo else day.replace(tzinfo=timezone.utc)
        return moment + timedelta(microseconds=1)
    return datetime.combine(day + timedelta(days=1), time.min, tzinfo=timezone.utc)


class MovementSelector(BaseSelector[StockMovement]):
    """Read-only movement queries."""

    def history(
        self,
        search: str | None = None,
        movement_type: MovementType | str | None = None,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        product_id: UUID | None = None,
        limit: int | None = 100,
    ) -> list[MovementRecord]:
        """
        Movements newest first.

        ``search`` matches product name, SKU or reference number,
        case-insensitively.  ``date_from``/``date_to`` are inclusive; plain
        dates cover the whole UTC day.
        """
        query = (
            select(StockMovement, Product.name, Product.sku)
            .join(Product, Product.id == StockMovement.product_id)
        )
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(Product.name).like(pattern),
                    func.lower(Product.sku).like(pattern),
                    func.lower(func.coalesce(StockMovement.reference_number, "")).like(pattern),
                )
            )
        if movement_type is not None:
            query = query.where(
                StockMovement.movement_type == MovementType.parse(movement_type).value
            )
        if date_from is not None:
            query = query.where(StockMovement.created_at >= _start_of(date_from))
        if date_to is not None:
            query = query.where(StockMovement.created_at < _end_of(date_to))
        if product_id is not None:
            query = query.where(StockMovement.product_id == product_id)

        query = query.order_by(
            StockMovement.created_at.desc(),
            StockMovement.sequence.desc(),
        )
        if limit is not None:
            query = query.limit(limit)

        return [
            MovementRecord.from_model(movement, product_name=name, product_sku=sku)
            for movement, name, sku in self.session.execute(query).all()
        ]

    def latest_for_product(self, product_id: UUID) -> MovementRecord | None:
        movement = self.session.execute(
            select(StockMovement)
            .where(StockMovement.product_id == product_id)
            .order_by(StockMovement.sequence.desc())
            .limit(1)
        ).scalar_one_or_none()
        return MovementRecord.from_model(movement) if movement is not None else None

    def verify_ledger_consistency(self, product_id: UUID) -> ConsistencyReport:
        """
        Walk a product's movements in order.

        Consistent when each movement's previous_stock equals the prior
        movement's new_stock (the first starts from zero) and the last
        movement's new_stock equals current_stock.
        """
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))

        movements = self.session.execute(
            select(StockMovement)
            .where(StockMovement.product_id == product_id)
            .order_by(StockMovement.sequence.asc())
        ).scalars().all()

        broken: list[UUID] = []
        running = 0
        for movement in movements:
            if movement.previous_stock != running:
                broken.append(movement.id)
            running = movement.new_stock

        report = ConsistencyReport(
            product_id=product_id,
            current_stock=product.current_stock,
            movement_count=len(movements),
            latest_new_stock=movements[-1].new_stock if movements else None,
            broken_links=tuple(broken),
        )
        if not report.is_consistent:
            logger.error(
                "ledger_inconsistency_detected",
                extra={
                    "product_id": str(product_id),
                    "current_stock": report.current_stock,
                    "latest_new_stock": report.latest_new_stock,
                    "broken_links": [str(b) for b in broken],
                },
            )
        return report
