"""
ProductSelector -- product listings and dashboard figures.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import DashboardMetrics, ProductRecord
from inventory_kernel.domain.ledger import StockStatus, stock_status
from inventory_kernel.exceptions import ProductNotFoundError
from inventory_kernel.models.movement import StockMovement
from inventory_kernel.models.product import Product
from inventory_kernel.models.supplier import Supplier, SupplierStatus
from inventory_kernel.selectors.base import BaseSelector


class ProductSelector(BaseSelector[Product]):
    """Read-only product queries."""

    @staticmethod
    def stock_status(product: Product | ProductRecord) -> StockStatus:
        """out_of_stock at <= 0, low at <= min_stock, otherwise normal."""
        return stock_status(product.current_stock, product.min_stock)

    def get(self, product_id: UUID) -> ProductRecord:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return ProductRecord.from_model(product)

    def get_by_sku(self, sku: str) -> ProductRecord | None:
        product = self.session.execute(
            select(Product).where(Product.sku == sku.strip().upper())
        ).scalar_one_or_none()
        return ProductRecord.from_model(product) if product is not None else None

    def list_products(self, include_inactive: bool = False) -> list[ProductRecord]:
        query = select(Product).order_by(Product.name)
        if not include_inactive:
            query = query.where(Product.is_active.is_(True))
        return [ProductRecord.from_model(p) for p in self.session.execute(query).scalars()]

    def low_stock_products(self) -> list[ProductRecord]:
        """Active products at or below their minimum, lowest stock first."""
        products = self.session.execute(
            select(Product)
            .where(Product.is_active.is_(True))
            .where(Product.current_stock <= Product.min_stock)
            .order_by(Product.current_stock.asc(), Product.name)
        ).scalars()
        return [ProductRecord.from_model(p) for p in products]

    def dashboard_metrics(self, today: date) -> DashboardMetrics:
        active_products = self.session.execute(
            select(Product).where(Product.is_active.is_(True))
        ).scalars().all()

        # Summed in Python: SQLite has no exact decimal arithmetic.
        inventory_value = sum(
            (
                Decimal(p.current_stock) * p.purchase_price
                for p in active_products
                if p.current_stock > 0
            ),
            Decimal("0"),
        )

        start = datetime.combine(today, time.min, tzinfo=timezone.utc)
        movements_today = self.session.execute(
            select(func.count(StockMovement.id))
            .where(StockMovement.created_at >= start)
            .where(StockMovement.created_at < start + timedelta(days=1))
        ).scalar_one()

        inactive = self.session.execute(
            select(func.count(Product.id)).where(Product.is_active.is_(False))
        ).scalar_one()

        active_suppliers = self.session.execute(
            select(func.count(Supplier.id)).where(Supplier.status == SupplierStatus.ACTIVE.value)
        ).scalar_one()

        return DashboardMetrics(
            total_products=len(active_products),
            low_stock_products=sum(
                1 for p in active_products if p.current_stock <= p.min_stock
            ),
            inventory_value=inventory_value,
            movements_today=movements_today,
            inactive_products=inactive,
            active_suppliers=active_suppliers,
        )
