import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.products.models import Product
from primeur.stock.interfaces.repositories import AbstractStockRepository

logger = logging.getLogger(__name__)


class SQLAlchemyStockRepository(SQLAlchemySessionRepository, AbstractStockRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)

    async def get_product(self, product_id: int) -> Optional[Product]:
        return await self.db.get(Product, product_id, populate_existing=True)

    async def apply_delta(self, product_id: int, delta: Decimal) -> bool:
        # Contrôle et écriture dans une seule instruction
        result = await self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.deleted_at.is_(None),
                Product.stock + delta >= 0,
            )
            .values(stock=Product.stock + delta, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        applied = result.rowcount == 1
        logger.debug(f"[StockRepository] Produit {product_id} delta {delta}: {'appliqué' if applied else 'refusé'}")
        return applied

    async def set_levels(self, product: Product, stock: Decimal, stock_alert: Optional[Decimal]) -> Product:
        product.stock = stock
        if stock_alert is not None:
            product.stock_alert = stock_alert
        product.updated_at = utcnow()
        self.db.add(product)
        await self.db.flush()
        return product

    async def list_levels(self, low_stock_only: bool = False, category_id: Optional[int] = None) -> List[Product]:
        stmt = select(Product).where(Product.is_active.is_(True), Product.deleted_at.is_(None))
        if low_stock_only:
            stmt = stmt.where(Product.stock <= Product.stock_alert)
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        # Le stock est modifié par UPDATE direct: les instances en session sont rafraîchies
        stmt = stmt.order_by(Product.stock, Product.name).execution_options(populate_existing=True)
        return list((await self.db.execute(stmt)).scalars().all())
