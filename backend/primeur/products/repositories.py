import logging
from typing import Any, Dict, List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.categories.models import Category, SubCategory
from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.pricing.models import PriceHistory
from primeur.products.interfaces.repositories import AbstractProductRepository
from primeur.products.models import Product, ProductCreate

logger = logging.getLogger(__name__)


class SQLAlchemyProductRepository(SQLAlchemySessionRepository, AbstractProductRepository):
    """Implémentation SQLAlchemy du repository des produits."""

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(Product)

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        logger.debug(f"[ProductRepository] Getting product by ID: {product_id}")
        return await self.db.get(Product, product_id)

    async def reference_exists(self, reference: str) -> bool:
        return await self.crud.exists(self.db, reference=reference, deleted_at=None)

    async def list(
        self,
        offset: int,
        limit: int,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        sub_category_id: Optional[int] = None,
        active_only: bool = True,
    ) -> Tuple[List[Product], int]:
        conditions = [Product.deleted_at.is_(None)]
        if active_only:
            conditions.append(Product.is_active.is_(True))
        if category_id is not None:
            conditions.append(Product.category_id == category_id)
        if sub_category_id is not None:
            conditions.append(Product.sub_category_id == sub_category_id)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(func.lower(Product.name).like(pattern), func.lower(Product.reference).like(pattern)))

        total = (await self.db.execute(select(func.count(Product.id)).where(*conditions))).scalar_one()
        stmt = select(Product).where(*conditions).order_by(Product.name).offset(offset).limit(limit)
        products = list((await self.db.execute(stmt)).scalars().all())
        logger.debug(f"[ProductRepository] {len(products)}/{total} produits (offset={offset})")
        return products, total

    async def category_is_live(self, category_id: int) -> bool:
        category = await self.db.get(Category, category_id)
        return category is not None and category.deleted_at is None

    async def subcategory_belongs_to(self, sub_category_id: int, category_id: Optional[int]) -> bool:
        sub_category = await self.db.get(SubCategory, sub_category_id)
        if sub_category is None or sub_category.deleted_at is not None:
            return False
        return category_id is None or sub_category.category_id == category_id

    async def create(self, product_data: ProductCreate) -> Product:
        product = Product.model_validate(product_data)
        self.db.add(product)
        await self.db.flush()
        return product

    async def update(self, product: Product, values: Dict[str, Any]) -> Product:
        for key, value in values.items():
            setattr(product, key, value)
        product.updated_at = utcnow()
        self.db.add(product)
        await self.db.flush()
        return product

    async def add_price_history(self, entry: PriceHistory) -> None:
        self.db.add(entry)
        await self.db.flush()

    async def soft_delete(self, product: Product) -> None:
        now = utcnow()
        product.deleted_at = now
        product.is_active = False
        product.updated_at = now
        self.db.add(product)
        await self.db.flush()
