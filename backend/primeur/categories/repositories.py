import logging
from typing import List, Optional

from fastcrud import FastCRUD
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.categories.interfaces.repositories import AbstractCategoryRepository
from primeur.categories.models import (
    Category,
    CategoryCreate,
    CategoryListItem,
    CategoryRead,
    CategoryUpdate,
    SubCategory,
    SubCategoryCreate,
    SubCategoryUpdate,
)
from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.products.models import Product

logger = logging.getLogger(__name__)


class SQLAlchemyCategoryRepository(SQLAlchemySessionRepository, AbstractCategoryRepository):
    """Implémentation SQLAlchemy du repository des catégories avec FastCRUD."""

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(Category)
        self.crud_sub = FastCRUD(SubCategory)
        self.crud_product = FastCRUD(Product)

    async def get_by_id(self, category_id: int) -> Optional[Category]:
        logger.debug(f"[CategoryRepository] Getting category by ID: {category_id}")
        return await self.db.get(Category, category_id)

    async def get_by_name(self, name: str) -> Optional[Category]:
        result = await self.db.execute(select(Category).where(Category.name == name))
        return result.scalar_one_or_none()

    async def list_active_with_counts(self) -> List[CategoryListItem]:
        products_count = (
            select(func.count(Product.id))
            .where(Product.category_id == Category.id, Product.deleted_at.is_(None))
            .correlate(Category)
            .scalar_subquery()
        )
        subcategories_count = (
            select(func.count(SubCategory.id))
            .where(SubCategory.category_id == Category.id, SubCategory.deleted_at.is_(None))
            .correlate(Category)
            .scalar_subquery()
        )
        stmt = (
            select(Category, products_count.label("products_count"), subcategories_count.label("subcategories_count"))
            .where(Category.deleted_at.is_(None), Category.is_active.is_(True))
            .order_by(Category.order, Category.name)
        )
        rows = (await self.db.execute(stmt)).all()
        logger.debug(f"[CategoryRepository] {len(rows)} catégories actives")
        return [
            CategoryListItem(
                **CategoryRead.model_validate(category).model_dump(),
                products_count=p_count or 0,
                subcategories_count=s_count or 0,
            )
            for category, p_count, s_count in rows
        ]

    async def create(self, category_data: CategoryCreate) -> Category:
        logger.debug(f"[CategoryRepository] Creating category: {category_data.name}")
        category = Category.model_validate(category_data)
        self.db.add(category)
        await self.db.flush()
        return category

    async def update(self, category: Category, category_data: CategoryUpdate) -> Category:
        for key, value in category_data.model_dump(exclude_unset=True).items():
            setattr(category, key, value)
        category.updated_at = utcnow()
        self.db.add(category)
        await self.db.flush()
        return category

    async def restore(self, category: Category, category_data: CategoryCreate) -> Category:
        logger.info(f"[CategoryRepository] Restauration de la catégorie ID {category.id} ({category.name})")
        for key, value in category_data.model_dump().items():
            setattr(category, key, value)
        category.deleted_at = None
        category.is_active = True
        category.updated_at = utcnow()
        self.db.add(category)
        await self.db.flush()
        return category

    async def count_products(self, category_id: int) -> int:
        return await self.crud_product.count(self.db, category_id=category_id, deleted_at=None)

    async def soft_delete_with_subcategories(self, category: Category) -> int:
        now = utcnow()
        result = await self.db.execute(
            update(SubCategory)
            .where(SubCategory.category_id == category.id, SubCategory.deleted_at.is_(None))
            .values(deleted_at=now, is_active=False, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        category.deleted_at = now
        category.is_active = False
        category.updated_at = now
        self.db.add(category)
        await self.db.flush()
        logger.debug(f"[CategoryRepository] Catégorie {category.id} supprimée, {result.rowcount} sous-catégorie(s) en cascade")
        return result.rowcount

    # --- Sous-catégories ---

    async def list_subcategories(self, category_id: int) -> List[SubCategory]:
        stmt = (
            select(SubCategory)
            .where(SubCategory.category_id == category_id, SubCategory.deleted_at.is_(None))
            .order_by(SubCategory.order, SubCategory.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_subcategory(self, sub_category_id: int) -> Optional[SubCategory]:
        return await self.db.get(SubCategory, sub_category_id)

    async def get_subcategory_by_name(self, category_id: int, name: str) -> Optional[SubCategory]:
        result = await self.db.execute(
            select(SubCategory).where(SubCategory.category_id == category_id, SubCategory.name == name)
        )
        return result.scalar_one_or_none()

    async def create_subcategory(self, category_id: int, data: SubCategoryCreate) -> SubCategory:
        sub_category = SubCategory(**data.model_dump(), category_id=category_id)
        self.db.add(sub_category)
        await self.db.flush()
        return sub_category

    async def update_subcategory(self, sub_category: SubCategory, data: SubCategoryUpdate) -> SubCategory:
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(sub_category, key, value)
        sub_category.updated_at = utcnow()
        self.db.add(sub_category)
        await self.db.flush()
        return sub_category

    async def restore_subcategory(self, sub_category: SubCategory, data: SubCategoryCreate) -> SubCategory:
        for key, value in data.model_dump().items():
            setattr(sub_category, key, value)
        sub_category.deleted_at = None
        sub_category.is_active = True
        sub_category.updated_at = utcnow()
        self.db.add(sub_category)
        await self.db.flush()
        return sub_category

    async def count_subcategory_products(self, sub_category_id: int) -> int:
        return await self.crud_product.count(self.db, sub_category_id=sub_category_id, deleted_at=None)

    async def soft_delete_subcategory(self, sub_category: SubCategory) -> None:
        now = utcnow()
        sub_category.deleted_at = now
        sub_category.is_active = False
        sub_category.updated_at = now
        self.db.add(sub_category)
        await self.db.flush()
