import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.categories.constants import AUDIT_ENTITY_CATEGORY, AUDIT_ENTITY_SUBCATEGORY
from primeur.categories.exceptions import (
    CategoryNotEmptyException,
    CategoryNotFoundException,
    DuplicateCategoryNameException,
    DuplicateSubCategoryNameException,
    SubCategoryNotFoundException,
)
from primeur.categories.interfaces.repositories import AbstractCategoryRepository
from primeur.categories.models import (
    Category,
    CategoryCreate,
    CategoryListItem,
    CategoryRead,
    CategoryReadWithDetails,
    CategoryUpdate,
    SubCategory,
    SubCategoryCreate,
    SubCategoryRead,
    SubCategoryUpdate,
)

logger = logging.getLogger(__name__)


class CategoryService:
    """Service applicatif pour la gestion des catégories via Repository.

    Les catégories et sous-catégories ne sont jamais supprimées physiquement:
    la suppression renseigne ``deleted_at`` et une création avec le même nom
    réactive la ligne existante au lieu d'en créer une nouvelle.
    """

    def __init__(self, repository: AbstractCategoryRepository, audit: AuditTrail):
        self.repository = repository
        self.audit = audit

    async def _get_live_category(self, category_id: int) -> Category:
        category = await self.repository.get_by_id(category_id)
        if category is None or category.deleted_at is not None:
            raise CategoryNotFoundException(category_id)
        return category

    async def _get_live_subcategory(self, sub_category_id: int) -> SubCategory:
        sub_category = await self.repository.get_subcategory(sub_category_id)
        if sub_category is None or sub_category.deleted_at is not None:
            raise SubCategoryNotFoundException(sub_category_id)
        return sub_category

    async def list_categories(self) -> List[CategoryListItem]:
        logger.debug("[CategoryService] Liste des catégories actives")
        return await self.repository.list_active_with_counts()

    async def get_category(self, category_id: int) -> CategoryReadWithDetails:
        category = await self._get_live_category(category_id)
        sub_categories = await self.repository.list_subcategories(category_id)
        return CategoryReadWithDetails(
            **CategoryRead.model_validate(category).model_dump(),
            sub_categories=[SubCategoryRead.model_validate(s) for s in sub_categories],
        )

    async def create_category(self, category_data: CategoryCreate, user_id: Optional[int] = None) -> Tuple[CategoryRead, bool]:
        """Crée une catégorie, ou restaure la catégorie supprimée portant le même nom.

        Retourne la catégorie et un booléen indiquant s'il s'agit d'une restauration.
        """
        logger.info(f"[CategoryService] Create Category: {category_data.name}")
        existing = await self.repository.get_by_name(category_data.name)
        if existing is not None and existing.deleted_at is None:
            raise DuplicateCategoryNameException(category_data.name)

        restored = existing is not None
        try:
            if restored:
                category = await self.repository.restore(existing, category_data)
            else:
                category = await self.repository.create(category_data)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise DuplicateCategoryNameException(category_data.name)

        result = CategoryRead.model_validate(category)
        await self.audit.log_action(
            "RESTORE" if restored else "CREATE",
            AUDIT_ENTITY_CATEGORY,
            result.id,
            user_id,
            {"name": result.name},
        )
        logger.info(f"[CategoryService] Category ID {result.id} {'restaurée' if restored else 'créée'}")
        return result, restored

    async def update_category(self, category_id: int, category_data: CategoryUpdate, user_id: Optional[int] = None) -> CategoryRead:
        logger.info(f"[CategoryService] Update Category ID: {category_id}")
        category = await self._get_live_category(category_id)
        if category_data.name and category_data.name != category.name:
            other = await self.repository.get_by_name(category_data.name)
            if other is not None and other.id != category_id:
                raise DuplicateCategoryNameException(category_data.name)
        try:
            category = await self.repository.update(category, category_data)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise DuplicateCategoryNameException(category_data.name or "")

        result = CategoryRead.model_validate(category)
        await self.audit.log_action(
            "UPDATE", AUDIT_ENTITY_CATEGORY, category_id, user_id,
            category_data.model_dump(exclude_unset=True),
        )
        return result

    async def delete_category(self, category_id: int, user_id: Optional[int] = None) -> None:
        """Supprime logiquement une catégorie et, dans la même transaction, ses sous-catégories."""
        logger.info(f"[CategoryService] Delete Category ID: {category_id}")
        category = await self._get_live_category(category_id)
        products_count = await self.repository.count_products(category_id)
        if products_count > 0:
            logger.warning(f"[CategoryService] Suppression refusée: catégorie {category_id} contient {products_count} produit(s)")
            raise CategoryNotEmptyException(products_count)

        try:
            cascaded = await self.repository.soft_delete_with_subcategories(category)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        await self.audit.log_action(
            "DELETE", AUDIT_ENTITY_CATEGORY, category_id, user_id,
            {"name": category.name, "sub_categories": cascaded},
        )

    # --- Sous-catégories ---

    async def list_subcategories(self, category_id: int) -> List[SubCategoryRead]:
        await self._get_live_category(category_id)
        sub_categories = await self.repository.list_subcategories(category_id)
        return [SubCategoryRead.model_validate(s) for s in sub_categories]

    async def create_subcategory(
        self, category_id: int, data: SubCategoryCreate, user_id: Optional[int] = None
    ) -> Tuple[SubCategoryRead, bool]:
        await self._get_live_category(category_id)
        existing = await self.repository.get_subcategory_by_name(category_id, data.name)
        if existing is not None and existing.deleted_at is None:
            raise DuplicateSubCategoryNameException(data.name)

        restored = existing is not None
        try:
            if restored:
                sub_category = await self.repository.restore_subcategory(existing, data)
            else:
                sub_category = await self.repository.create_subcategory(category_id, data)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise DuplicateSubCategoryNameException(data.name)

        result = SubCategoryRead.model_validate(sub_category)
        await self.audit.log_action(
            "RESTORE" if restored else "CREATE", AUDIT_ENTITY_SUBCATEGORY, result.id, user_id,
            {"name": result.name, "category_id": category_id},
        )
        return result, restored

    async def update_subcategory(
        self, sub_category_id: int, data: SubCategoryUpdate, user_id: Optional[int] = None
    ) -> SubCategoryRead:
        sub_category = await self._get_live_subcategory(sub_category_id)
        if data.name and data.name != sub_category.name:
            other = await self.repository.get_subcategory_by_name(sub_category.category_id, data.name)
            if other is not None and other.id != sub_category_id:
                raise DuplicateSubCategoryNameException(data.name)
        try:
            sub_category = await self.repository.update_subcategory(sub_category, data)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise DuplicateSubCategoryNameException(data.name or "")

        result = SubCategoryRead.model_validate(sub_category)
        await self.audit.log_action(
            "UPDATE", AUDIT_ENTITY_SUBCATEGORY, sub_category_id, user_id, data.model_dump(exclude_unset=True)
        )
        return result

    async def delete_subcategory(self, sub_category_id: int, user_id: Optional[int] = None) -> None:
        sub_category = await self._get_live_subcategory(sub_category_id)
        products_count = await self.repository.count_subcategory_products(sub_category_id)
        if products_count > 0:
            raise CategoryNotEmptyException(products_count, sub_category=True)

        await self.repository.soft_delete_subcategory(sub_category)
        await self.repository.commit()
        await self.audit.log_action("DELETE", AUDIT_ENTITY_SUBCATEGORY, sub_category_id, user_id)
