from abc import ABC, abstractmethod
from typing import List, Optional

from primeur.categories.models import (
    Category,
    CategoryCreate,
    CategoryListItem,
    CategoryUpdate,
    SubCategory,
    SubCategoryCreate,
    SubCategoryUpdate,
)


class AbstractCategoryRepository(ABC):
    """Interface abstraite pour le repository des catégories et sous-catégories."""

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    async def get_by_id(self, category_id: int) -> Optional[Category]:
        """Récupère une catégorie par ID, y compris si elle est supprimée logiquement."""
        pass

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Category]:
        pass

    @abstractmethod
    async def list_active_with_counts(self) -> List[CategoryListItem]:
        """Liste les catégories actives avec le nombre de produits et de sous-catégories."""
        pass

    @abstractmethod
    async def create(self, category_data: CategoryCreate) -> Category:
        pass

    @abstractmethod
    async def update(self, category: Category, category_data: CategoryUpdate) -> Category:
        pass

    @abstractmethod
    async def restore(self, category: Category, category_data: CategoryCreate) -> Category:
        """Réactive une catégorie supprimée en réutilisant la même ligne."""
        pass

    @abstractmethod
    async def count_products(self, category_id: int) -> int:
        """Compte les produits non supprimés rattachés à la catégorie."""
        pass

    @abstractmethod
    async def soft_delete_with_subcategories(self, category: Category) -> int:
        """Supprime logiquement la catégorie et toutes ses sous-catégories."""
        pass

    # --- Sous-catégories ---

    @abstractmethod
    async def list_subcategories(self, category_id: int) -> List[SubCategory]:
        pass

    @abstractmethod
    async def get_subcategory(self, sub_category_id: int) -> Optional[SubCategory]:
        pass

    @abstractmethod
    async def get_subcategory_by_name(self, category_id: int, name: str) -> Optional[SubCategory]:
        pass

    @abstractmethod
    async def create_subcategory(self, category_id: int, data: SubCategoryCreate) -> SubCategory:
        pass

    @abstractmethod
    async def update_subcategory(self, sub_category: SubCategory, data: SubCategoryUpdate) -> SubCategory:
        pass

    @abstractmethod
    async def restore_subcategory(self, sub_category: SubCategory, data: SubCategoryCreate) -> SubCategory:
        pass

    @abstractmethod
    async def count_subcategory_products(self, sub_category_id: int) -> int:
        pass

    @abstractmethod
    async def soft_delete_subcategory(self, sub_category: SubCategory) -> None:
        pass
