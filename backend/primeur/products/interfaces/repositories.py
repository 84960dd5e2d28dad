from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from primeur.pricing.models import PriceHistory
from primeur.products.models import Product, ProductCreate


class AbstractProductRepository(ABC):
    """Interface abstraite pour le repository des produits."""

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    async def get_by_id(self, product_id: int) -> Optional[Product]:
        """Retourne le produit, y compris supprimé logiquement."""
        pass

    @abstractmethod
    async def reference_exists(self, reference: str) -> bool:
        pass

    @abstractmethod
    async def list(
        self,
        offset: int,
        limit: int,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        sub_category_id: Optional[int] = None,
        active_only: bool = True,
    ) -> Tuple[List[Product], int]:
        pass

    @abstractmethod
    async def category_is_live(self, category_id: int) -> bool:
        pass

    @abstractmethod
    async def subcategory_belongs_to(self, sub_category_id: int, category_id: Optional[int]) -> bool:
        pass

    @abstractmethod
    async def create(self, product_data: ProductCreate) -> Product:
        pass

    @abstractmethod
    async def update(self, product: Product, values: Dict[str, Any]) -> Product:
        pass

    @abstractmethod
    async def add_price_history(self, entry: PriceHistory) -> None:
        pass

    @abstractmethod
    async def soft_delete(self, product: Product) -> None:
        pass
