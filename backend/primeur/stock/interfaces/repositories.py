from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from primeur.products.models import Product


class AbstractStockRepository(ABC):
    """Accès au stock des produits."""

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    async def get_product(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    async def apply_delta(self, product_id: int, delta: Decimal) -> bool:
        """Applique ``stock = stock + delta`` seulement si le résultat reste positif ou nul.

        Retourne False si aucune ligne n'a été modifiée.
        """
        pass

    @abstractmethod
    async def set_levels(self, product: Product, stock: Decimal, stock_alert: Optional[Decimal]) -> Product:
        pass

    @abstractmethod
    async def list_levels(self, low_stock_only: bool = False, category_id: Optional[int] = None) -> List[Product]:
        pass
