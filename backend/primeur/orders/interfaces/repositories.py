from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from primeur.orders.models import Order, OrderItem, OrderRead
from primeur.products.models import Product
from primeur.shops.models import Shop


class AbstractOrderRepository(ABC):
    """Interface abstraite pour le repository des commandes."""

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_items_for(self, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
        pass

    @abstractmethod
    async def list(
        self, offset: int, limit: int, shop_id: Optional[int] = None, status: Optional[str] = None
    ) -> Tuple[List[OrderRead], int]:
        pass

    @abstractmethod
    async def number_exists(self, order_number: str) -> bool:
        pass

    @abstractmethod
    async def get_shop(self, shop_id: int) -> Optional[Shop]:
        pass

    @abstractmethod
    async def get_available_products(self, product_ids: List[int]) -> Dict[int, Product]:
        """Produits actifs et non supprimés parmi ``product_ids``."""
        pass

    @abstractmethod
    async def create(self, order: Order, items: List[OrderItem]) -> Order:
        pass

    @abstractmethod
    async def transition(self, order_id: int, current_status: str, new_status: str) -> bool:
        """UPDATE conditionnel sur le statut courant. Retourne False si la commande a changé entre-temps."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    async def reload(self, instance):
        pass
