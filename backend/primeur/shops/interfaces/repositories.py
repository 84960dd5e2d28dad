from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from primeur.orders.models import Order
from primeur.shops.models import Shop
from primeur.users.models import User


class AbstractShopRepository(ABC):
    """Interface abstraite pour le repository des magasins."""

    @abstractmethod
    async def get_by_id(self, shop_id: int) -> Optional[Shop]:
        pass

    @abstractmethod
    async def get_by_user_id(self, user_id: int) -> Optional[Shop]:
        """Magasin dont l'utilisateur est propriétaire."""
        pass

    @abstractmethod
    async def list_all(self) -> List[Shop]:
        pass

    @abstractmethod
    async def get_owners(self, user_ids: List[int]) -> Dict[int, User]:
        pass

    @abstractmethod
    async def count_orders(self, shop_ids: List[int]) -> Dict[int, int]:
        """Nombre de commandes par magasin."""
        pass

    @abstractmethod
    async def count_quotes(self, shop_id: int) -> int:
        pass

    @abstractmethod
    async def count_returns(self, shop_id: int) -> int:
        pass

    @abstractmethod
    async def get_latest_orders(self, shop_id: int, limit: int) -> List[Order]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create_with_owner(self, user: User, shop: Shop) -> Shop:
        pass

    @abstractmethod
    async def save(self, *instances) -> None:
        pass

    @abstractmethod
    async def delete_with_owner(self, shop: Shop) -> None:
        """Supprime le magasin, son compte, ses prix client et ses notifications."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass
