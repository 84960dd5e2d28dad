from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from primeur.orders.models import Order
from primeur.returns.models import CreditNote, Return, ReturnItem
from primeur.shops.models import Shop


class AbstractReturnRepository(ABC):
    """Interface abstraite pour le repository des retours et des avoirs."""

    @abstractmethod
    async def get_by_id(self, return_id: int) -> Optional[Return]:
        pass

    @abstractmethod
    async def get_items_for(self, return_ids: List[int]) -> Dict[int, List[ReturnItem]]:
        pass

    @abstractmethod
    async def list(
        self,
        shop_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Return]:
        pass

    @abstractmethod
    async def number_exists(self, return_number: str) -> bool:
        pass

    @abstractmethod
    async def credit_note_number_exists(self, credit_note_number: str) -> bool:
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_orders(self, order_ids: Iterable[int]) -> Dict[int, Order]:
        pass

    @abstractmethod
    async def get_shops(self, shop_ids: Iterable[int]) -> Dict[int, Shop]:
        pass

    @abstractmethod
    async def get_credit_notes(self, credit_note_ids: Iterable[int]) -> Dict[int, CreditNote]:
        pass

    @abstractmethod
    async def create(self, return_: Return, items: List[ReturnItem]) -> Return:
        pass

    @abstractmethod
    async def create_credit_note(self, credit_note: CreditNote) -> CreditNote:
        pass

    @abstractmethod
    async def transition(self, return_id: int, from_status: str, values: Dict[str, Any]) -> bool:
        """UPDATE conditionnel: n'applique ``values`` que si le statut courant est ``from_status``."""
        pass

    @abstractmethod
    async def get_stats(self, shop_id: Optional[int] = None) -> Dict[str, Any]:
        """Compteurs par statut, montant total et répartition par motif."""
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
