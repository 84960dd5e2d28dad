from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

from primeur.products.models import Product
from primeur.quotes.models import Quote, QuoteItem, QuoteRead
from primeur.shops.models import Shop


class AbstractQuoteRepository(ABC):
    """Interface abstraite pour le repository des devis."""

    @abstractmethod
    async def get_by_id(self, quote_id: int) -> Optional[Quote]:
        pass

    @abstractmethod
    async def get_items_for(self, quote_ids: List[int]) -> Dict[int, List[QuoteItem]]:
        pass

    @abstractmethod
    async def list(
        self, offset: int, limit: int, shop_id: Optional[int] = None, status: Optional[str] = None
    ) -> Tuple[List[QuoteRead], int]:
        pass

    @abstractmethod
    async def number_exists(self, quote_number: str) -> bool:
        pass

    @abstractmethod
    async def get_shops(self, shop_ids: Iterable[int]) -> Dict[int, Shop]:
        pass

    @abstractmethod
    async def get_available_products(self, product_ids: List[int]) -> Dict[int, Product]:
        """Produits actifs et non supprimés parmi ``product_ids``."""
        pass

    @abstractmethod
    async def create(self, quote: Quote, items: List[QuoteItem]) -> Quote:
        pass

    @abstractmethod
    async def replace_items(self, quote: Quote, items: List[QuoteItem]) -> None:
        """Supprime toutes les lignes du devis puis insère ``items``."""
        pass

    @abstractmethod
    async def save(self, quote: Quote) -> Quote:
        pass

    @abstractmethod
    async def transition(self, quote_id: int, from_statuses: List[str], values: Dict[str, Any]) -> bool:
        """UPDATE conditionnel: n'applique ``values`` que si le statut courant est dans ``from_statuses``."""
        pass

    @abstractmethod
    async def mark_converted(self, quote_id: int, order_id: int) -> bool:
        """Passe un devis ACCEPTED non converti à CONVERTED. False si un autre appel l'a devancé."""
        pass

    @abstractmethod
    async def delete(self, quote: Quote) -> None:
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
