from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from primeur.pricing.models import ClientPricing, PriceHistory, PriceHistoryRead, VolumePricing
from primeur.products.models import Product
from primeur.users.models import User


class AbstractPricingRepository(ABC):
    """Interface abstraite pour les tarifs (dégressifs, clients) et l'historique des prix."""

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    # --- Produits ---

    @abstractmethod
    async def get_product(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    async def list_priced_products(
        self,
        category_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        search: Optional[str] = None,
    ) -> List[Product]:
        """Produits actifs non supprimés correspondant aux filtres, triés par nom."""
        pass

    @abstractmethod
    async def get_last_changes(self, product_ids: Sequence[int]) -> Dict[int, PriceHistory]:
        pass

    @abstractmethod
    async def get_products_with_volume_pricing(self, product_ids: Sequence[int]) -> Set[int]:
        pass

    @abstractmethod
    async def get_products_with_client_pricing(self, product_ids: Sequence[int]) -> Set[int]:
        pass

    @abstractmethod
    async def get_history(self, product_id: int, limit: int) -> List[PriceHistoryRead]:
        pass

    @abstractmethod
    async def get_products_for_update(self, product_ids: Sequence[int]) -> List[Product]:
        """Produits non supprimés parmi ``product_ids``, verrouillés pour la mise à jour."""
        pass

    @abstractmethod
    async def set_product_price(self, product: Product, new_price_ht: Decimal) -> None:
        pass

    @abstractmethod
    async def add_history(self, entries: List[PriceHistory]) -> None:
        pass

    # --- Tarifs dégressifs ---

    @abstractmethod
    async def list_volume_pricing(self, product_id: Optional[int] = None) -> List[Tuple[VolumePricing, str]]:
        pass

    @abstractmethod
    async def get_volume_pricing(self, volume_id: int) -> Optional[VolumePricing]:
        pass

    @abstractmethod
    async def find_overlapping_bracket(
        self,
        product_id: int,
        min_quantity: Decimal,
        max_quantity: Optional[Decimal],
        exclude_id: Optional[int] = None,
    ) -> Optional[VolumePricing]:
        pass

    @abstractmethod
    async def find_volume_bracket(self, product_id: int, quantity: Decimal) -> Optional[VolumePricing]:
        """Tranche active contenant ``quantity`` (la plus haute borne minimum l'emporte)."""
        pass

    @abstractmethod
    async def save(self, instance: Any) -> Any:
        pass

    @abstractmethod
    async def delete(self, instance: Any) -> None:
        pass

    # --- Tarifs clients ---

    @abstractmethod
    async def list_client_pricing(
        self, product_id: Optional[int] = None, user_id: Optional[int] = None
    ) -> List[Tuple[ClientPricing, str, User]]:
        pass

    @abstractmethod
    async def get_client_pricing(self, client_pricing_id: int) -> Optional[ClientPricing]:
        pass

    @abstractmethod
    async def find_client_price(self, product_id: int, user_id: int, at: datetime) -> Optional[ClientPricing]:
        """Tarif client actif et valide à ``at``; le plus récent ``valid_from`` l'emporte."""
        pass
