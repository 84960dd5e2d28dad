from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Optional

from primeur.suppliers.models import (
    Supplier,
    SupplierEvaluation,
    SupplierOrder,
    SupplierOrderItem,
    SupplierProduct,
    SupplierSortBy,
)


class AbstractSupplierRepository(ABC):
    """Interface abstraite pour le repository des fournisseurs et de leurs sous-ressources."""

    @abstractmethod
    async def get_by_id(self, supplier_id: int) -> Optional[Supplier]:
        """Fournisseur non supprimé."""
        pass

    @abstractmethod
    async def list(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        min_rating: Optional[float] = None,
        sort_by: SupplierSortBy = SupplierSortBy.CREATED_AT,
    ) -> List[Supplier]:
        pass

    @abstractmethod
    async def get_counts(self, supplier_ids: List[int]) -> Dict[int, Dict[str, int]]:
        """Nombre de produits, commandes et évaluations par fournisseur."""
        pass

    @abstractmethod
    async def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    async def save(self, instance):
        pass

    @abstractmethod
    async def count_orders_in_status(self, supplier_id: int, statuses: List[str]) -> int:
        pass

    # --- Catalogue ---

    @abstractmethod
    async def list_products(self, supplier_id: int, available_only: bool = False) -> List[SupplierProduct]:
        pass

    @abstractmethod
    async def get_product(self, supplier_id: int, supplier_product_id: int) -> Optional[SupplierProduct]:
        pass

    @abstractmethod
    async def delete_product(self, supplier_product: SupplierProduct) -> None:
        pass

    # --- Commandes ---

    @abstractmethod
    async def list_orders(self, supplier_id: int, limit: Optional[int] = None) -> List[SupplierOrder]:
        pass

    @abstractmethod
    async def get_order(self, supplier_id: int, order_id: int) -> Optional[SupplierOrder]:
        pass

    @abstractmethod
    async def get_order_items(self, order_ids: List[int]) -> Dict[int, List[SupplierOrderItem]]:
        pass

    @abstractmethod
    async def last_order_number(self) -> Optional[str]:
        pass

    @abstractmethod
    async def create_order(self, order: SupplierOrder, items: List[SupplierOrderItem]) -> SupplierOrder:
        pass

    @abstractmethod
    async def increment_totals(self, supplier_id: int, amount: Decimal) -> None:
        """Incrémente total_orders et total_spent par un UPDATE atomique."""
        pass

    # --- Évaluations ---

    @abstractmethod
    async def list_evaluations(self, supplier_id: int, limit: Optional[int] = None) -> List[SupplierEvaluation]:
        pass

    @abstractmethod
    async def refresh_rating(self, supplier_id: int) -> Optional[float]:
        """Recalcule la note du fournisseur (moyenne des évaluations) et la retourne."""
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
