from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from primeur.invoices.models import Invoice, InvoiceRead
from primeur.orders.models import Order, OrderItem
from primeur.shops.models import Shop


class AbstractInvoiceRepository(ABC):
    """Interface abstraite pour le repository des factures."""

    @abstractmethod
    async def get_by_id(self, invoice_id: int) -> Optional[Invoice]:
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: int) -> Optional[Invoice]:
        pass

    @abstractmethod
    async def list(self, offset: int, limit: int, shop_id: Optional[int] = None) -> Tuple[List[InvoiceRead], int]:
        pass

    @abstractmethod
    async def number_exists(self, invoice_number: str) -> bool:
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_order_items(self, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
        """Lignes des commandes facturées, groupées par commande."""
        pass

    @abstractmethod
    async def get_shops(self, shop_ids: Iterable[int]) -> Dict[int, Shop]:
        pass

    @abstractmethod
    async def create(self, invoice: Invoice) -> Invoice:
        pass

    @abstractmethod
    async def save(self, invoice: Invoice) -> Invoice:
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
