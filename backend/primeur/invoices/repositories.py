import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.invoices.interfaces.repositories import AbstractInvoiceRepository
from primeur.invoices.models import Invoice, InvoiceRead
from primeur.orders.models import Order, OrderItem
from primeur.shops.models import Shop

logger = logging.getLogger(__name__)


class SQLAlchemyInvoiceRepository(SQLAlchemySessionRepository, AbstractInvoiceRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(Invoice)

    async def get_by_id(self, invoice_id: int) -> Optional[Invoice]:
        return await self.db.get(Invoice, invoice_id)

    async def get_by_order_id(self, order_id: int) -> Optional[Invoice]:
        result = await self.db.execute(select(Invoice).where(Invoice.order_id == order_id))
        return result.scalar_one_or_none()

    async def list(self, offset: int, limit: int, shop_id: Optional[int] = None) -> Tuple[List[InvoiceRead], int]:
        filters = {"shop_id": shop_id} if shop_id is not None else {}
        result = await self.crud.get_multi(
            self.db,
            offset=offset,
            limit=limit,
            schema_to_select=InvoiceRead,
            return_as_model=True,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return result.get("data", []), result.get("total_count", 0)

    async def number_exists(self, invoice_number: str) -> bool:
        return await self.crud.exists(self.db, invoice_number=invoice_number)

    async def get_order(self, order_id: int) -> Optional[Order]:
        return await self.db.get(Order, order_id)

    async def get_order_items(self, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
        items: Dict[int, List[OrderItem]] = defaultdict(list)
        if not order_ids:
            return items
        result = await self.db.execute(
            select(OrderItem).where(OrderItem.order_id.in_(order_ids)).order_by(OrderItem.id)
        )
        for item in result.scalars().all():
            items[item.order_id].append(item)
        return items

    async def get_shops(self, shop_ids: Iterable[int]) -> Dict[int, Shop]:
        ids = set(shop_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(Shop).where(Shop.id.in_(ids)))
        return {shop.id: shop for shop in result.scalars().all()}

    async def create(self, invoice: Invoice) -> Invoice:
        self.db.add(invoice)
        await self.db.flush()
        logger.debug(f"[InvoiceRepository] Facture {invoice.invoice_number} ajoutée pour la commande {invoice.order_id}")
        return invoice

    async def save(self, invoice: Invoice) -> Invoice:
        self.db.add(invoice)
        await self.db.flush()
        return invoice
