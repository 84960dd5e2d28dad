import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.products.models import Product
from primeur.quotes.interfaces.repositories import AbstractQuoteRepository
from primeur.quotes.models import Quote, QuoteItem, QuoteRead, QuoteStatus
from primeur.shops.models import Shop

logger = logging.getLogger(__name__)


class SQLAlchemyQuoteRepository(SQLAlchemySessionRepository, AbstractQuoteRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(Quote)

    async def get_by_id(self, quote_id: int) -> Optional[Quote]:
        return await self.db.get(Quote, quote_id)

    async def get_items_for(self, quote_ids: List[int]) -> Dict[int, List[QuoteItem]]:
        items: Dict[int, List[QuoteItem]] = defaultdict(list)
        if not quote_ids:
            return items
        result = await self.db.execute(
            select(QuoteItem).where(QuoteItem.quote_id.in_(quote_ids)).order_by(QuoteItem.id)
        )
        for item in result.scalars().all():
            items[item.quote_id].append(item)
        return items

    async def list(
        self, offset: int, limit: int, shop_id: Optional[int] = None, status: Optional[str] = None
    ) -> Tuple[List[QuoteRead], int]:
        filters = {}
        if shop_id is not None:
            filters["shop_id"] = shop_id
        if status:
            filters["status"] = status
        result = await self.crud.get_multi(
            self.db,
            offset=offset,
            limit=limit,
            schema_to_select=QuoteRead,
            return_as_model=True,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return result.get("data", []), result.get("total_count", 0)

    async def number_exists(self, quote_number: str) -> bool:
        return await self.crud.exists(self.db, quote_number=quote_number)

    async def get_shops(self, shop_ids: Iterable[int]) -> Dict[int, Shop]:
        ids = set(shop_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(Shop).where(Shop.id.in_(ids)))
        return {shop.id: shop for shop in result.scalars().all()}

    async def get_available_products(self, product_ids: List[int]) -> Dict[int, Product]:
        if not product_ids:
            return {}
        result = await self.db.execute(
            select(Product).where(
                Product.id.in_(product_ids),
                Product.is_active.is_(True),
                Product.deleted_at.is_(None),
            )
        )
        return {p.id: p for p in result.scalars().all()}

    async def create(self, quote: Quote, items: List[QuoteItem]) -> Quote:
        self.db.add(quote)
        await self.db.flush()
        for item in items:
            item.quote_id = quote.id
        self.db.add_all(items)
        await self.db.flush()
        logger.debug(f"[QuoteRepository] Devis {quote.quote_number} ajouté ({len(items)} lignes)")
        return quote

    async def replace_items(self, quote: Quote, items: List[QuoteItem]) -> None:
        await self.db.execute(delete(QuoteItem).where(QuoteItem.quote_id == quote.id))
        for item in items:
            item.quote_id = quote.id
        self.db.add_all(items)
        await self.db.flush()

    async def save(self, quote: Quote) -> Quote:
        quote.updated_at = utcnow()
        self.db.add(quote)
        await self.db.flush()
        return quote

    async def transition(self, quote_id: int, from_statuses: List[str], values: Dict[str, Any]) -> bool:
        result = await self.db.execute(
            update(Quote)
            .where(Quote.id == quote_id, Quote.status.in_(from_statuses))
            .values(**values, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_converted(self, quote_id: int, order_id: int) -> bool:
        result = await self.db.execute(
            update(Quote)
            .where(
                Quote.id == quote_id,
                Quote.status == QuoteStatus.ACCEPTED.value,
                Quote.converted_to_order_id.is_(None),
            )
            .values(status=QuoteStatus.CONVERTED.value, converted_to_order_id=order_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, quote: Quote) -> None:
        await self.db.execute(delete(QuoteItem).where(QuoteItem.quote_id == quote.id))
        await self.db.delete(quote)
        await self.db.flush()
