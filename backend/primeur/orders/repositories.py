import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.orders.interfaces.repositories import AbstractOrderRepository
from primeur.orders.models import Order, OrderItem, OrderRead
from primeur.products.models import Product
from primeur.shops.models import Shop

logger = logging.getLogger(__name__)


class SQLAlchemyOrderRepository(SQLAlchemySessionRepository, AbstractOrderRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(Order)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        return await self.db.get(Order, order_id)

    async def get_items_for(self, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
        items: Dict[int, List[OrderItem]] = defaultdict(list)
        if not order_ids:
            return items
        result = await self.db.execute(
            select(OrderItem).where(OrderItem.order_id.in_(order_ids)).order_by(OrderItem.id)
        )
        for item in result.scalars().all():
            items[item.order_id].append(item)
        return items

    async def list(
        self, offset: int, limit: int, shop_id: Optional[int] = None, status: Optional[str] = None
    ) -> Tuple[List[OrderRead], int]:
        filters = {}
        if shop_id is not None:
            filters["shop_id"] = shop_id
        if status:
            filters["status"] = status
        result = await self.crud.get_multi(
            self.db,
            offset=offset,
            limit=limit,
            schema_to_select=OrderRead,
            return_as_model=True,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return result.get("data", []), result.get("total_count", 0)

    async def number_exists(self, order_number: str) -> bool:
        return await self.crud.exists(self.db, order_number=order_number)

    async def get_shop(self, shop_id: int) -> Optional[Shop]:
        return await self.db.get(Shop, shop_id)

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

    async def create(self, order: Order, items: List[OrderItem]) -> Order:
        self.db.add(order)
        await self.db.flush()
        for item in items:
            item.order_id = order.id
        self.db.add_all(items)
        await self.db.flush()
        logger.debug(f"[OrderRepository] Commande {order.order_number} ajoutée ({len(items)} lignes)")
        return order

    async def transition(self, order_id: int, current_status: str, new_status: str) -> bool:
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == current_status)
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
