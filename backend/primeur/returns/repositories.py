import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from fastcrud import FastCRUD
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.orders.models import Order
from primeur.returns.interfaces.repositories import AbstractReturnRepository
from primeur.returns.models import CreditNote, Return, ReturnItem
from primeur.shops.models import Shop

logger = logging.getLogger(__name__)


class SQLAlchemyReturnRepository(SQLAlchemySessionRepository, AbstractReturnRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(Return)
        self.credit_note_crud = FastCRUD(CreditNote)

    async def get_by_id(self, return_id: int) -> Optional[Return]:
        return await self.db.get(Return, return_id)

    async def get_items_for(self, return_ids: List[int]) -> Dict[int, List[ReturnItem]]:
        items: Dict[int, List[ReturnItem]] = defaultdict(list)
        if not return_ids:
            return items
        result = await self.db.execute(
            select(ReturnItem).where(ReturnItem.return_id.in_(return_ids)).order_by(ReturnItem.id)
        )
        for item in result.scalars().all():
            items[item.return_id].append(item)
        return items

    async def list(
        self,
        shop_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Return]:
        query = select(Return)
        if shop_id is not None:
            query = query.where(Return.shop_id == shop_id)
        if status:
            query = query.where(Return.status == status)
        if start_date is not None:
            query = query.where(Return.requested_at >= start_date)
        if end_date is not None:
            query = query.where(Return.requested_at <= end_date)
        result = await self.db.execute(query.order_by(Return.requested_at.desc(), Return.id.desc()))
        return list(result.scalars().all())

    async def number_exists(self, return_number: str) -> bool:
        return await self.crud.exists(self.db, return_number=return_number)

    async def credit_note_number_exists(self, credit_note_number: str) -> bool:
        return await self.credit_note_crud.exists(self.db, credit_note_number=credit_note_number)

    async def get_order(self, order_id: int) -> Optional[Order]:
        return await self.db.get(Order, order_id)

    async def get_orders(self, order_ids: Iterable[int]) -> Dict[int, Order]:
        ids = set(order_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(Order).where(Order.id.in_(ids)))
        return {order.id: order for order in result.scalars().all()}

    async def get_shops(self, shop_ids: Iterable[int]) -> Dict[int, Shop]:
        ids = set(shop_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(Shop).where(Shop.id.in_(ids)))
        return {shop.id: shop for shop in result.scalars().all()}

    async def get_credit_notes(self, credit_note_ids: Iterable[int]) -> Dict[int, CreditNote]:
        ids = {i for i in credit_note_ids if i is not None}
        if not ids:
            return {}
        result = await self.db.execute(select(CreditNote).where(CreditNote.id.in_(ids)))
        return {note.id: note for note in result.scalars().all()}

    async def create(self, return_: Return, items: List[ReturnItem]) -> Return:
        self.db.add(return_)
        await self.db.flush()
        for item in items:
            item.return_id = return_.id
        self.db.add_all(items)
        await self.db.flush()
        logger.debug(f"[ReturnRepository] Retour {return_.return_number} ajouté ({len(items)} lignes)")
        return return_

    async def create_credit_note(self, credit_note: CreditNote) -> CreditNote:
        self.db.add(credit_note)
        await self.db.flush()
        return credit_note

    async def transition(self, return_id: int, from_status: str, values: Dict[str, Any]) -> bool:
        result = await self.db.execute(
            update(Return)
            .where(Return.id == return_id, Return.status == from_status)
            .values(**values, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_stats(self, shop_id: Optional[int] = None) -> Dict[str, Any]:
        scope = [Return.shop_id == shop_id] if shop_id is not None else []

        by_status_rows = await self.db.execute(
            select(Return.status, func.count(Return.id)).where(*scope).group_by(Return.status)
        )
        by_status = {status: count for status, count in by_status_rows.all()}

        amount = await self.db.scalar(select(func.coalesce(func.sum(Return.total_amount), 0)).where(*scope))

        by_reason_rows = await self.db.execute(
            select(Return.reason, func.count(Return.id)).where(*scope).group_by(Return.reason)
        )
        return {
            "by_status": by_status,
            "total_amount": Decimal(str(amount or 0)),
            "by_reason": {reason: count for reason, count in by_reason_rows.all()},
        }
