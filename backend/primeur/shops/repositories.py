import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.notifications.models import Notification
from primeur.orders.models import Order
from primeur.pricing.models import ClientPricing
from primeur.quotes.models import Quote
from primeur.returns.models import Return
from primeur.shops.interfaces.repositories import AbstractShopRepository
from primeur.shops.models import Shop
from primeur.users.models import User

logger = logging.getLogger(__name__)


class SQLAlchemyShopRepository(SQLAlchemySessionRepository, AbstractShopRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)

    async def get_by_id(self, shop_id: int) -> Optional[Shop]:
        return await self.db.get(Shop, shop_id)

    async def get_by_user_id(self, user_id: int) -> Optional[Shop]:
        result = await self.db.execute(select(Shop).where(Shop.user_id == user_id))
        return result.scalar_one_or_none()

    async def list_all(self) -> List[Shop]:
        result = await self.db.execute(select(Shop).order_by(Shop.name.asc()))
        return list(result.scalars().all())

    async def get_owners(self, user_ids: List[int]) -> Dict[int, User]:
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return {user.id: user for user in result.scalars().all()}

    async def count_orders(self, shop_ids: List[int]) -> Dict[int, int]:
        if not shop_ids:
            return {}
        result = await self.db.execute(
            select(Order.shop_id, func.count(Order.id)).where(Order.shop_id.in_(shop_ids)).group_by(Order.shop_id)
        )
        return {shop_id: count for shop_id, count in result.all()}

    async def count_quotes(self, shop_id: int) -> int:
        result = await self.db.execute(select(func.count(Quote.id)).where(Quote.shop_id == shop_id))
        return result.scalar_one()

    async def count_returns(self, shop_id: int) -> int:
        result = await self.db.execute(select(func.count(Return.id)).where(Return.shop_id == shop_id))
        return result.scalar_one()

    async def get_latest_orders(self, shop_id: int, limit: int) -> List[Order]:
        result = await self.db.execute(
            select(Order).where(Order.shop_id == shop_id).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def create_with_owner(self, user: User, shop: Shop) -> Shop:
        self.db.add(user)
        await self.db.flush()
        shop.user_id = user.id
        self.db.add(shop)
        await self.db.flush()
        logger.debug(f"[ShopRepository] Magasin {shop.id} créé pour user {user.id}")
        return shop

    async def save(self, *instances) -> None:
        self.db.add_all(instances)
        await self.db.flush()

    async def delete_with_owner(self, shop: Shop) -> None:
        owner = await self.db.get(User, shop.user_id)
        await self.db.delete(shop)
        await self.db.flush()
        if owner is not None:
            await self.db.execute(delete(ClientPricing).where(ClientPricing.user_id == owner.id))
            await self.db.execute(delete(Notification).where(Notification.user_id == owner.id))
            await self.db.delete(owner)
            await self.db.flush()
            logger.debug(f"[ShopRepository] Compte {owner.id} supprimé avec ses prix client et notifications")
