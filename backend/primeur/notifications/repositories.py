import logging
from typing import List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.notifications.interfaces.repositories import AbstractNotificationRepository
from primeur.notifications.models import Notification, NotificationRead
from primeur.users.models import User, UserRole

logger = logging.getLogger(__name__)


class SQLAlchemyNotificationRepository(SQLAlchemySessionRepository, AbstractNotificationRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(Notification)

    async def add(self, notifications: List[Notification]) -> None:
        self.db.add_all(notifications)
        await self.db.flush()

    async def list_for_user(
        self, user_id: int, offset: int, limit: int, read: Optional[bool] = None, type: Optional[str] = None
    ) -> Tuple[List[NotificationRead], int]:
        filters = {"user_id": user_id}
        if read is not None:
            filters["read"] = read
        if type:
            filters["type"] = type
        result = await self.crud.get_multi(
            self.db,
            offset=offset,
            limit=limit,
            schema_to_select=NotificationRead,
            return_as_model=True,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return result.get("data", []), result.get("total_count", 0)

    async def count_unread(self, user_id: int) -> int:
        return await self.crud.count(self.db, user_id=user_id, read=False)

    async def get_for_user(self, notification_id: int, user_id: int) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def mark_read(self, notification: Notification) -> Notification:
        notification.read = True
        notification.read_at = utcnow()
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete(self, notification: Notification) -> None:
        await self.db.delete(notification)
        await self.db.flush()

    async def get_admin_ids(self) -> List[int]:
        result = await self.db.execute(
            select(User.id).where(User.role == UserRole.ADMIN.value, User.is_active.is_(True))
        )
        return list(result.scalars().all())
