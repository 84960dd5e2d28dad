import json
import logging
from typing import Any, List, Optional, Tuple

from primeur.notifications.exceptions import NotificationNotFoundException
from primeur.notifications.interfaces.repositories import AbstractNotificationRepository
from primeur.notifications.models import Notification, NotificationRead, NotificationType

logger = logging.getLogger(__name__)


class NotificationService:
    """Notifications internes des utilisateurs.

    ``notify`` et ``notify_admins`` ajoutent les notifications à la transaction en cours:
    elles sont validées avec la mutation métier qui les déclenche.
    """

    def __init__(self, repository: AbstractNotificationRepository):
        self.repository = repository

    async def notify(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
        data: Optional[Any] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            link=link,
            data=json.dumps(data, default=str) if data is not None else None,
        )
        await self.repository.add([notification])
        logger.debug(f"[NotificationService] {type.value} pour user {user_id}")
        return notification

    async def notify_admins(
        self, type: NotificationType, title: str, message: str, link: Optional[str] = None, data: Optional[Any] = None
    ) -> int:
        admin_ids = await self.repository.get_admin_ids()
        payload = json.dumps(data, default=str) if data is not None else None
        await self.repository.add([
            Notification(user_id=admin_id, type=type.value, title=title, message=message, link=link, data=payload)
            for admin_id in admin_ids
        ])
        return len(admin_ids)

    async def list_notifications(
        self, user_id: int, page: int, limit: int, read: Optional[bool] = None, type: Optional[str] = None
    ) -> Tuple[List[NotificationRead], int, int]:
        notifications, total = await self.repository.list_for_user(user_id, (page - 1) * limit, limit, read, type)
        unread = await self.repository.count_unread(user_id)
        return notifications, total, unread

    async def unread_count(self, user_id: int) -> int:
        return await self.repository.count_unread(user_id)

    async def mark_as_read(self, notification_id: int, user_id: int) -> NotificationRead:
        notification = await self.repository.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotificationNotFoundException(notification_id)
        notification = await self.repository.mark_read(notification)
        await self.repository.commit()
        return NotificationRead.model_validate(notification)

    async def mark_all_as_read(self, user_id: int) -> int:
        count = await self.repository.mark_all_read(user_id)
        await self.repository.commit()
        logger.info(f"[NotificationService] {count} notification(s) lue(s) pour user {user_id}")
        return count

    async def delete_notification(self, notification_id: int, user_id: int) -> None:
        notification = await self.repository.get_for_user(notification_id, user_id)
        if notification is None:
            raise NotificationNotFoundException(notification_id)
        await self.repository.delete(notification)
        await self.repository.commit()
