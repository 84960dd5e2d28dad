from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from primeur.notifications.models import Notification, NotificationRead


class AbstractNotificationRepository(ABC):

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def add(self, notifications: List[Notification]) -> None:
        pass

    @abstractmethod
    async def list_for_user(
        self, user_id: int, offset: int, limit: int, read: Optional[bool] = None, type: Optional[str] = None
    ) -> Tuple[List[NotificationRead], int]:
        pass

    @abstractmethod
    async def count_unread(self, user_id: int) -> int:
        pass

    @abstractmethod
    async def get_for_user(self, notification_id: int, user_id: int) -> Optional[Notification]:
        pass

    @abstractmethod
    async def mark_read(self, notification: Notification) -> Notification:
        pass

    @abstractmethod
    async def mark_all_read(self, user_id: int) -> int:
        pass

    @abstractmethod
    async def delete(self, notification: Notification) -> None:
        pass

    @abstractmethod
    async def get_admin_ids(self) -> List[int]:
        pass
