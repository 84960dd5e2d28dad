from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.database import get_db_session
from primeur.notifications.interfaces.repositories import AbstractNotificationRepository
from primeur.notifications.repositories import SQLAlchemyNotificationRepository
from primeur.notifications.service import NotificationService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_notification_repository(session: SessionDep) -> AbstractNotificationRepository:
    return SQLAlchemyNotificationRepository(db_session=session)

NotificationRepositoryDep = Annotated[AbstractNotificationRepository, Depends(get_notification_repository)]


def get_notification_service(repository: NotificationRepositoryDep) -> NotificationService:
    return NotificationService(repository=repository)

NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
