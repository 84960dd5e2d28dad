from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.notifications.dependencies import NotificationServiceDep
from primeur.returns.interfaces.repositories import AbstractReturnRepository
from primeur.returns.repositories import SQLAlchemyReturnRepository
from primeur.returns.service import ReturnService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_return_repository(session: SessionDep) -> AbstractReturnRepository:
    return SQLAlchemyReturnRepository(db_session=session)

ReturnRepositoryDep = Annotated[AbstractReturnRepository, Depends(get_return_repository)]


def get_return_service(
    repository: ReturnRepositoryDep, notifications: NotificationServiceDep, audit: AuditTrailDep
) -> ReturnService:
    return ReturnService(repository=repository, notifications=notifications, audit=audit)

ReturnServiceDep = Annotated[ReturnService, Depends(get_return_service)]
