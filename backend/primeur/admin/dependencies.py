from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.admin.interfaces.repositories import AbstractSecurityRepository
from primeur.admin.repositories import SQLAlchemySecurityRepository
from primeur.admin.service import SecurityService
from primeur.database import get_db_session

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_security_repository(session: SessionDep) -> AbstractSecurityRepository:
    return SQLAlchemySecurityRepository(db_session=session)

SecurityRepositoryDep = Annotated[AbstractSecurityRepository, Depends(get_security_repository)]


def get_security_service(repository: SecurityRepositoryDep) -> SecurityService:
    return SecurityService(repository=repository)

SecurityServiceDep = Annotated[SecurityService, Depends(get_security_service)]
