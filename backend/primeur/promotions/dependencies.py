from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.promotions.interfaces.repositories import AbstractPromotionRepository
from primeur.promotions.repositories import SQLAlchemyPromotionRepository
from primeur.promotions.service import PromotionService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_promotion_repository(session: SessionDep) -> AbstractPromotionRepository:
    return SQLAlchemyPromotionRepository(db_session=session)

PromotionRepositoryDep = Annotated[AbstractPromotionRepository, Depends(get_promotion_repository)]


def get_promotion_service(repository: PromotionRepositoryDep, audit: AuditTrailDep) -> PromotionService:
    return PromotionService(repository=repository, audit=audit)

PromotionServiceDep = Annotated[PromotionService, Depends(get_promotion_service)]
