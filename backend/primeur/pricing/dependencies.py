from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.pricing.interfaces.repositories import AbstractPricingRepository
from primeur.pricing.repositories import SQLAlchemyPricingRepository
from primeur.pricing.service import PricingService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_pricing_repository(session: SessionDep) -> AbstractPricingRepository:
    return SQLAlchemyPricingRepository(db_session=session)

PricingRepositoryDep = Annotated[AbstractPricingRepository, Depends(get_pricing_repository)]


def get_pricing_service(repository: PricingRepositoryDep, audit: AuditTrailDep) -> PricingService:
    """Fournit le service des tarifs (aussi utilisé par les devis et commandes pour résoudre les prix)."""
    return PricingService(repository=repository, audit=audit)

PricingServiceDep = Annotated[PricingService, Depends(get_pricing_service)]
