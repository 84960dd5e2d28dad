from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.notifications.dependencies import NotificationServiceDep
from primeur.orders.dependencies import OrderServiceDep
from primeur.pricing.dependencies import PricingServiceDep
from primeur.quotes.interfaces.repositories import AbstractQuoteRepository
from primeur.quotes.repositories import SQLAlchemyQuoteRepository
from primeur.quotes.service import QuoteService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_quote_repository(session: SessionDep) -> AbstractQuoteRepository:
    return SQLAlchemyQuoteRepository(db_session=session)

QuoteRepositoryDep = Annotated[AbstractQuoteRepository, Depends(get_quote_repository)]


def get_quote_service(
    repository: QuoteRepositoryDep,
    pricing: PricingServiceDep,
    orders: OrderServiceDep,
    notifications: NotificationServiceDep,
    audit: AuditTrailDep,
) -> QuoteService:
    return QuoteService(
        repository=repository, pricing=pricing, orders=orders, notifications=notifications, audit=audit
    )

QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]
