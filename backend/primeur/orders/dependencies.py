from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.orders.interfaces.repositories import AbstractOrderRepository
from primeur.orders.repositories import SQLAlchemyOrderRepository
from primeur.orders.service import OrderService
from primeur.pricing.dependencies import PricingServiceDep
from primeur.promotions.dependencies import PromotionServiceDep
from primeur.stock.dependencies import StockServiceDep

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_order_repository(session: SessionDep) -> AbstractOrderRepository:
    return SQLAlchemyOrderRepository(db_session=session)

OrderRepositoryDep = Annotated[AbstractOrderRepository, Depends(get_order_repository)]


def get_order_service(
    repository: OrderRepositoryDep,
    pricing: PricingServiceDep,
    stock: StockServiceDep,
    promotions: PromotionServiceDep,
    audit: AuditTrailDep,
) -> OrderService:
    """Fournit le service des commandes; tous ses collaborateurs partagent la session de la requête."""
    return OrderService(repository=repository, pricing=pricing, stock=stock, promotions=promotions, audit=audit)

OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
