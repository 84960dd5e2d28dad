from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.stock.interfaces.repositories import AbstractStockRepository
from primeur.stock.repositories import SQLAlchemyStockRepository
from primeur.stock.service import StockService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_stock_repository(session: SessionDep) -> AbstractStockRepository:
    return SQLAlchemyStockRepository(db_session=session)

StockRepositoryDep = Annotated[AbstractStockRepository, Depends(get_stock_repository)]


def get_stock_service(repository: StockRepositoryDep, audit: AuditTrailDep) -> StockService:
    return StockService(repository=repository, audit=audit)

StockServiceDep = Annotated[StockService, Depends(get_stock_service)]
