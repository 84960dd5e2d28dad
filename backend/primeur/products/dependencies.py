from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.products.interfaces.repositories import AbstractProductRepository
from primeur.products.repositories import SQLAlchemyProductRepository
from primeur.products.service import ProductService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_product_repository(session: SessionDep) -> AbstractProductRepository:
    return SQLAlchemyProductRepository(db_session=session)

ProductRepositoryDep = Annotated[AbstractProductRepository, Depends(get_product_repository)]


def get_product_service(repository: ProductRepositoryDep, audit: AuditTrailDep) -> ProductService:
    return ProductService(repository=repository, audit=audit)

ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
