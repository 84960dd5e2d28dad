from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.suppliers.interfaces.repositories import AbstractSupplierRepository
from primeur.suppliers.repositories import SQLAlchemySupplierRepository
from primeur.suppliers.service import SupplierService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_supplier_repository(session: SessionDep) -> AbstractSupplierRepository:
    return SQLAlchemySupplierRepository(db_session=session)

SupplierRepositoryDep = Annotated[AbstractSupplierRepository, Depends(get_supplier_repository)]


def get_supplier_service(repository: SupplierRepositoryDep, audit: AuditTrailDep) -> SupplierService:
    return SupplierService(repository=repository, audit=audit)

SupplierServiceDep = Annotated[SupplierService, Depends(get_supplier_service)]
