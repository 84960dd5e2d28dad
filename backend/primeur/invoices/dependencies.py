from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.database import get_db_session
from primeur.invoices.interfaces.repositories import AbstractInvoiceRepository
from primeur.invoices.repositories import SQLAlchemyInvoiceRepository
from primeur.invoices.service import InvoiceService
from primeur.notifications.dependencies import NotificationServiceDep

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_invoice_repository(session: SessionDep) -> AbstractInvoiceRepository:
    return SQLAlchemyInvoiceRepository(db_session=session)

InvoiceRepositoryDep = Annotated[AbstractInvoiceRepository, Depends(get_invoice_repository)]


def get_invoice_service(
    repository: InvoiceRepositoryDep, notifications: NotificationServiceDep, audit: AuditTrailDep
) -> InvoiceService:
    return InvoiceService(repository=repository, notifications=notifications, audit=audit)

InvoiceServiceDep = Annotated[InvoiceService, Depends(get_invoice_service)]
