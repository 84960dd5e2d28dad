import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.categories.interfaces.repositories import AbstractCategoryRepository
from primeur.categories.repositories import SQLAlchemyCategoryRepository
from primeur.categories.service import CategoryService
from primeur.database import get_db_session

logger = logging.getLogger(__name__)

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_category_repository(session: SessionDep) -> AbstractCategoryRepository:
    """Instancie et retourne le repository SQLAlchemy pour les catégories."""
    return SQLAlchemyCategoryRepository(db_session=session)

CategoryRepositoryDep = Annotated[AbstractCategoryRepository, Depends(get_category_repository)]


def get_category_service(repository: CategoryRepositoryDep, audit: AuditTrailDep) -> CategoryService:
    """Fournit une instance de CategoryService avec son repository."""
    return CategoryService(repository=repository, audit=audit)

CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]
