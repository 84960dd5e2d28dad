from typing import Annotated, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.dependencies import AuditTrailDep
from primeur.auth.dependencies import CurrentUserDep
from primeur.database import get_db_session
from primeur.shops.interfaces.repositories import AbstractShopRepository
from primeur.shops.models import Shop
from primeur.shops.repositories import SQLAlchemyShopRepository
from primeur.shops.service import ShopService

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_shop_repository(session: SessionDep) -> AbstractShopRepository:
    return SQLAlchemyShopRepository(db_session=session)

ShopRepositoryDep = Annotated[AbstractShopRepository, Depends(get_shop_repository)]


def get_shop_service(repository: ShopRepositoryDep, audit: AuditTrailDep) -> ShopService:
    return ShopService(repository=repository, audit=audit)

ShopServiceDep = Annotated[ShopService, Depends(get_shop_service)]


async def get_user_shop(current_user: CurrentUserDep, repository: ShopRepositoryDep) -> Optional[Shop]:
    """Magasin de l'utilisateur courant (None pour un admin ou un compte sans magasin)."""
    if current_user.is_admin:
        return None
    return await repository.get_by_user_id(current_user.id)

UserShopDep = Annotated[Optional[Shop], Depends(get_user_shop)]
