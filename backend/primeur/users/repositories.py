import logging
from typing import Optional

from fastcrud import FastCRUD
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.users.interfaces.repositories import AbstractUserRepository
from primeur.users.models import User, UserRead

logger = logging.getLogger(__name__)


class SQLAlchemyUserRepository(SQLAlchemySessionRepository, AbstractUserRepository):
    """Implémentation SQLAlchemy du dépôt des utilisateurs."""

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(User)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        logger.debug(f"[UserRepository] Récupération User ID: {user_id}")
        return await self.db.get(User, user_id)

    async def get_by_id_as_read_schema(self, user_id: int) -> Optional[UserRead]:
        user = await self.get_by_id(user_id)
        if not user:
            logger.warning(f"[UserRepository] User ID {user_id} non trouvé.")
            return None
        return UserRead.model_validate(user)

    async def get_by_email(self, email: str) -> Optional[User]:
        logger.debug(f"[UserRepository] Récupération User par email: {email}")
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def count_active(self) -> int:
        return await self.crud.count(self.db, is_active=True)
