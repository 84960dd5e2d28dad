import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class SQLAlchemySessionRepository:
    """Base des repositories SQLAlchemy: porte la session et le contrôle de transaction.

    Les repositories ne font que des ``flush``; le service appelant valide (``commit``)
    ou annule (``rollback``) l'unité de travail complète.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        logger.debug(f"[{type(self).__name__}] Rollback de la transaction")
        await self.db.rollback()

    async def reload(self, instance: Any) -> Any:
        """Relit une instance depuis la base (après un UPDATE conditionnel)."""
        return await self.db.get(type(instance), instance.id, populate_existing=True)
