import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.promotions.interfaces.repositories import AbstractPromotionRepository
from primeur.promotions.models import Promotion

logger = logging.getLogger(__name__)


class SQLAlchemyPromotionRepository(SQLAlchemySessionRepository, AbstractPromotionRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)

    async def get_by_id(self, promotion_id: int) -> Optional[Promotion]:
        return await self.db.get(Promotion, promotion_id)

    async def get_by_code(self, code: str) -> Optional[Promotion]:
        result = await self.db.execute(select(Promotion).where(Promotion.code == code.upper()))
        return result.scalar_one_or_none()

    async def list(self, is_active: Optional[bool] = None, now: Optional[datetime] = None) -> List[Promotion]:
        stmt = select(Promotion)
        if is_active is not None:
            stmt = stmt.where(Promotion.is_active.is_(is_active))
            if is_active:
                now = now or utcnow()
                stmt = stmt.where(Promotion.valid_from <= now, Promotion.valid_to >= now)
        stmt = stmt.order_by(Promotion.created_at.desc(), Promotion.id.desc())
        return list((await self.db.execute(stmt)).scalars().all())

    async def create(self, values: Dict[str, Any]) -> Promotion:
        promotion = Promotion(**values)
        self.db.add(promotion)
        await self.db.flush()
        return promotion

    async def update(self, promotion: Promotion, values: Dict[str, Any]) -> Promotion:
        for key, value in values.items():
            setattr(promotion, key, value)
        promotion.updated_at = utcnow()
        self.db.add(promotion)
        await self.db.flush()
        return promotion

    async def delete(self, promotion: Promotion) -> None:
        await self.db.delete(promotion)
        await self.db.flush()

    async def increment_usage(self, promotion_id: int) -> bool:
        result = await self.db.execute(
            update(Promotion)
            .where(
                Promotion.id == promotion_id,
                or_(Promotion.usage_limit.is_(None), Promotion.usage_count < Promotion.usage_limit),
            )
            .values(usage_count=Promotion.usage_count + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        logger.debug(f"[PromotionRepository] Utilisation promotion {promotion_id}: rowcount={result.rowcount}")
        return result.rowcount == 1
