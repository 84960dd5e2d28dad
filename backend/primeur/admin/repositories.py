from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.admin.interfaces.repositories import AbstractSecurityRepository
from primeur.audit.models import AuditLog, AuditLogRead
from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.users.models import User


class SQLAlchemySecurityRepository(SQLAlchemySessionRepository, AbstractSecurityRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud = FastCRUD(AuditLog)

    async def count_logs(self, since: Optional[datetime] = None) -> int:
        query = select(func.count(AuditLog.id))
        if since is not None:
            query = query.where(AuditLog.created_at >= since)
        return await self.db.scalar(query) or 0

    async def count_active_users(self) -> int:
        return await self.db.scalar(select(func.count(User.id)).where(User.is_active.is_(True))) or 0

    async def get_log_summaries(self, since: datetime) -> List[Tuple[str, str, datetime]]:
        result = await self.db.execute(
            select(AuditLog.action, AuditLog.entity, AuditLog.created_at).where(AuditLog.created_at >= since)
        )
        return [tuple(row) for row in result.all()]

    async def list_logs(self, offset: int, limit: int, filters: Dict[str, Any]) -> Tuple[List[AuditLogRead], int]:
        result = await self.crud.get_multi(
            self.db,
            offset=offset,
            limit=limit,
            schema_to_select=AuditLogRead,
            return_as_model=True,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return result.get("data", []), result.get("total_count", 0)
