import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from primeur.admin.interfaces.repositories import AbstractSecurityRepository
from primeur.admin.models import SecurityStats
from primeur.audit.models import AuditLogRead
from primeur.config import settings
from primeur.core.utils import utcnow

logger = logging.getLogger(__name__)


class SecurityService:
    """Statistiques et consultation du journal d'audit (administrateurs)."""

    def __init__(self, repository: AbstractSecurityRepository):
        self.repository = repository

    async def get_stats(self, now: Optional[datetime] = None) -> SecurityStats:
        now = now or utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        window_start = now - timedelta(days=settings.SECURITY_STATS_WINDOW_DAYS)

        summaries = await self.repository.get_log_summaries(window_start)
        by_action = Counter(action for action, _, _ in summaries)
        by_entity = Counter(entity for _, entity, _ in summaries)
        by_day = Counter(created_at.date().isoformat() for _, _, created_at in summaries)

        stats = SecurityStats(
            total_logs=await self.repository.count_logs(),
            today_logs=await self.repository.count_logs(since=start_of_day),
            active_users=await self.repository.count_active_users(),
            by_action=dict(by_action),
            by_entity=dict(by_entity),
            by_day=dict(sorted(by_day.items())),
        )
        logger.debug(f"[SecurityService] Stats: {stats.total_logs} entrées, {stats.today_logs} aujourd'hui")
        return stats

    async def list_logs(
        self,
        page: int,
        limit: int,
        action: Optional[str] = None,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        user_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[AuditLogRead], int]:
        filters = {}
        if action:
            filters["action"] = action
        if entity:
            filters["entity"] = entity
        if entity_id:
            filters["entity_id"] = entity_id
        if user_id is not None:
            filters["user_id"] = user_id
        if start_date is not None:
            filters["created_at__gte"] = start_date
        if end_date is not None:
            filters["created_at__lte"] = end_date
        return await self.repository.list_logs((page - 1) * limit, limit, filters)
