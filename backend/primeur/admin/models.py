from typing import Dict, List

from sqlmodel import SQLModel

from primeur.audit.models import AuditLogRead
from primeur.core.schemas import Pagination


class SecurityStats(SQLModel):
    total_logs: int
    today_logs: int
    active_users: int
    by_action: Dict[str, int]
    by_entity: Dict[str, int]
    # Clé: date ISO (YYYY-MM-DD)
    by_day: Dict[str, int]


class SecurityStatsResponse(SQLModel):
    success: bool = True
    stats: SecurityStats


class AuditLogListResponse(SQLModel):
    success: bool = True
    logs: List[AuditLogRead]
    pagination: Pagination
