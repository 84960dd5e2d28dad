import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query, Response

from primeur.admin.dependencies import SecurityServiceDep
from primeur.admin.models import AuditLogListResponse, SecurityStatsResponse
from primeur.auth.dependencies import AdminUserDep
from primeur.config import settings
from primeur.core.schemas import Pagination
from primeur.core.utils import as_naive_utc, total_pages

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/stats", response_model=SecurityStatsResponse)
async def security_stats(service: SecurityServiceDep, current_admin_user: AdminUserDep):
    """Volume du journal d'audit, utilisateurs actifs et répartition sur les 7 derniers jours."""
    return SecurityStatsResponse(stats=await service.get_stats())


@router.get("/logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    response: Response,
    service: SecurityServiceDep,
    current_admin_user: AdminUserDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    action: Optional[str] = Query(None),
    entity: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None, ge=1),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    logs, total = await service.list_logs(
        page,
        limit,
        action=action,
        entity=entity,
        entity_id=entity_id,
        user_id=user_id,
        start_date=as_naive_utc(start_date),
        end_date=as_naive_utc(end_date),
    )
    start = (page - 1) * limit
    response.headers["Content-Range"] = f"logs {start}-{start + max(len(logs) - 1, 0)}/{total}"
    return AuditLogListResponse(
        logs=logs,
        pagination=Pagination(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )
