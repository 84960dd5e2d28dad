import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, status

from primeur.auth.dependencies import CurrentUserDep
from primeur.config import settings
from primeur.core.schemas import MessageResponse, Pagination
from primeur.core.utils import total_pages
from primeur.notifications.constants import (
    NOTIFICATION_DELETED_MSG,
    NOTIFICATION_READ_MSG,
    NOTIFICATIONS_READ_ALL_MSG,
)
from primeur.notifications.dependencies import NotificationServiceDep
from primeur.notifications.exceptions import NotificationNotFoundException
from primeur.notifications.models import NotificationListResponse, ReadAllResponse, UnreadCountResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_notification_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, NotificationNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    logger.error(f"[Notification API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement des notifications")


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    service: NotificationServiceDep,
    current_user: CurrentUserDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    read: Optional[bool] = Query(None),
    type: Optional[str] = Query(None, max_length=50),
):
    notifications, total, unread = await service.list_notifications(current_user.id, page, limit, read, type)
    return NotificationListResponse(
        notifications=notifications,
        unread_count=unread,
        pagination=Pagination(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(service: NotificationServiceDep, current_user: CurrentUserDep):
    return UnreadCountResponse(count=await service.unread_count(current_user.id))


# Déclarée avant /{notification_id}/read
@router.put("/read-all", response_model=ReadAllResponse)
async def mark_all_as_read(service: NotificationServiceDep, current_user: CurrentUserDep):
    count = await service.mark_all_as_read(current_user.id)
    return ReadAllResponse(message=NOTIFICATIONS_READ_ALL_MSG.format(count=count), count=count)


@router.put("/{notification_id}/read", response_model=MessageResponse)
async def mark_as_read(service: NotificationServiceDep, current_user: CurrentUserDep, notification_id: int = Path(..., ge=1)):
    try:
        await service.mark_as_read(notification_id, current_user.id)
    except Exception as e:
        handle_notification_service_errors(e)
    return MessageResponse(message=NOTIFICATION_READ_MSG)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(service: NotificationServiceDep, current_user: CurrentUserDep, notification_id: int = Path(..., ge=1)):
    try:
        await service.delete_notification(notification_id, current_user.id)
    except Exception as e:
        handle_notification_service_errors(e)
    return MessageResponse(message=NOTIFICATION_DELETED_MSG)
