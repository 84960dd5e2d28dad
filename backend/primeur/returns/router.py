import logging
from datetime import datetime
from typing import List, NoReturn, Optional

from fastapi import APIRouter, File, Form, HTTPException, Path, Query, UploadFile, status
from pydantic import TypeAdapter, ValidationError

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.config import settings
from primeur.core.utils import as_naive_utc
from primeur.returns.constants import (
    ERROR_INVALID_ITEMS,
    RETURN_APPROVED_MSG,
    RETURN_CREATED_MSG,
    RETURN_REFUNDED_MSG,
    RETURN_REJECTED_MSG,
)
from primeur.returns.dependencies import ReturnServiceDep
from primeur.returns.exceptions import ReturnAccessDeniedException, ReturnDomainException, ReturnNotFoundException
from primeur.returns.models import (
    ReturnApprove,
    ReturnCreate,
    ReturnDetailResponse,
    ReturnItemCreate,
    ReturnListResponse,
    ReturnMutationResponse,
    ReturnReject,
    ReturnStatsResponse,
    ReturnStatus,
)
from primeur.returns.storage import PhotoUpload
from primeur.shops.dependencies import UserShopDep

logger = logging.getLogger(__name__)

router = APIRouter()

items_adapter = TypeAdapter(List[ReturnItemCreate])


def handle_return_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ReturnNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, ReturnAccessDeniedException):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, ReturnDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Return API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement du retour")


@router.get("", response_model=ReturnListResponse)
async def list_returns(
    service: ReturnServiceDep,
    current_user: CurrentUserDep,
    user_shop: UserShopDep,
    status_filter: Optional[ReturnStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    """Liste des retours (un client ne voit que ceux de son magasin)."""
    returns = await service.list_returns(
        current_user,
        user_shop,
        status=status_filter.value if status_filter else None,
        start_date=as_naive_utc(start_date),
        end_date=as_naive_utc(end_date),
    )
    return ReturnListResponse(returns=returns)


@router.get("/stats", response_model=ReturnStatsResponse)
async def return_stats(service: ReturnServiceDep, current_admin_user: AdminUserDep):
    return ReturnStatsResponse(stats=await service.get_stats())


@router.get("/{return_id}", response_model=ReturnDetailResponse)
async def read_return(
    service: ReturnServiceDep, current_user: CurrentUserDep, user_shop: UserShopDep, return_id: int = Path(..., ge=1)
):
    try:
        return ReturnDetailResponse(return_=await service.get_return(return_id, current_user, user_shop))
    except Exception as e:
        handle_return_service_errors(e)


@router.post("", response_model=ReturnMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_return(
    service: ReturnServiceDep,
    current_user: CurrentUserDep,
    user_shop: UserShopDep,
    order_id: int = Form(..., ge=1),
    reason: str = Form(..., min_length=1, max_length=100),
    description: Optional[str] = Form(None),
    items: str = Form(..., description="Lignes du retour au format JSON"),
    photo: Optional[UploadFile] = File(None),
):
    """Demande de retour (multipart): lignes en JSON, photo optionnelle."""
    try:
        parsed_items = items_adapter.validate_json(items)
        data = ReturnCreate(order_id=order_id, reason=reason, description=description, items=parsed_items)
    except ValidationError as e:
        logger.warning(f"[Return API] Lignes de retour invalides: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=ERROR_INVALID_ITEMS)

    upload = None
    if photo is not None and photo.filename:
        # Lecture bornée: un octet de plus que la limite suffit à refuser la photo
        content = await photo.read(settings.RETURN_PHOTO_MAX_BYTES + 1)
        upload = PhotoUpload(filename=photo.filename, content_type=photo.content_type, content=content)

    try:
        return_ = await service.create_return(data, current_user, user_shop, photo=upload)
    except Exception as e:
        handle_return_service_errors(e)
    return ReturnMutationResponse(message=RETURN_CREATED_MSG, return_=return_)


@router.put("/{return_id}/approve", response_model=ReturnMutationResponse)
async def approve_return(
    data: ReturnApprove, service: ReturnServiceDep, current_admin_user: AdminUserDep, return_id: int = Path(..., ge=1)
):
    try:
        return_ = await service.approve_return(return_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_return_service_errors(e)
    return ReturnMutationResponse(message=RETURN_APPROVED_MSG, return_=return_)


@router.put("/{return_id}/reject", response_model=ReturnMutationResponse)
async def reject_return(
    data: ReturnReject, service: ReturnServiceDep, current_admin_user: AdminUserDep, return_id: int = Path(..., ge=1)
):
    try:
        return_ = await service.reject_return(return_id, data.reason, user_id=current_admin_user.id)
    except Exception as e:
        handle_return_service_errors(e)
    return ReturnMutationResponse(message=RETURN_REJECTED_MSG, return_=return_)


@router.put("/{return_id}/refund", response_model=ReturnMutationResponse)
async def refund_return(service: ReturnServiceDep, current_admin_user: AdminUserDep, return_id: int = Path(..., ge=1)):
    try:
        return_ = await service.refund_return(return_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_return_service_errors(e)
    return ReturnMutationResponse(message=RETURN_REFUNDED_MSG, return_=return_)
