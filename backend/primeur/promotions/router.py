import logging
from decimal import Decimal
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, status

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.core.schemas import MessageResponse
from primeur.promotions.constants import PROMOTION_CREATED_MSG, PROMOTION_DELETED_MSG, PROMOTION_UPDATED_MSG
from primeur.promotions.dependencies import PromotionServiceDep
from primeur.promotions.exceptions import PromotionDomainException, PromotionNotFoundException
from primeur.promotions.models import (
    AppliedPromotion,
    PromotionCreate,
    PromotionListResponse,
    PromotionMutationResponse,
    PromotionUpdate,
    PromotionValidationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_promotion_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, PromotionNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, PromotionDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Promotion API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement de la promotion")


@router.get("", response_model=PromotionListResponse)
async def list_promotions(
    service: PromotionServiceDep,
    current_user: CurrentUserDep,
    is_active: Optional[bool] = Query(None, description="true: actives et dans leur période de validité"),
):
    return PromotionListResponse(promotions=await service.list_promotions(is_active=is_active))


@router.get("/{code}/validate", response_model=PromotionValidationResponse)
async def validate_promotion_code(
    service: PromotionServiceDep,
    current_user: CurrentUserDep,
    code: str = Path(..., min_length=1, max_length=50),
    order_amount: Decimal = Query(Decimal("0"), ge=0, description="Montant total de la commande"),
):
    """Vérifie un code promo et calcule la remise. N'incrémente pas le compteur d'utilisation."""
    try:
        promotion, discount = await service.validate_code(code, order_amount)
    except Exception as e:
        handle_promotion_service_errors(e)
    return PromotionValidationResponse(promotion=AppliedPromotion(
        id=promotion.id,
        code=promotion.code,
        name=promotion.name,
        type=promotion.type,
        value=promotion.value,
        discount=f"{discount:.2f}",
    ))


@router.post("", response_model=PromotionMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_promotion(data: PromotionCreate, service: PromotionServiceDep, current_admin_user: AdminUserDep):
    logger.info(f"API create_promotion by admin {current_admin_user.email}: {data.code}")
    try:
        promotion = await service.create_promotion(data, user_id=current_admin_user.id)
    except Exception as e:
        handle_promotion_service_errors(e)
    return PromotionMutationResponse(message=PROMOTION_CREATED_MSG, promotion=promotion)


@router.put("/{promotion_id}", response_model=PromotionMutationResponse)
async def update_promotion(
    data: PromotionUpdate,
    service: PromotionServiceDep,
    current_admin_user: AdminUserDep,
    promotion_id: int = Path(..., ge=1),
):
    try:
        promotion = await service.update_promotion(promotion_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_promotion_service_errors(e)
    return PromotionMutationResponse(message=PROMOTION_UPDATED_MSG, promotion=promotion)


@router.delete("/{promotion_id}", response_model=MessageResponse)
async def delete_promotion(service: PromotionServiceDep, current_admin_user: AdminUserDep, promotion_id: int = Path(..., ge=1)):
    try:
        await service.delete_promotion(promotion_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_promotion_service_errors(e)
    return MessageResponse(message=PROMOTION_DELETED_MSG)
