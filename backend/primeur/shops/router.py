import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Path, status

from primeur.auth.dependencies import AdminUserDep
from primeur.core.schemas import MessageResponse
from primeur.shops.constants import SHOP_CREATED_MSG, SHOP_DELETED_MSG, SHOP_UPDATED_MSG
from primeur.shops.dependencies import ShopServiceDep
from primeur.shops.exceptions import ShopDomainException, ShopNotFoundException
from primeur.shops.models import (
    ShopCreate,
    ShopDetailResponse,
    ShopListResponse,
    ShopMutationResponse,
    ShopUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_shop_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ShopNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, ShopDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Shop API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur serveur")


@router.get("", response_model=ShopListResponse)
async def list_shops(service: ShopServiceDep, current_admin_user: AdminUserDep):
    """Liste des magasins (Admin), triés par nom, avec propriétaire et nombre de commandes."""
    return ShopListResponse(shops=await service.list_shops())


@router.get("/{shop_id}", response_model=ShopDetailResponse)
async def read_shop(service: ShopServiceDep, current_admin_user: AdminUserDep, shop_id: int = Path(..., ge=1)):
    try:
        return ShopDetailResponse(shop=await service.get_shop(shop_id))
    except Exception as e:
        handle_shop_service_errors(e)


@router.post("", response_model=ShopMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_shop(data: ShopCreate, service: ShopServiceDep, current_admin_user: AdminUserDep):
    """Crée un magasin et son compte client (email vérifié et compte approuvé d'office)."""
    try:
        shop = await service.create_shop(data, user_id=current_admin_user.id)
    except Exception as e:
        handle_shop_service_errors(e)
    return ShopMutationResponse(message=SHOP_CREATED_MSG, shop=shop)


@router.put("/{shop_id}", response_model=ShopMutationResponse)
async def update_shop(
    data: ShopUpdate, service: ShopServiceDep, current_admin_user: AdminUserDep, shop_id: int = Path(..., ge=1)
):
    try:
        shop = await service.update_shop(shop_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_shop_service_errors(e)
    return ShopMutationResponse(message=SHOP_UPDATED_MSG, shop=shop)


@router.delete("/{shop_id}", response_model=MessageResponse)
async def delete_shop(service: ShopServiceDep, current_admin_user: AdminUserDep, shop_id: int = Path(..., ge=1)):
    try:
        await service.delete_shop(shop_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_shop_service_errors(e)
    return MessageResponse(message=SHOP_DELETED_MSG)
