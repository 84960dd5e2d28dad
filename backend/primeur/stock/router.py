import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, status

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.stock.constants import STOCK_ADJUSTED_MSG, STOCK_UPDATED_MSG
from primeur.stock.dependencies import StockServiceDep
from primeur.stock.exceptions import StockException, StockProductNotFoundException
from primeur.stock.models import (
    StockAdjustRequest,
    StockListResponse,
    StockMutationResponse,
    StockUpdateRequest,
    StockValidationRequest,
    StockValidationResult,
)
from primeur.stock.utils import format_delta

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_stock_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, StockProductNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, StockException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Stock API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors de la validation du stock")


@router.get("", response_model=StockListResponse)
async def list_stock(
    service: StockServiceDep,
    current_admin_user: AdminUserDep,
    low_stock: bool = Query(False),
    category_id: Optional[int] = Query(None, ge=1),
):
    products = await service.list_stock(low_stock_only=low_stock, category_id=category_id)
    return StockListResponse(count=len(products), products=products)


@router.get("/alerts", response_model=StockListResponse)
async def list_stock_alerts(service: StockServiceDep, current_admin_user: AdminUserDep):
    """Produits dont le stock est inférieur ou égal au seuil d'alerte."""
    products = await service.list_alerts()
    return StockListResponse(count=len(products), products=products)


@router.post("/validate", response_model=StockValidationResult)
async def validate_stock(request: StockValidationRequest, service: StockServiceDep, current_user: CurrentUserDep):
    try:
        product = await service.validate_stock(request.product_id, request.quantity)
    except Exception as e:
        handle_stock_service_errors(e)
    return StockValidationResult(
        product_id=product.id, product_name=product.name, available_stock=product.stock, unit=product.unit
    )


@router.put("/{product_id}", response_model=StockMutationResponse)
async def update_stock(
    request: StockUpdateRequest,
    service: StockServiceDep,
    current_admin_user: AdminUserDep,
    product_id: int = Path(..., ge=1),
):
    try:
        level = await service.set_stock(product_id, request.stock, request.stock_alert, user_id=current_admin_user.id)
    except Exception as e:
        handle_stock_service_errors(e)
    return StockMutationResponse(message=STOCK_UPDATED_MSG, product=level)


@router.post("/{product_id}/adjust", response_model=StockMutationResponse)
async def adjust_stock(
    request: StockAdjustRequest,
    service: StockServiceDep,
    current_admin_user: AdminUserDep,
    product_id: int = Path(..., ge=1),
):
    logger.info(f"API adjust_stock by admin {current_admin_user.email}: produit {product_id} delta {request.quantity}")
    try:
        level = await service.adjust_stock(product_id, request.quantity, request.reason, user_id=current_admin_user.id)
    except Exception as e:
        handle_stock_service_errors(e)
    return StockMutationResponse(message=STOCK_ADJUSTED_MSG.format(delta=format_delta(request.quantity)), product=level)
