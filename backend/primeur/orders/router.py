import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from primeur.auth.dependencies import CurrentUserDep
from primeur.config import settings
from primeur.core.schemas import Pagination
from primeur.core.utils import total_pages
from primeur.orders.constants import ORDER_CREATED_MSG, ORDER_STATUS_UPDATED_MSG
from primeur.orders.dependencies import OrderServiceDep
from primeur.orders.exceptions import OrderAccessDeniedException, OrderDomainException, OrderNotFoundException
from primeur.orders.models import (
    OrderCreate,
    OrderListResponse,
    OrderMutationResponse,
    OrderReadWithItems,
    OrderStatus,
    OrderStatusUpdate,
)
from primeur.pricing.exceptions import PricingDomainException
from primeur.promotions.exceptions import PromotionDomainException
from primeur.shops.dependencies import UserShopDep
from primeur.stock.exceptions import StockException

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_order_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, OrderNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, OrderAccessDeniedException):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    # Stock, promotion ou tarif refusés lors du passage de commande
    if isinstance(e, (OrderDomainException, StockException, PromotionDomainException, PricingDomainException)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Order API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement de la commande")


@router.get("", response_model=OrderListResponse)
async def list_orders(
    response: Response,
    service: OrderServiceDep,
    current_user: CurrentUserDep,
    user_shop: UserShopDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    shop_id: Optional[int] = Query(None, ge=1),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
):
    """Liste des commandes. Un client ne voit que celles de son magasin."""
    orders, total = await service.list_orders(
        current_user, user_shop, page, limit, shop_id=shop_id, status=status_filter.value if status_filter else None
    )
    start = (page - 1) * limit
    response.headers["Content-Range"] = f"orders {start}-{start + max(len(orders) - 1, 0)}/{total}"
    return OrderListResponse(
        orders=orders,
        pagination=Pagination(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )


@router.get("/{order_id}", response_model=OrderReadWithItems)
async def read_order(
    service: OrderServiceDep, current_user: CurrentUserDep, user_shop: UserShopDep, order_id: int = Path(..., ge=1)
):
    try:
        return await service.get_order(order_id, current_user, user_shop)
    except Exception as e:
        handle_order_service_errors(e)


@router.post("", response_model=OrderMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, service: OrderServiceDep, current_user: CurrentUserDep, user_shop: UserShopDep):
    """Passe une commande: prix résolus, stock décrémenté, code promo consommé."""
    try:
        order = await service.create_order(data, current_user, user_shop)
    except Exception as e:
        handle_order_service_errors(e)
    return OrderMutationResponse(message=ORDER_CREATED_MSG, order=order)


@router.put("/{order_id}/status", response_model=OrderMutationResponse)
async def update_order_status(
    data: OrderStatusUpdate, service: OrderServiceDep, current_user: CurrentUserDep, order_id: int = Path(..., ge=1)
):
    try:
        order = await service.update_status(order_id, data.status, current_user)
    except Exception as e:
        handle_order_service_errors(e)
    return OrderMutationResponse(message=ORDER_STATUS_UPDATED_MSG, order=order)
