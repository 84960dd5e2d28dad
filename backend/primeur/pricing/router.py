"""
Routes API des tarifs.

- liste des prix avec statistiques et historique
- tarifs dégressifs et tarifs clients (écriture réservée aux admins)
- modification en masse et résolution du prix unitaire
"""
import logging
from decimal import Decimal
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.core.schemas import MessageResponse, Pagination
from primeur.core.utils import total_pages
from primeur.pricing.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from primeur.pricing.constants import BULK_UPDATED_MSG, CLIENT_DELETED_MSG, VOLUME_DELETED_MSG
from primeur.pricing.dependencies import PricingServiceDep
from primeur.pricing.exceptions import PricingDomainException, PricingNotFoundException
from primeur.pricing.models import (
    BulkPriceUpdateRequest,
    BulkPriceUpdateResponse,
    ClientPricingCreate,
    ClientPricingListResponse,
    ClientPricingRead,
    ClientPricingUpdate,
    PriceHistoryResponse,
    PriceListResponse,
    PriceTier,
    ResolvedPrice,
    VolumePricingCreate,
    VolumePricingListResponse,
    VolumePricingRead,
    VolumePricingUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_pricing_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, PricingNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, PricingDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Pricing API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement des prix")


@router.get("", response_model=PriceListResponse)
async def list_prices(
    service: PricingServiceDep,
    current_user: CurrentUserDep,
    response: Response,
    category_id: Optional[int] = Query(None, ge=1),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    """Liste les produits actifs avec leur dernier changement de prix et des statistiques globales."""
    try:
        items, stats = await service.list_prices(category_id, min_price, max_price, search)
    except Exception as e:
        handle_pricing_service_errors(e)
    total = len(items)
    offset = (page - 1) * limit
    page_items = items[offset:offset + limit]
    response.headers["Content-Range"] = f"prices {offset}-{offset + max(len(page_items) - 1, 0)}/{total}"
    return PriceListResponse(
        products=page_items,
        stats=stats,
        pagination=Pagination(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )


@router.get("/history/{product_id}", response_model=PriceHistoryResponse)
async def read_price_history(service: PricingServiceDep, current_user: CurrentUserDep, product_id: int = Path(..., ge=1)):
    try:
        history = await service.get_price_history(product_id)
    except Exception as e:
        handle_pricing_service_errors(e)
    return PriceHistoryResponse(history=history)


@router.get("/resolve", response_model=ResolvedPrice)
async def resolve_price(
    service: PricingServiceDep,
    current_user: CurrentUserDep,
    product_id: int = Query(..., ge=1),
    quantity: Decimal = Query(Decimal("1"), gt=0),
    tier: PriceTier = Query(PriceTier.T1),
    user_id: Optional[int] = Query(None, ge=1, description="Client concerné (admin uniquement)"),
):
    """Prix unitaire HT applicable pour un produit, une quantité et un client."""
    target_user = user_id if (current_user.is_admin and user_id) else current_user.id
    try:
        return await service.resolve_unit_price(product_id, quantity, user_id=target_user, tier=tier)
    except Exception as e:
        handle_pricing_service_errors(e)


# --- Tarifs dégressifs ---

@router.get("/volume", response_model=VolumePricingListResponse)
async def list_volume_pricing(
    service: PricingServiceDep,
    current_user: CurrentUserDep,
    product_id: Optional[int] = Query(None, ge=1),
):
    return VolumePricingListResponse(volume_pricing=await service.list_volume_pricing(product_id))


@router.post("/volume", response_model=VolumePricingRead, status_code=status.HTTP_201_CREATED)
async def create_volume_pricing(data: VolumePricingCreate, service: PricingServiceDep, current_admin_user: AdminUserDep):
    try:
        return await service.create_volume_pricing(data, user_id=current_admin_user.id)
    except Exception as e:
        handle_pricing_service_errors(e)


@router.put("/volume/{volume_id}", response_model=VolumePricingRead)
async def update_volume_pricing(
    data: VolumePricingUpdate,
    service: PricingServiceDep,
    current_admin_user: AdminUserDep,
    volume_id: int = Path(..., ge=1),
):
    try:
        return await service.update_volume_pricing(volume_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_pricing_service_errors(e)


@router.delete("/volume/{volume_id}", response_model=MessageResponse)
async def delete_volume_pricing(service: PricingServiceDep, current_admin_user: AdminUserDep, volume_id: int = Path(..., ge=1)):
    try:
        await service.delete_volume_pricing(volume_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_pricing_service_errors(e)
    return MessageResponse(message=VOLUME_DELETED_MSG)


# --- Tarifs clients ---

@router.get("/client", response_model=ClientPricingListResponse)
async def list_client_pricing(
    service: PricingServiceDep,
    current_user: CurrentUserDep,
    product_id: Optional[int] = Query(None, ge=1),
    user_id: Optional[int] = Query(None, ge=1),
):
    # Un client ne voit que ses propres tarifs négociés
    if not current_user.is_admin:
        user_id = current_user.id
    return ClientPricingListResponse(client_pricing=await service.list_client_pricing(product_id, user_id))


@router.post("/client", response_model=ClientPricingRead, status_code=status.HTTP_201_CREATED)
async def create_client_pricing(data: ClientPricingCreate, service: PricingServiceDep, current_admin_user: AdminUserDep):
    try:
        return await service.create_client_pricing(data, user_id=current_admin_user.id)
    except Exception as e:
        handle_pricing_service_errors(e)


@router.put("/client/{client_pricing_id}", response_model=ClientPricingRead)
async def update_client_pricing(
    data: ClientPricingUpdate,
    service: PricingServiceDep,
    current_admin_user: AdminUserDep,
    client_pricing_id: int = Path(..., ge=1),
):
    try:
        return await service.update_client_pricing(client_pricing_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_pricing_service_errors(e)


@router.delete("/client/{client_pricing_id}", response_model=MessageResponse)
async def delete_client_pricing(
    service: PricingServiceDep,
    current_admin_user: AdminUserDep,
    client_pricing_id: int = Path(..., ge=1),
):
    try:
        await service.delete_client_pricing(client_pricing_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_pricing_service_errors(e)
    return MessageResponse(message=CLIENT_DELETED_MSG)


# --- Modification en masse ---

@router.post("/bulk-update", response_model=BulkPriceUpdateResponse)
async def bulk_update_prices(request: BulkPriceUpdateRequest, service: PricingServiceDep, current_admin_user: AdminUserDep):
    logger.info(f"API bulk_update_prices by admin {current_admin_user.email}: {len(request.product_ids)} produit(s)")
    try:
        updated_count = await service.bulk_update(request, user_id=current_admin_user.id)
    except Exception as e:
        handle_pricing_service_errors(e)
    return BulkPriceUpdateResponse(message=BULK_UPDATED_MSG.format(count=updated_count), updated_count=updated_count)
