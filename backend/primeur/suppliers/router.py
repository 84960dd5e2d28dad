"""
Routes API des fournisseurs et de leurs sous-ressources:
- /{id}/products : catalogue du fournisseur
- /{id}/orders : commandes d'achat
- /{id}/evaluations : évaluations et note moyenne
"""
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, status

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.core.schemas import MessageResponse
from primeur.suppliers.constants import (
    EVALUATION_CREATED_MSG,
    ORDER_CREATED_MSG,
    ORDER_UPDATED_MSG,
    PRODUCT_ADDED_MSG,
    PRODUCT_DELETED_MSG,
    PRODUCT_UPDATED_MSG,
    SUPPLIER_CREATED_MSG,
    SUPPLIER_DELETED_MSG,
    SUPPLIER_UPDATED_MSG,
)
from primeur.suppliers.dependencies import SupplierServiceDep
from primeur.suppliers.exceptions import SupplierDomainException, SupplierNotFoundException
from primeur.suppliers.models import (
    SupplierCreate,
    SupplierDetailResponse,
    SupplierEvaluationCreate,
    SupplierEvaluationListResponse,
    SupplierEvaluationMutationResponse,
    SupplierListResponse,
    SupplierMutationResponse,
    SupplierOrderCreate,
    SupplierOrderListResponse,
    SupplierOrderMutationResponse,
    SupplierOrderUpdate,
    SupplierProductCreate,
    SupplierProductListResponse,
    SupplierProductMutationResponse,
    SupplierProductUpdate,
    SupplierSortBy,
    SupplierUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_supplier_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, SupplierNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, SupplierDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Supplier API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement du fournisseur")


@router.get("", response_model=SupplierListResponse)
async def list_suppliers(
    service: SupplierServiceDep,
    current_user: CurrentUserDep,
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    sort_by: SupplierSortBy = Query(SupplierSortBy.CREATED_AT),
):
    """Liste des fournisseurs non supprimés, avec statistiques globales sur la sélection."""
    suppliers, stats = await service.list_suppliers(search=search, is_active=is_active, min_rating=min_rating, sort_by=sort_by)
    return SupplierListResponse(suppliers=suppliers, stats=stats)


@router.get("/{supplier_id}", response_model=SupplierDetailResponse)
async def read_supplier(service: SupplierServiceDep, current_user: CurrentUserDep, supplier_id: int = Path(..., ge=1)):
    try:
        return SupplierDetailResponse(supplier=await service.get_supplier(supplier_id))
    except Exception as e:
        handle_supplier_service_errors(e)


@router.post("", response_model=SupplierMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(data: SupplierCreate, service: SupplierServiceDep, current_admin_user: AdminUserDep):
    try:
        supplier = await service.create_supplier(data, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return SupplierMutationResponse(message=SUPPLIER_CREATED_MSG, supplier=supplier)


@router.put("/{supplier_id}", response_model=SupplierMutationResponse)
async def update_supplier(
    data: SupplierUpdate, service: SupplierServiceDep, current_admin_user: AdminUserDep, supplier_id: int = Path(..., ge=1)
):
    try:
        supplier = await service.update_supplier(supplier_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return SupplierMutationResponse(message=SUPPLIER_UPDATED_MSG, supplier=supplier)


@router.delete("/{supplier_id}", response_model=MessageResponse)
async def delete_supplier(service: SupplierServiceDep, current_admin_user: AdminUserDep, supplier_id: int = Path(..., ge=1)):
    try:
        await service.delete_supplier(supplier_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return MessageResponse(message=SUPPLIER_DELETED_MSG)


# --- Catalogue ---

@router.get("/{supplier_id}/products", response_model=SupplierProductListResponse)
async def list_supplier_products(
    service: SupplierServiceDep, current_user: CurrentUserDep, supplier_id: int = Path(..., ge=1)
):
    try:
        return SupplierProductListResponse(products=await service.list_products(supplier_id))
    except Exception as e:
        handle_supplier_service_errors(e)


@router.post("/{supplier_id}/products", response_model=SupplierProductMutationResponse, status_code=status.HTTP_201_CREATED)
async def add_supplier_product(
    data: SupplierProductCreate,
    service: SupplierServiceDep,
    current_admin_user: AdminUserDep,
    supplier_id: int = Path(..., ge=1),
):
    try:
        product = await service.add_product(supplier_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return SupplierProductMutationResponse(message=PRODUCT_ADDED_MSG, product=product)


@router.put("/{supplier_id}/products/{supplier_product_id}", response_model=SupplierProductMutationResponse)
async def update_supplier_product(
    data: SupplierProductUpdate,
    service: SupplierServiceDep,
    current_admin_user: AdminUserDep,
    supplier_id: int = Path(..., ge=1),
    supplier_product_id: int = Path(..., ge=1),
):
    try:
        product = await service.update_product(supplier_id, supplier_product_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return SupplierProductMutationResponse(message=PRODUCT_UPDATED_MSG, product=product)


@router.delete("/{supplier_id}/products/{supplier_product_id}", response_model=MessageResponse)
async def delete_supplier_product(
    service: SupplierServiceDep,
    current_admin_user: AdminUserDep,
    supplier_id: int = Path(..., ge=1),
    supplier_product_id: int = Path(..., ge=1),
):
    try:
        await service.delete_product(supplier_id, supplier_product_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return MessageResponse(message=PRODUCT_DELETED_MSG)


# --- Commandes ---

@router.get("/{supplier_id}/orders", response_model=SupplierOrderListResponse)
async def list_supplier_orders(service: SupplierServiceDep, current_user: CurrentUserDep, supplier_id: int = Path(..., ge=1)):
    try:
        return SupplierOrderListResponse(orders=await service.list_orders(supplier_id))
    except Exception as e:
        handle_supplier_service_errors(e)


@router.post("/{supplier_id}/orders", response_model=SupplierOrderMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier_order(
    data: SupplierOrderCreate,
    service: SupplierServiceDep,
    current_admin_user: AdminUserDep,
    supplier_id: int = Path(..., ge=1),
):
    try:
        order = await service.create_order(supplier_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return SupplierOrderMutationResponse(message=ORDER_CREATED_MSG, order=order)


@router.put("/{supplier_id}/orders/{order_id}", response_model=SupplierOrderMutationResponse)
async def update_supplier_order(
    data: SupplierOrderUpdate,
    service: SupplierServiceDep,
    current_admin_user: AdminUserDep,
    supplier_id: int = Path(..., ge=1),
    order_id: int = Path(..., ge=1),
):
    try:
        order = await service.update_order(supplier_id, order_id, data, user_id=current_admin_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return SupplierOrderMutationResponse(message=ORDER_UPDATED_MSG, order=order)


# --- Évaluations ---

@router.get("/{supplier_id}/evaluations", response_model=SupplierEvaluationListResponse)
async def list_supplier_evaluations(
    service: SupplierServiceDep, current_user: CurrentUserDep, supplier_id: int = Path(..., ge=1)
):
    try:
        return SupplierEvaluationListResponse(evaluations=await service.list_evaluations(supplier_id))
    except Exception as e:
        handle_supplier_service_errors(e)


@router.post("/{supplier_id}/evaluations", response_model=SupplierEvaluationMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier_evaluation(
    data: SupplierEvaluationCreate,
    service: SupplierServiceDep,
    current_user: CurrentUserDep,
    supplier_id: int = Path(..., ge=1),
):
    try:
        evaluation, rating = await service.add_evaluation(supplier_id, data, user_id=current_user.id)
    except Exception as e:
        handle_supplier_service_errors(e)
    return SupplierEvaluationMutationResponse(message=EVALUATION_CREATED_MSG, evaluation=evaluation, rating=rating)
