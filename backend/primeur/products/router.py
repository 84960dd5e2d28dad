"""Routes API du catalogue produits."""
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from primeur.auth.dependencies import AdminUserDep, CurrentUserDep
from primeur.core.schemas import MessageResponse, Pagination
from primeur.core.utils import total_pages
from primeur.products.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from primeur.products.constants import PRODUCT_DELETED_MSG
from primeur.products.dependencies import ProductServiceDep
from primeur.products.exceptions import ProductDomainException, ProductNotFoundException
from primeur.products.models import ProductCreate, ProductListResponse, ProductRead, ProductUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def handle_product_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ProductNotFoundException):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, ProductDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Product API] Erreur inattendue: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement du produit")


@router.get("", response_model=ProductListResponse)
async def list_products(
    service: ProductServiceDep,
    current_user: CurrentUserDep,
    response: Response,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
    category_id: Optional[int] = Query(None, ge=1),
    sub_category_id: Optional[int] = Query(None, ge=1),
    include_inactive: bool = Query(False, description="Inclure les produits inactifs (admin)"),
):
    try:
        products, total = await service.list_products(
            page=page,
            limit=limit,
            search=search,
            category_id=category_id,
            sub_category_id=sub_category_id,
            include_inactive=include_inactive and current_user.is_admin,
        )
    except Exception as e:
        handle_product_service_errors(e)
    offset = (page - 1) * limit
    response.headers["Content-Range"] = f"products {offset}-{offset + max(len(products) - 1, 0)}/{total}"
    return ProductListResponse(
        products=products,
        pagination=Pagination(total=total, page=page, limit=limit, total_pages=total_pages(total, limit)),
    )


@router.get("/{product_id}", response_model=ProductRead)
async def read_product(service: ProductServiceDep, current_user: CurrentUserDep, product_id: int = Path(..., ge=1)):
    try:
        return await service.get_product(product_id)
    except Exception as e:
        handle_product_service_errors(e)


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def create_product(product: ProductCreate, service: ProductServiceDep, current_admin_user: AdminUserDep):
    logger.info(f"API create_product by admin {current_admin_user.email}: {product.name}")
    try:
        return await service.create_product(product, user_id=current_admin_user.id)
    except Exception as e:
        handle_product_service_errors(e)


@router.put("/{product_id}", response_model=ProductRead)
async def update_product(
    product: ProductUpdate,
    service: ProductServiceDep,
    current_admin_user: AdminUserDep,
    product_id: int = Path(..., ge=1),
):
    logger.info(f"API update_product by admin {current_admin_user.email}: ID={product_id}")
    try:
        return await service.update_product(product_id, product, user_id=current_admin_user.id)
    except Exception as e:
        handle_product_service_errors(e)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(service: ProductServiceDep, current_admin_user: AdminUserDep, product_id: int = Path(..., ge=1)):
    try:
        await service.delete_product(product_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_product_service_errors(e)
    return MessageResponse(message=PRODUCT_DELETED_MSG)
