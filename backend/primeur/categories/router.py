import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Path, Response, status

from primeur.auth.dependencies import AdminUserDep
from primeur.categories.constants import (
    CATEGORY_CREATED_MSG,
    CATEGORY_DELETED_MSG,
    CATEGORY_RESTORED_MSG,
    CATEGORY_UPDATED_MSG,
    SUBCATEGORY_CREATED_MSG,
    SUBCATEGORY_DELETED_MSG,
    SUBCATEGORY_RESTORED_MSG,
    SUBCATEGORY_UPDATED_MSG,
)
from primeur.categories.dependencies import CategoryServiceDep
from primeur.categories.exceptions import (
    CategoryDomainException,
    CategoryNotFoundException,
    SubCategoryNotFoundException,
)
from primeur.categories.models import (
    CategoryCreate,
    CategoryListResponse,
    CategoryMutationResponse,
    CategoryReadWithDetails,
    CategoryUpdate,
    SubCategoryCreate,
    SubCategoryListResponse,
    SubCategoryMutationResponse,
    SubCategoryUpdate,
)
from primeur.core.schemas import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Error Handling Helper ---
def handle_category_service_errors(e: Exception) -> NoReturn:
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, (CategoryNotFoundException, SubCategoryNotFoundException)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, CategoryDomainException):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    logger.error(f"[Category API] Unexpected error: {e}", exc_info=True)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erreur lors du traitement de la catégorie")


# --- Category Endpoints --- #

@router.get("", response_model=CategoryListResponse)
async def read_categories(service: CategoryServiceDep):
    """Liste les catégories actives avec leurs compteurs."""
    try:
        categories = await service.list_categories()
    except Exception as e:
        handle_category_service_errors(e)
    return CategoryListResponse(categories=categories)


@router.get("/{category_id}", response_model=CategoryReadWithDetails)
async def read_category(service: CategoryServiceDep, category_id: int = Path(..., ge=1)):
    try:
        return await service.get_category(category_id)
    except Exception as e:
        handle_category_service_errors(e)


@router.post("", response_model=CategoryMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category: CategoryCreate,
    service: CategoryServiceDep,
    current_admin_user: AdminUserDep,
    response: Response,
):
    """Crée une catégorie (Admin requis). Une catégorie supprimée du même nom est restaurée."""
    logger.info(f"API create_category by admin {current_admin_user.email}: name={category.name}")
    try:
        created, restored = await service.create_category(category, user_id=current_admin_user.id)
    except Exception as e:
        handle_category_service_errors(e)
    if restored:
        response.status_code = status.HTTP_200_OK
        return CategoryMutationResponse(message=CATEGORY_RESTORED_MSG, restored=True, category=created)
    return CategoryMutationResponse(message=CATEGORY_CREATED_MSG, category=created)


@router.put("/{category_id}", response_model=CategoryMutationResponse)
async def update_category(
    category: CategoryUpdate,
    service: CategoryServiceDep,
    current_admin_user: AdminUserDep,
    category_id: int = Path(..., ge=1),
):
    logger.info(f"API update_category by admin {current_admin_user.email}: ID={category_id}")
    try:
        updated = await service.update_category(category_id, category, user_id=current_admin_user.id)
    except Exception as e:
        handle_category_service_errors(e)
    return CategoryMutationResponse(message=CATEGORY_UPDATED_MSG, category=updated)


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    service: CategoryServiceDep,
    current_admin_user: AdminUserDep,
    category_id: int = Path(..., ge=1),
):
    """Supprime logiquement une catégorie et ses sous-catégories (Admin requis)."""
    logger.info(f"API delete_category by admin {current_admin_user.email}: ID={category_id}")
    try:
        await service.delete_category(category_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_category_service_errors(e)
    return MessageResponse(message=CATEGORY_DELETED_MSG)


# --- Sub-category Endpoints --- #

@router.get("/{category_id}/subcategories", response_model=SubCategoryListResponse)
async def read_subcategories(service: CategoryServiceDep, category_id: int = Path(..., ge=1)):
    try:
        sub_categories = await service.list_subcategories(category_id)
    except Exception as e:
        handle_category_service_errors(e)
    return SubCategoryListResponse(sub_categories=sub_categories)


@router.post("/{category_id}/subcategories", response_model=SubCategoryMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_subcategory(
    sub_category: SubCategoryCreate,
    service: CategoryServiceDep,
    current_admin_user: AdminUserDep,
    response: Response,
    category_id: int = Path(..., ge=1),
):
    try:
        created, restored = await service.create_subcategory(category_id, sub_category, user_id=current_admin_user.id)
    except Exception as e:
        handle_category_service_errors(e)
    if restored:
        response.status_code = status.HTTP_200_OK
        return SubCategoryMutationResponse(message=SUBCATEGORY_RESTORED_MSG, restored=True, sub_category=created)
    return SubCategoryMutationResponse(message=SUBCATEGORY_CREATED_MSG, sub_category=created)


@router.put("/subcategories/{sub_category_id}", response_model=SubCategoryMutationResponse)
async def update_subcategory(
    sub_category: SubCategoryUpdate,
    service: CategoryServiceDep,
    current_admin_user: AdminUserDep,
    sub_category_id: int = Path(..., ge=1),
):
    try:
        updated = await service.update_subcategory(sub_category_id, sub_category, user_id=current_admin_user.id)
    except Exception as e:
        handle_category_service_errors(e)
    return SubCategoryMutationResponse(message=SUBCATEGORY_UPDATED_MSG, sub_category=updated)


@router.delete("/subcategories/{sub_category_id}", response_model=MessageResponse)
async def delete_subcategory(
    service: CategoryServiceDep,
    current_admin_user: AdminUserDep,
    sub_category_id: int = Path(..., ge=1),
):
    try:
        await service.delete_subcategory(sub_category_id, user_id=current_admin_user.id)
    except Exception as e:
        handle_category_service_errors(e)
    return MessageResponse(message=SUBCATEGORY_DELETED_MSG)
