"""
Tests d'intégration des endpoints catégories: suppression logique, cascade et restauration.
"""
from decimal import Decimal

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.categories.models import Category, SubCategory
from primeur.config import settings
from primeur.products.models import Product

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


async def test_create_category_admin(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    response = await test_client.post(
        f"{API_PREFIX}/categories", json={"name": "Légumes", "icon": "🥕"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["success"] is True
    assert data["restored"] is False
    assert data["category"]["name"] == "Légumes"


async def test_create_category_forbidden_for_client(test_client: AsyncClient, auth_headers_client: dict[str, str]):
    response = await test_client.post(f"{API_PREFIX}/categories", json={"name": "Légumes"}, headers=auth_headers_client)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_create_category_duplicate_name(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_category: Category
):
    response = await test_client.post(
        f"{API_PREFIX}/categories", json={"name": test_category.name}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_delete_category_with_products_is_refused(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: dict[str, str],
    test_category: Category,
    test_product: Product,
):
    response = await test_client.delete(f"{API_PREFIX}/categories/{test_category.id}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False

    await db_session.refresh(test_category)
    assert test_category.deleted_at is None


async def test_delete_category_cascades_to_subcategories(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_admin: dict[str, str], test_category: Category
):
    sub_response = await test_client.post(
        f"{API_PREFIX}/categories/{test_category.id}/subcategories",
        json={"name": "Agrumes"},
        headers=auth_headers_admin,
    )
    assert sub_response.status_code == status.HTTP_201_CREATED
    sub_id = sub_response.json()["sub_category"]["id"]

    response = await test_client.delete(f"{API_PREFIX}/categories/{test_category.id}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_200_OK

    category = await db_session.get(Category, test_category.id, populate_existing=True)
    sub_category = await db_session.get(SubCategory, sub_id, populate_existing=True)
    assert category.deleted_at is not None
    assert sub_category.deleted_at is not None

    listing = await test_client.get(f"{API_PREFIX}/categories")
    assert all(c["id"] != test_category.id for c in listing.json()["categories"])


async def test_recreating_deleted_category_restores_same_id(
    test_client: AsyncClient, auth_headers_admin: dict[str, str]
):
    created = await test_client.post(f"{API_PREFIX}/categories", json={"name": "Herbes"}, headers=auth_headers_admin)
    category_id = created.json()["category"]["id"]

    deleted = await test_client.delete(f"{API_PREFIX}/categories/{category_id}", headers=auth_headers_admin)
    assert deleted.status_code == status.HTTP_200_OK

    restored = await test_client.post(
        f"{API_PREFIX}/categories", json={"name": "Herbes", "description": "Aromatiques"}, headers=auth_headers_admin
    )
    assert restored.status_code == status.HTTP_200_OK
    data = restored.json()
    assert data["restored"] is True
    assert data["category"]["id"] == category_id
    assert data["category"]["deleted_at"] is None


async def test_read_missing_category_returns_404(test_client: AsyncClient):
    response = await test_client.get(f"{API_PREFIX}/categories/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["success"] is False


async def test_list_categories_counts_products(
    test_client: AsyncClient, test_category: Category, test_products: list[Product]
):
    response = await test_client.get(f"{API_PREFIX}/categories")
    assert response.status_code == status.HTTP_200_OK
    entry = next(c for c in response.json()["categories"] if c["id"] == test_category.id)
    assert entry["products_count"] == len(test_products)


async def test_soft_deleted_product_does_not_block_category_delete(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: dict[str, str],
    test_category: Category,
):
    product = Product(name="Ancien", price_ht=Decimal("1.00"), category_id=test_category.id)
    db_session.add(product)
    await db_session.commit()

    removed = await test_client.delete(f"{API_PREFIX}/products/{product.id}", headers=auth_headers_admin)
    assert removed.status_code == status.HTTP_200_OK

    response = await test_client.delete(f"{API_PREFIX}/categories/{test_category.id}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_200_OK
