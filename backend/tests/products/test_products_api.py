"""
Tests d'intégration du catalogue produits.
"""
from decimal import Decimal

import pytest
from fastapi import status
from httpx import AsyncClient

from primeur.categories.models import Category
from primeur.config import settings
from primeur.products.models import Product

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


async def test_list_products_paginated(
    test_client: AsyncClient, auth_headers_client: dict[str, str], test_products: list[Product]
):
    response = await test_client.get(f"{API_PREFIX}/products", params={"limit": 2}, headers=auth_headers_client)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data["products"]) == 2
    assert data["pagination"]["total"] == 3
    assert data["pagination"]["total_pages"] == 2
    assert response.headers["content-range"] == "products 0-1/3"


async def test_search_products(
    test_client: AsyncClient, auth_headers_client: dict[str, str], test_products: list[Product]
):
    response = await test_client.get(f"{API_PREFIX}/products", params={"search": "poi"}, headers=auth_headers_client)
    assert [p["name"] for p in response.json()["products"]] == ["Poires"]


async def test_create_product_with_unknown_category(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    response = await test_client.post(
        f"{API_PREFIX}/products",
        json={"name": "Kiwis", "price_ht": "4.20", "category_id": 9999},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_create_product(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_category: Category
):
    response = await test_client.post(
        f"{API_PREFIX}/products",
        json={"name": "Kiwis", "reference": "KIW-01", "price_ht": "4.20", "category_id": test_category.id},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_201_CREATED
    product = response.json()
    assert product["unit"] == "kg"
    assert Decimal(str(product["tva_rate"])) == Decimal("5.5")


async def test_price_change_is_recorded_in_history(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_product: Product
):
    response = await test_client.put(
        f"{API_PREFIX}/products/{test_product.id}",
        json={"price_ht": "11.00", "price_change_reason": "Hausse fournisseur"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_200_OK

    history = await test_client.get(f"{API_PREFIX}/prices/history/{test_product.id}", headers=auth_headers_admin)
    entries = history.json()["history"]
    assert len(entries) == 1
    assert entries[0]["reason"] == "Hausse fournisseur"
    assert Decimal(str(entries[0]["new_price_ht"])) == Decimal("11.00")


async def test_update_without_price_change_writes_no_history(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_product: Product
):
    await test_client.put(
        f"{API_PREFIX}/products/{test_product.id}", json={"description": "Golden"}, headers=auth_headers_admin
    )
    history = await test_client.get(f"{API_PREFIX}/prices/history/{test_product.id}", headers=auth_headers_admin)
    assert history.json()["history"] == []


async def test_soft_deleted_product_is_hidden(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_product: Product
):
    deleted = await test_client.delete(f"{API_PREFIX}/products/{test_product.id}", headers=auth_headers_admin)
    assert deleted.status_code == status.HTTP_200_OK

    read = await test_client.get(f"{API_PREFIX}/products/{test_product.id}", headers=auth_headers_admin)
    assert read.status_code == status.HTTP_404_NOT_FOUND

    listing = await test_client.get(f"{API_PREFIX}/products", headers=auth_headers_admin)
    assert all(p["id"] != test_product.id for p in listing.json()["products"])
