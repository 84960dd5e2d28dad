"""
Tests des tarifs: modification en masse, historique et résolution du prix unitaire.
"""
from decimal import Decimal

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from primeur.config import settings
from primeur.pricing.models import BulkAction, BulkValueType, PriceHistory
from primeur.pricing.service import compute_bulk_price
from primeur.products.models import Product
from primeur.users.models import User

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize("current, action, value, value_type, expected", [
    ("10.00", BulkAction.INCREASE, "10", BulkValueType.PERCENT, "11.00"),
    ("10.00", BulkAction.DECREASE, "50", BulkValueType.PERCENT, "5.00"),
    ("2.00", BulkAction.DECREASE, "5", BulkValueType.ABSOLUTE, "0.00"),
    ("2.00", BulkAction.SET, "3.49", BulkValueType.ABSOLUTE, "3.49"),
])
def test_compute_bulk_price(current, action, value, value_type, expected):
    assert compute_bulk_price(Decimal(current), action, Decimal(value), value_type) == Decimal(expected)


async def test_bulk_decrease_writes_one_history_row_per_product(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: dict[str, str],
    test_products: list[Product],
):
    response = await test_client.post(
        f"{API_PREFIX}/prices/bulk-update",
        json={
            "product_ids": [p.id for p in test_products],
            "action": "decrease",
            "value": "50",
            "value_type": "percent",
            "reason": "Fin de saison",
        },
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["updated_count"] == 3

    prices = []
    for product in test_products:
        refreshed = await db_session.get(Product, product.id, populate_existing=True)
        prices.append(Decimal(str(refreshed.price_ht)))
    assert prices == [Decimal("5.00"), Decimal("2.50"), Decimal("1.00")]

    rows = (await db_session.execute(select(PriceHistory))).scalars().all()
    assert len(rows) == 3
    assert {row.reason for row in rows} == {"Fin de saison"}

    history = await test_client.get(f"{API_PREFIX}/prices/history/{test_products[0].id}", headers=auth_headers_admin)
    assert history.status_code == status.HTTP_200_OK
    entries = history.json()["history"]
    assert len(entries) == 1
    assert Decimal(str(entries[0]["old_price_ht"])) == Decimal("10.00")
    assert Decimal(str(entries[0]["new_price_ht"])) == Decimal("5.00")


async def test_bulk_update_skips_unknown_products(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_product: Product
):
    response = await test_client.post(
        f"{API_PREFIX}/prices/bulk-update",
        json={"product_ids": [test_product.id, 9999], "action": "increase", "value": "1", "value_type": "absolute"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["updated_count"] == 1


async def test_bulk_update_forbidden_for_client(
    test_client: AsyncClient, auth_headers_client: dict[str, str], test_product: Product
):
    response = await test_client.post(
        f"{API_PREFIX}/prices/bulk-update",
        json={"product_ids": [test_product.id], "action": "set", "value": "1", "value_type": "absolute"},
        headers=auth_headers_client,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_resolve_uses_base_then_volume_then_client(
    test_client: AsyncClient,
    auth_headers_admin: dict[str, str],
    auth_headers_client: dict[str, str],
    client_user: User,
    test_product: Product,
):
    url = f"{API_PREFIX}/prices/resolve"

    base = await test_client.get(url, params={"product_id": test_product.id, "quantity": "10"}, headers=auth_headers_client)
    assert base.status_code == status.HTTP_200_OK
    assert base.json()["source"] == "base"
    assert Decimal(str(base.json()["unit_price_ht"])) == Decimal("10.00")

    t2 = await test_client.get(url, params={"product_id": test_product.id, "tier": "T2"}, headers=auth_headers_client)
    assert Decimal(str(t2.json()["unit_price_ht"])) == Decimal("9.00")

    volume = await test_client.post(
        f"{API_PREFIX}/prices/volume",
        json={"product_id": test_product.id, "min_quantity": "10", "price_ht": "8.00"},
        headers=auth_headers_admin,
    )
    assert volume.status_code == status.HTTP_201_CREATED

    below = await test_client.get(url, params={"product_id": test_product.id, "quantity": "5"}, headers=auth_headers_client)
    assert below.json()["source"] == "base"
    bracket = await test_client.get(url, params={"product_id": test_product.id, "quantity": "10"}, headers=auth_headers_client)
    assert bracket.json()["source"] == "volume"
    assert Decimal(str(bracket.json()["unit_price_ht"])) == Decimal("8.00")

    negotiated = await test_client.post(
        f"{API_PREFIX}/prices/client",
        json={"product_id": test_product.id, "user_id": client_user.id, "price_ht": "7.50"},
        headers=auth_headers_admin,
    )
    assert negotiated.status_code == status.HTTP_201_CREATED

    client_price = await test_client.get(url, params={"product_id": test_product.id, "quantity": "10"}, headers=auth_headers_client)
    assert client_price.json()["source"] == "client"
    assert Decimal(str(client_price.json()["unit_price_ht"])) == Decimal("7.50")


async def test_overlapping_volume_bracket_is_refused(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_product: Product
):
    first = await test_client.post(
        f"{API_PREFIX}/prices/volume",
        json={"product_id": test_product.id, "min_quantity": "10", "max_quantity": "50", "price_ht": "8.00"},
        headers=auth_headers_admin,
    )
    assert first.status_code == status.HTTP_201_CREATED

    overlap = await test_client.post(
        f"{API_PREFIX}/prices/volume",
        json={"product_id": test_product.id, "min_quantity": "40", "price_ht": "7.00"},
        headers=auth_headers_admin,
    )
    assert overlap.status_code == status.HTTP_400_BAD_REQUEST


async def test_resolve_unknown_product_returns_404(test_client: AsyncClient, auth_headers_client: dict[str, str]):
    response = await test_client.get(
        f"{API_PREFIX}/prices/resolve", params={"product_id": 9999}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
