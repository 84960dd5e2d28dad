"""
Tests d'intégration du stock: validation, ajustement signé et alertes.
"""
import logging
from decimal import Decimal

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.config import settings
from primeur.core.utils import utcnow
from primeur.products.models import Product
from primeur.stock.utils import format_delta, format_quantity

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


def test_format_quantity_strips_trailing_zeros():
    assert format_quantity(Decimal("5.000")) == "5"
    assert format_quantity(Decimal("2.500")) == "2.5"
    assert format_delta(Decimal("3")) == "+3"
    assert format_delta(Decimal("-1.25")) == "-1.25"


async def test_validate_stock_ok(test_client: AsyncClient, auth_headers_client: dict[str, str], test_product: Product):
    response = await test_client.post(
        f"{API_PREFIX}/stock/validate", json={"product_id": test_product.id, "quantity": "40"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["valid"] is True
    assert Decimal(str(data["available_stock"])) == Decimal("100")


async def test_validate_stock_insufficient(
    test_client: AsyncClient, auth_headers_client: dict[str, str], test_product: Product
):
    response = await test_client.post(
        f"{API_PREFIX}/stock/validate", json={"product_id": test_product.id, "quantity": "150"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Stock insuffisant pour Pommes" in response.json()["message"]


async def test_validate_stock_unknown_product(test_client: AsyncClient, auth_headers_client: dict[str, str]):
    response = await test_client.post(
        f"{API_PREFIX}/stock/validate", json={"product_id": 9999, "quantity": "1"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_validate_stock_on_deleted_product(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_client: dict[str, str], test_product: Product
):
    test_product.deleted_at = utcnow()
    db_session.add(test_product)
    await db_session.commit()

    response = await test_client.post(
        f"{API_PREFIX}/stock/validate", json={"product_id": test_product.id, "quantity": "1"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Produit supprimé"


async def test_validate_stock_negative_level_is_reported(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_client: dict[str, str],
    test_product: Product,
    caplog: pytest.LogCaptureFixture,
):
    product_id = test_product.id
    test_product.stock = Decimal("-3")
    db_session.add(test_product)
    await db_session.commit()

    with caplog.at_level(logging.WARNING, logger="primeur.stock.service"):
        response = await test_client.post(
            f"{API_PREFIX}/stock/validate", json={"product_id": product_id, "quantity": "1"}, headers=auth_headers_client
        )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Stock invalide (négatif)"
    assert any(
        record.levelno == logging.WARNING and f"produit {product_id}" in record.getMessage()
        for record in caplog.records
    )


async def test_adjust_stock_and_refuse_negative(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], test_product: Product
):
    url = f"{API_PREFIX}/stock/{test_product.id}/adjust"

    removed = await test_client.post(url, json={"quantity": "-95", "reason": "Casse"}, headers=auth_headers_admin)
    assert removed.status_code == status.HTTP_200_OK
    assert removed.json()["message"] == "Stock ajusté de -95"
    assert Decimal(str(removed.json()["product"]["stock"])) == Decimal("5")
    assert removed.json()["product"]["is_low_stock"] is True

    refused = await test_client.post(url, json={"quantity": "-10"}, headers=auth_headers_admin)
    assert refused.status_code == status.HTTP_400_BAD_REQUEST

    alerts = await test_client.get(f"{API_PREFIX}/stock/alerts", headers=auth_headers_admin)
    assert [p["id"] for p in alerts.json()["products"]] == [test_product.id]


async def test_set_stock_levels(test_client: AsyncClient, auth_headers_admin: dict[str, str], test_product: Product):
    response = await test_client.put(
        f"{API_PREFIX}/stock/{test_product.id}", json={"stock": "12.5", "stock_alert": "20"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_200_OK
    product = response.json()["product"]
    assert Decimal(str(product["stock"])) == Decimal("12.5")
    assert product["is_low_stock"] is True


async def test_stock_routes_are_admin_only(test_client: AsyncClient, auth_headers_client: dict[str, str], test_product: Product):
    listing = await test_client.get(f"{API_PREFIX}/stock", headers=auth_headers_client)
    assert listing.status_code == status.HTTP_403_FORBIDDEN
    adjust = await test_client.post(
        f"{API_PREFIX}/stock/{test_product.id}/adjust", json={"quantity": "1"}, headers=auth_headers_client
    )
    assert adjust.status_code == status.HTTP_403_FORBIDDEN
