"""
Tests d'intégration des fournisseurs: fiche, catalogue, commandes numérotées et évaluations.
"""
from decimal import Decimal
from typing import Any, Dict

import pytest
import pytest_asyncio
from fastapi import status
from httpx import AsyncClient

from primeur.config import settings
from primeur.suppliers.service import supplier_ttc

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio

SUPPLIER_PAYLOAD = {
    "name": "Vergers du Rhône",
    "contact": "Jeanne Martin",
    "email": "contact@vergers-rhone.fr",
    "phone": "0472000000",
    "city": "Valence",
}


@pytest_asyncio.fixture(scope="function")
async def supplier(test_client: AsyncClient, auth_headers_admin: Dict[str, str]) -> Dict[str, Any]:
    response = await test_client.post(f"{API_PREFIX}/suppliers", json=SUPPLIER_PAYLOAD, headers=auth_headers_admin)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["supplier"]


async def _order(test_client: AsyncClient, headers: Dict[str, str], supplier_id: int) -> Dict[str, Any]:
    response = await test_client.post(
        f"{API_PREFIX}/suppliers/{supplier_id}/orders",
        json={"items": [
            {"product_name": "Abricots", "quantity": "20", "unit_price": "2.50"},
            {"product_name": "Pêches", "quantity": "10", "unit_price": "3.00"},
        ]},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["order"]


def test_supplier_ttc_uses_flat_rate():
    assert supplier_ttc(Decimal("80.00")) == Decimal("96.00")


async def test_create_supplier_defaults(supplier: Dict[str, Any]):
    assert supplier["country"] == "France"
    assert supplier["payment_terms"] == "Net 30 jours"
    assert supplier["total_orders"] == 0
    assert supplier["rating"] is None


async def test_duplicate_email_is_refused(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], supplier: Dict[str, Any]
):
    response = await test_client.post(
        f"{API_PREFIX}/suppliers", json={**SUPPLIER_PAYLOAD, "name": "Autre"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Cet email est déjà utilisé"


async def test_client_cannot_create_supplier(test_client: AsyncClient, auth_headers_client: Dict[str, str]):
    response = await test_client.post(f"{API_PREFIX}/suppliers", json=SUPPLIER_PAYLOAD, headers=auth_headers_client)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_orders_are_numbered_sequentially_and_update_totals(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], supplier: Dict[str, Any]
):
    first = await _order(test_client, auth_headers_admin, supplier["id"])
    second = await _order(test_client, auth_headers_admin, supplier["id"])

    assert first["order_number"] == "CF000001"
    assert second["order_number"] == "CF000002"
    assert first["status"] == "SENT"
    assert Decimal(str(first["total_ht"])) == Decimal("80.00")
    assert Decimal(str(first["total_ttc"])) == Decimal("96.00")
    assert len(first["items"]) == 2

    detail = await test_client.get(f"{API_PREFIX}/suppliers/{supplier['id']}", headers=auth_headers_admin)
    data = detail.json()["supplier"]
    assert data["total_orders"] == 2
    assert Decimal(str(data["total_spent"])) == Decimal("160.00")
    assert len(data["orders"]) == 2


async def test_marking_order_paid_stamps_date(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], supplier: Dict[str, Any]
):
    order = await _order(test_client, auth_headers_admin, supplier["id"])
    response = await test_client.put(
        f"{API_PREFIX}/suppliers/{supplier['id']}/orders/{order['id']}",
        json={"is_paid": True, "payment_method": "virement"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["order"]["is_paid"] is True
    assert response.json()["order"]["paid_at"] is not None


async def test_delete_refused_while_orders_are_active(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], supplier: Dict[str, Any]
):
    order = await _order(test_client, auth_headers_admin, supplier["id"])

    refused = await test_client.delete(f"{API_PREFIX}/suppliers/{supplier['id']}", headers=auth_headers_admin)
    assert refused.status_code == status.HTTP_400_BAD_REQUEST
    assert "1 commande(s) en cours" in refused.json()["message"]

    await test_client.put(
        f"{API_PREFIX}/suppliers/{supplier['id']}/orders/{order['id']}",
        json={"status": "DELIVERED"},
        headers=auth_headers_admin,
    )
    deleted = await test_client.delete(f"{API_PREFIX}/suppliers/{supplier['id']}", headers=auth_headers_admin)
    assert deleted.status_code == status.HTTP_200_OK

    missing = await test_client.get(f"{API_PREFIX}/suppliers/{supplier['id']}", headers=auth_headers_admin)
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_evaluations_recompute_rating(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    supplier: Dict[str, Any],
):
    url = f"{API_PREFIX}/suppliers/{supplier['id']}/evaluations"
    first = await test_client.post(url, json={"rating": 5, "comment": "Très frais"}, headers=auth_headers_admin)
    assert first.status_code == status.HTTP_201_CREATED
    assert first.json()["rating"] == pytest.approx(5.0)

    second = await test_client.post(url, json={"rating": 2, "would_recommend": False}, headers=auth_headers_client)
    assert second.json()["rating"] == pytest.approx(3.5)

    listing = await test_client.get(url, headers=auth_headers_admin)
    assert len(listing.json()["evaluations"]) == 2

    suppliers = await test_client.get(f"{API_PREFIX}/suppliers", params={"min_rating": 3}, headers=auth_headers_admin)
    assert [s["id"] for s in suppliers.json()["suppliers"]] == [supplier["id"]]


async def test_invalid_rating_is_rejected(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], supplier: Dict[str, Any]
):
    response = await test_client.post(
        f"{API_PREFIX}/suppliers/{supplier['id']}/evaluations", json={"rating": 6}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_catalogue_price_change_stamps_update(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], supplier: Dict[str, Any]
):
    url = f"{API_PREFIX}/suppliers/{supplier['id']}/products"
    created = await test_client.post(url, json={"product_name": "Cerises", "unit_price": "6.00"}, headers=auth_headers_admin)
    assert created.status_code == status.HTTP_201_CREATED
    product = created.json()["product"]

    updated = await test_client.put(f"{url}/{product['id']}", json={"unit_price": "5.50"}, headers=auth_headers_admin)
    assert updated.status_code == status.HTTP_200_OK
    assert Decimal(str(updated.json()["product"]["unit_price"])) == Decimal("5.50")
    assert updated.json()["product"]["last_price_update"] is not None

    removed = await test_client.delete(f"{url}/{product['id']}", headers=auth_headers_admin)
    assert removed.status_code == status.HTTP_200_OK
    missing = await test_client.delete(f"{url}/{product['id']}", headers=auth_headers_admin)
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_list_suppliers_with_stats(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], supplier: Dict[str, Any]
):
    await _order(test_client, auth_headers_admin, supplier["id"])
    response = await test_client.get(
        f"{API_PREFIX}/suppliers", params={"search": "vergers"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["suppliers"][0]["orders_count"] == 1
    assert data["stats"]["total"] == 1
    assert data["stats"]["total_orders"] == 1
