"""
Tests d'intégration des factures: émission depuis une commande livrée, unicité par commande,
périmètre client, envoi et téléchargement du PDF.
"""
import re
from decimal import Decimal
from typing import Any, Dict

import pytest
import pytest_asyncio
from fastapi import status
from httpx import AsyncClient

from primeur.config import settings
from primeur.products.models import Product

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio

DELIVERY_STEPS = ("AGGREGATED", "SUPPLIER_ORDERED", "PREPARATION", "LIVRAISON", "LIVREE")


@pytest_asyncio.fixture(scope="function")
async def client_order(
    test_client: AsyncClient, auth_headers_client: Dict[str, str], test_product: Product
) -> Dict[str, Any]:
    response = await test_client.post(
        f"{API_PREFIX}/orders",
        json={"items": [{"product_id": test_product.id, "quantity": "2"}]},
        headers=auth_headers_client,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["order"]


@pytest_asyncio.fixture(scope="function")
async def delivered_order(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], client_order: Dict[str, Any]
) -> Dict[str, Any]:
    for step in DELIVERY_STEPS:
        response = await test_client.put(
            f"{API_PREFIX}/orders/{client_order['id']}/status", json={"status": step}, headers=auth_headers_admin
        )
        assert response.status_code == status.HTTP_200_OK, response.text
    return response.json()["order"]


async def _generate(test_client: AsyncClient, headers: Dict[str, str], order_id: int):
    return await test_client.post(f"{API_PREFIX}/invoices/orders/{order_id}", headers=headers)


async def test_generate_invoice_copies_order_totals(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], delivered_order: Dict[str, Any]
):
    response = await _generate(test_client, auth_headers_admin, delivered_order["id"])
    assert response.status_code == status.HTTP_201_CREATED, response.text
    invoice = response.json()["invoice"]

    assert re.fullmatch(r"FAC-\d{6}-\d{4}", invoice["invoice_number"])
    assert invoice["order_id"] == delivered_order["id"]
    assert invoice["order_number"] == delivered_order["order_number"]
    assert Decimal(str(invoice["total_ht"])) == Decimal("20.00")
    assert Decimal(str(invoice["total_tva"])) == Decimal("1.10")
    assert Decimal(str(invoice["total_ttc"])) == Decimal("21.10")
    assert invoice["shop"]["name"] == "Primeur du Marché"
    assert invoice["items"][0]["product_name"] == "Pommes"
    assert invoice["sent_at"] is None


async def test_second_invoice_for_same_order_is_refused(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], delivered_order: Dict[str, Any]
):
    first = await _generate(test_client, auth_headers_admin, delivered_order["id"])
    assert first.status_code == status.HTTP_201_CREATED

    second = await _generate(test_client, auth_headers_admin, delivered_order["id"])
    assert second.status_code == status.HTTP_400_BAD_REQUEST
    assert second.json()["message"] == "Une facture existe déjà pour cette commande"

    listing = await test_client.get(f"{API_PREFIX}/invoices", headers=auth_headers_admin)
    assert listing.json()["pagination"]["total"] == 1


async def test_undelivered_order_cannot_be_invoiced(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], client_order: Dict[str, Any]
):
    response = await _generate(test_client, auth_headers_admin, client_order["id"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "La commande doit être livrée pour générer une facture"


async def test_unknown_order_and_client_generation(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    delivered_order: Dict[str, Any],
):
    missing = await _generate(test_client, auth_headers_admin, 9999)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    by_client = await _generate(test_client, auth_headers_client, delivered_order["id"])
    assert by_client.status_code == status.HTTP_403_FORBIDDEN


async def test_invoices_are_scoped_to_the_client_shop(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    auth_headers_other: Dict[str, str],
    delivered_order: Dict[str, Any],
):
    created = await _generate(test_client, auth_headers_admin, delivered_order["id"])
    invoice_id = created.json()["invoice"]["id"]

    own = await test_client.get(f"{API_PREFIX}/invoices", headers=auth_headers_client)
    assert own.status_code == status.HTTP_200_OK
    assert [i["id"] for i in own.json()["invoices"]] == [invoice_id]
    assert own.headers["content-range"] == "invoices 0-0/1"

    other = await test_client.get(f"{API_PREFIX}/invoices", headers=auth_headers_other)
    assert other.json()["invoices"] == []
    assert other.headers["content-range"].endswith("/0")

    forbidden = await test_client.get(f"{API_PREFIX}/invoices/{invoice_id}", headers=auth_headers_other)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    missing = await test_client.get(f"{API_PREFIX}/invoices/9999", headers=auth_headers_admin)
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_download_invoice_pdf(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    auth_headers_other: Dict[str, str],
    delivered_order: Dict[str, Any],
):
    created = await _generate(test_client, auth_headers_admin, delivered_order["id"])
    invoice = created.json()["invoice"]

    response = await test_client.get(f"{API_PREFIX}/invoices/{invoice['id']}/download", headers=auth_headers_client)
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "application/pdf"
    assert f'filename="facture-{invoice["invoice_number"]}.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF-mock " + invoice["invoice_number"].encode())

    forbidden = await test_client.get(f"{API_PREFIX}/invoices/{invoice['id']}/download", headers=auth_headers_other)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN


async def test_send_invoice_notifies_shop_owner(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    delivered_order: Dict[str, Any],
):
    created = await _generate(test_client, auth_headers_admin, delivered_order["id"])
    invoice_id = created.json()["invoice"]["id"]

    by_client = await test_client.post(f"{API_PREFIX}/invoices/{invoice_id}/send", headers=auth_headers_client)
    assert by_client.status_code == status.HTTP_403_FORBIDDEN

    sent = await test_client.post(f"{API_PREFIX}/invoices/{invoice_id}/send", headers=auth_headers_admin)
    assert sent.status_code == status.HTTP_200_OK, sent.text
    assert sent.json()["invoice"]["sent_at"] is not None

    notifications = await test_client.get(f"{API_PREFIX}/notifications", headers=auth_headers_client)
    sent_notifications = [n for n in notifications.json()["notifications"] if n["type"] == "INVOICE_SENT"]
    assert len(sent_notifications) == 1
    assert sent_notifications[0]["link"] == f"/invoices/{invoice_id}"
