"""
Tests d'intégration des retours: demande multipart, approbation avec avoir, refus,
remboursement et statistiques.
"""
import json
import os
from decimal import Decimal
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.config import settings
from primeur.products.models import Product
from primeur.returns.models import CreditNote
from primeur.returns.storage import PhotoUpload, validate_photo
from primeur.returns.exceptions import InvalidReturnException

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture(scope="function")
async def client_order(
    test_client: AsyncClient, auth_headers_client: Dict[str, str], test_product: Product
) -> Dict[str, Any]:
    response = await test_client.post(
        f"{API_PREFIX}/orders",
        json={"items": [{"product_id": test_product.id, "quantity": "5"}]},
        headers=auth_headers_client,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["order"]


def _items(product: Product) -> List[Dict[str, Any]]:
    return [{"product_id": product.id, "product_name": product.name, "quantity": "2", "unit_price": "10.00"}]


async def _create_return(
    test_client: AsyncClient, headers: Dict[str, str], order: Dict[str, Any], product: Product, **kwargs
):
    return await test_client.post(
        f"{API_PREFIX}/returns",
        data={"order_id": str(order["id"]), "reason": "Produit abîmé", "items": json.dumps(_items(product))},
        headers=headers,
        **kwargs,
    )


def test_validate_photo_rejects_other_types():
    with pytest.raises(InvalidReturnException):
        validate_photo(PhotoUpload("facture.pdf", "application/pdf", b"%PDF"))
    validate_photo(PhotoUpload("cagette.jpg", "image/jpeg", b"\xff\xd8\xff"))


async def test_create_return_computes_total_and_notifies_admins(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    auth_headers_admin: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
):
    response = await _create_return(test_client, auth_headers_client, client_order, test_product)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    data = response.json()["return"]

    assert data["return_number"].startswith("RET-")
    assert data["status"] == "PENDING"
    assert data["order_number"] == client_order["order_number"]
    assert Decimal(str(data["total_amount"])) == Decimal("20.00")
    assert Decimal(str(data["items"][0]["total_price"])) == Decimal("20.00")

    notifications = await test_client.get(f"{API_PREFIX}/notifications", headers=auth_headers_admin)
    assert any(n["type"] == "RETURN_CREATED" for n in notifications.json()["notifications"])


async def test_create_return_with_photo(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
    tmp_path,
    monkeypatch: pytest.MonkeyPatch,
):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    response = await _create_return(
        test_client, auth_headers_client, client_order, test_product,
        files={"photo": ("cagette abimee.png", b"\x89PNG\r\n", "image/png")},
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    photo_url = response.json()["return"]["photo_url"]
    assert photo_url.startswith("/uploads/returns/return-")
    assert os.path.exists(os.path.join(tmp_path, "returns", os.path.basename(photo_url)))


async def test_create_return_rejects_invalid_photo(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
    tmp_path,
    monkeypatch: pytest.MonkeyPatch,
):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    response = await _create_return(
        test_client, auth_headers_client, client_order, test_product,
        files={"photo": ("script.sh", b"#!/bin/sh", "text/x-sh")},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert not os.path.exists(os.path.join(tmp_path, "returns"))


async def test_create_return_rejects_photo_over_size_limit(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
    tmp_path,
    monkeypatch: pytest.MonkeyPatch,
):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    oversized = b"\x89PNG\r\n" + b"0" * settings.RETURN_PHOTO_MAX_BYTES
    response = await _create_return(
        test_client, auth_headers_client, client_order, test_product,
        files={"photo": ("cagette.png", oversized, "image/png")},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "La photo ne doit pas dépasser 5 Mo"
    assert not os.path.exists(os.path.join(tmp_path, "returns"))


async def test_create_return_with_invalid_items(
    test_client: AsyncClient, auth_headers_client: Dict[str, str], client_order: Dict[str, Any]
):
    response = await test_client.post(
        f"{API_PREFIX}/returns",
        data={"order_id": str(client_order["id"]), "reason": "Produit abîmé", "items": "pas du json"},
        headers=auth_headers_client,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Liste de produits invalide"


async def test_create_return_on_other_shop_order_is_forbidden(
    test_client: AsyncClient,
    auth_headers_other: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
):
    response = await _create_return(test_client, auth_headers_other, client_order, test_product)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_approve_with_credit_note(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_client: Dict[str, str],
    auth_headers_admin: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
):
    created = await _create_return(test_client, auth_headers_client, client_order, test_product)
    return_id = created.json()["return"]["id"]

    response = await test_client.put(
        f"{API_PREFIX}/returns/{return_id}/approve",
        json={"refund_method": "CREDIT_NOTE", "notes": "Avoir sur prochaine commande"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    data = response.json()["return"]
    assert data["status"] == "APPROVED"
    assert data["refund_method"] == "CREDIT_NOTE"
    assert data["credit_note"]["credit_note_number"].startswith("AV-")
    assert Decimal(str(data["credit_note"]["amount"])) == Decimal("20.00")

    credit_note = await db_session.get(CreditNote, data["credit_note_id"])
    assert credit_note.order_id == client_order["id"]
    assert data["return_number"] in credit_note.reason

    notifications = await test_client.get(f"{API_PREFIX}/notifications", headers=auth_headers_client)
    assert any(n["type"] == "RETURN_APPROVED" for n in notifications.json()["notifications"])

    again = await test_client.put(
        f"{API_PREFIX}/returns/{return_id}/approve", json={"refund_method": "REFUND"}, headers=auth_headers_admin
    )
    assert again.status_code == status.HTTP_400_BAD_REQUEST


async def test_reject_then_refund_is_refused(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    auth_headers_admin: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
):
    created = await _create_return(test_client, auth_headers_client, client_order, test_product)
    return_id = created.json()["return"]["id"]

    rejected = await test_client.put(
        f"{API_PREFIX}/returns/{return_id}/reject", json={"reason": "Hors délai"}, headers=auth_headers_admin
    )
    assert rejected.status_code == status.HTTP_200_OK
    assert rejected.json()["return"]["status"] == "REJECTED"
    assert rejected.json()["return"]["notes"] == "Hors délai"

    refund = await test_client.put(f"{API_PREFIX}/returns/{return_id}/refund", headers=auth_headers_admin)
    assert refund.status_code == status.HTTP_400_BAD_REQUEST


async def test_refund_after_approval(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    auth_headers_admin: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
):
    created = await _create_return(test_client, auth_headers_client, client_order, test_product)
    return_id = created.json()["return"]["id"]
    await test_client.put(
        f"{API_PREFIX}/returns/{return_id}/approve", json={"refund_method": "REFUND"}, headers=auth_headers_admin
    )

    refund = await test_client.put(f"{API_PREFIX}/returns/{return_id}/refund", headers=auth_headers_admin)
    assert refund.status_code == status.HTTP_200_OK
    assert refund.json()["return"]["status"] == "REFUNDED"
    assert refund.json()["return"]["credit_note"] is None


async def test_client_cannot_approve(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
):
    created = await _create_return(test_client, auth_headers_client, client_order, test_product)
    response = await test_client.put(
        f"{API_PREFIX}/returns/{created.json()['return']['id']}/approve",
        json={"refund_method": "REFUND"},
        headers=auth_headers_client,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_list_is_scoped_and_stats_are_admin_only(
    test_client: AsyncClient,
    auth_headers_client: Dict[str, str],
    auth_headers_other: Dict[str, str],
    auth_headers_admin: Dict[str, str],
    client_order: Dict[str, Any],
    test_product: Product,
):
    first = await _create_return(test_client, auth_headers_client, client_order, test_product)
    await _create_return(test_client, auth_headers_client, client_order, test_product)
    await test_client.put(
        f"{API_PREFIX}/returns/{first.json()['return']['id']}/reject", json={"reason": "Non conforme"},
        headers=auth_headers_admin,
    )

    own = await test_client.get(f"{API_PREFIX}/returns", headers=auth_headers_client)
    assert len(own.json()["returns"]) == 2
    other = await test_client.get(f"{API_PREFIX}/returns", headers=auth_headers_other)
    assert other.json()["returns"] == []

    pending = await test_client.get(f"{API_PREFIX}/returns", params={"status": "PENDING"}, headers=auth_headers_admin)
    assert len(pending.json()["returns"]) == 1

    forbidden = await test_client.get(f"{API_PREFIX}/returns/stats", headers=auth_headers_client)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    stats = await test_client.get(f"{API_PREFIX}/returns/stats", headers=auth_headers_admin)
    assert stats.status_code == status.HTTP_200_OK
    data = stats.json()["stats"]
    assert data["total"] == 2
    assert data["pending"] == 1
    assert data["rejected"] == 1
    assert data["by_reason"] == {"Produit abîmé": 2}
