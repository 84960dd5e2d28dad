"""
Tests d'intégration du cycle de vie des devis: prix figés, envoi, réponse du client,
conversion en commande et téléchargement PDF.
"""
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from primeur.config import settings
from primeur.core.utils import utcnow
from primeur.orders.models import Order
from primeur.products.models import Product
from primeur.quotes.models import Quote
from primeur.shops.models import Shop

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


async def _create_quote(
    test_client: AsyncClient, headers: Dict[str, str], shop: Shop, product: Product, notes: str = "Livraison mardi"
) -> Dict[str, Any]:
    response = await test_client.post(
        f"{API_PREFIX}/quotes",
        json={
            "shop_id": shop.id,
            "items": [{"product_id": product.id, "quantity": "2"}],
            "valid_until": (utcnow() + timedelta(days=15)).isoformat(),
            "notes": notes,
        },
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["quote"]


async def _accepted_quote(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    shop: Shop,
    product: Product,
) -> Dict[str, Any]:
    quote = await _create_quote(test_client, auth_headers_admin, shop, product)
    sent = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/send", headers=auth_headers_admin)
    assert sent.status_code == status.HTTP_200_OK
    accepted = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/accept", headers=auth_headers_client)
    assert accepted.status_code == status.HTTP_200_OK
    return accepted.json()["quote"]


async def test_create_quote_freezes_prices_and_totals(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)

    assert quote["quote_number"].startswith("DEV-")
    assert quote["status"] == "DRAFT"
    assert Decimal(str(quote["total_ht"])) == Decimal("20.00")
    assert Decimal(str(quote["total_tva"])) == Decimal("1.10")
    assert Decimal(str(quote["total_ttc"])) == Decimal("21.10")
    assert quote["items"][0]["product_name"] == "Pommes"


async def test_quote_snapshot_survives_price_change(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _accepted_quote(test_client, auth_headers_admin, auth_headers_client, client_shop, test_product)

    changed = await test_client.put(
        f"{API_PREFIX}/products/{test_product.id}", json={"price_ht": "12.00"}, headers=auth_headers_admin
    )
    assert changed.status_code == status.HTTP_200_OK

    detail = await test_client.get(f"{API_PREFIX}/quotes/{quote['id']}", headers=auth_headers_admin)
    assert Decimal(str(detail.json()["quote"]["items"][0]["price_ht"])) == Decimal("10.00")

    converted = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/convert", headers=auth_headers_admin)
    assert converted.status_code == status.HTTP_200_OK
    order = converted.json()["order"]
    assert Decimal(str(order["total_ttc"])) == Decimal("21.10")
    assert Decimal(str(order["items"][0]["price_ht"])) == Decimal("10.00")
    assert converted.json()["quote"]["converted_to_order_id"] == order["id"]


async def test_convert_twice_creates_a_single_order(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _accepted_quote(test_client, auth_headers_admin, auth_headers_client, client_shop, test_product)

    first = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/convert", headers=auth_headers_admin)
    assert first.status_code == status.HTTP_200_OK

    second = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/convert", headers=auth_headers_admin)
    assert second.status_code == status.HTTP_400_BAD_REQUEST
    assert second.json()["message"] == "Ce devis a déjà été converti en commande"

    count = (await db_session.execute(select(func.count()).select_from(Order).where(Order.quote_id == quote["id"]))).scalar_one()
    assert count == 1


async def test_convert_expired_quote_keeps_status(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _accepted_quote(test_client, auth_headers_admin, auth_headers_client, client_shop, test_product)

    stored = await db_session.get(Quote, quote["id"], populate_existing=True)
    stored.valid_until = utcnow() - timedelta(days=1)
    db_session.add(stored)
    await db_session.commit()

    response = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/convert", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Ce devis a expiré"

    stored = await db_session.get(Quote, quote["id"], populate_existing=True)
    assert stored.status == "ACCEPTED"
    assert stored.converted_to_order_id is None


async def test_convert_requires_accepted_quote(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], client_shop: Shop, test_product: Product
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)
    response = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/convert", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_accepting_expired_quote_marks_it_expired(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)
    await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/send", headers=auth_headers_admin)

    stored = await db_session.get(Quote, quote["id"], populate_existing=True)
    stored.valid_until = utcnow() - timedelta(hours=1)
    db_session.add(stored)
    await db_session.commit()

    response = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/accept", headers=auth_headers_client)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    stored = await db_session.get(Quote, quote["id"], populate_existing=True)
    assert stored.status == "EXPIRED"


async def test_client_cannot_respond_to_other_shop_quote(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_other: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)
    await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/send", headers=auth_headers_admin)

    read = await test_client.get(f"{API_PREFIX}/quotes/{quote['id']}", headers=auth_headers_other)
    assert read.status_code == status.HTTP_403_FORBIDDEN
    rejected = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/reject", headers=auth_headers_other)
    assert rejected.status_code == status.HTTP_403_FORBIDDEN


async def test_reject_sent_quote(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)
    await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/send", headers=auth_headers_admin)

    response = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/reject", headers=auth_headers_client)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["quote"]["status"] == "REJECTED"
    assert response.json()["quote"]["responded_at"] is not None


async def test_send_notifies_shop_owner(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)
    await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/send", headers=auth_headers_admin)

    notifications = await test_client.get(f"{API_PREFIX}/notifications", headers=auth_headers_client)
    assert notifications.status_code == status.HTTP_200_OK
    assert any(n["type"] == "QUOTE_SENT" for n in notifications.json()["notifications"])


async def test_download_quote_pdf(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], client_shop: Shop, test_product: Product
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)

    response = await test_client.get(f"{API_PREFIX}/quotes/{quote['id']}/download", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "application/pdf"
    assert quote["quote_number"] in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF-mock")


async def test_download_quote_pdf_failure_returns_500(
    test_client: AsyncClient, auth_headers_admin: Dict[str, str], client_shop: Shop, test_product: Product
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product, notes="fail_pdf")

    response = await test_client.get(f"{API_PREFIX}/quotes/{quote['id']}/download", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


async def test_delete_converted_quote_is_refused(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _accepted_quote(test_client, auth_headers_admin, auth_headers_client, client_shop, test_product)
    await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/convert", headers=auth_headers_admin)

    response = await test_client.delete(f"{API_PREFIX}/quotes/{quote['id']}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_update_quote_replaces_items_and_recomputes_totals(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    client_shop: Shop,
    test_products: list[Product],
):
    pommes, poires, _ = test_products
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, pommes)

    response = await test_client.put(
        f"{API_PREFIX}/quotes/{quote['id']}",
        json={"items": [{"product_id": poires.id, "quantity": "2"}], "notes": "Poires uniquement"},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    updated = response.json()["quote"]
    assert [i["product_name"] for i in updated["items"]] == ["Poires"]
    assert Decimal(str(updated["total_ht"])) == Decimal("10.00")
    assert Decimal(str(updated["total_tva"])) == Decimal("0.55")
    assert Decimal(str(updated["total_ttc"])) == Decimal("10.55")
    assert updated["notes"] == "Poires uniquement"

    detail = await test_client.get(f"{API_PREFIX}/quotes/{quote['id']}", headers=auth_headers_admin)
    assert len(detail.json()["quote"]["items"]) == 1


async def test_update_converted_quote_is_refused(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _accepted_quote(test_client, auth_headers_admin, auth_headers_client, client_shop, test_product)
    converted = await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/convert", headers=auth_headers_admin)
    assert converted.status_code == status.HTTP_200_OK

    response = await test_client.put(
        f"{API_PREFIX}/quotes/{quote['id']}",
        json={"items": [{"product_id": test_product.id, "quantity": "5"}]},
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Impossible de modifier un devis déjà converti en commande"


async def test_admin_accepting_expired_quote_marks_it_expired(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    quote = await _create_quote(test_client, auth_headers_admin, client_shop, test_product)
    await test_client.post(f"{API_PREFIX}/quotes/{quote['id']}/send", headers=auth_headers_admin)

    stored = await db_session.get(Quote, quote["id"], populate_existing=True)
    stored.valid_until = utcnow() - timedelta(hours=1)
    db_session.add(stored)
    await db_session.commit()

    response = await test_client.put(
        f"{API_PREFIX}/quotes/{quote['id']}", json={"status": "ACCEPTED"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Ce devis a expiré"

    stored = await db_session.get(Quote, quote["id"], populate_existing=True)
    assert stored.status == "EXPIRED"
    assert stored.responded_at is not None


async def test_list_quotes_reports_total(
    test_client: AsyncClient,
    auth_headers_admin: Dict[str, str],
    auth_headers_client: Dict[str, str],
    auth_headers_other: Dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    await _create_quote(test_client, auth_headers_admin, client_shop, test_product)

    admin_list = await test_client.get(f"{API_PREFIX}/quotes", headers=auth_headers_admin)
    assert admin_list.json()["pagination"]["total"] == 1
    assert admin_list.headers["content-range"] == "quotes 0-0/1"

    own = await test_client.get(f"{API_PREFIX}/quotes", headers=auth_headers_client)
    assert own.json()["pagination"]["total"] == 1

    other = await test_client.get(f"{API_PREFIX}/quotes", headers=auth_headers_other)
    assert other.json()["pagination"]["total"] == 0
    assert other.json()["quotes"] == []
