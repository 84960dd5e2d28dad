"""
Tests d'intégration des magasins: création combinée du compte, unicité de l'email et suppression.
"""
from datetime import timedelta

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from primeur.config import settings
from primeur.core.utils import utcnow
from primeur.notifications.models import Notification
from primeur.pricing.models import ClientPricing
from primeur.products.models import Product
from primeur.shops.models import Shop
from primeur.users.models import User

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio

SHOP_PAYLOAD = {
    "shop_name": "Au Panier Frais",
    "address": "12 avenue Jean Jaurès",
    "city": "Grenoble",
    "postal_code": "38000",
    "user_name": "Paul Durand",
    "email": "paul@panier-frais.fr",
    "password": "secret123",
}


async def test_create_shop_creates_client_account(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    response = await test_client.post(f"{API_PREFIX}/shops", json=SHOP_PAYLOAD, headers=auth_headers_admin)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    shop = response.json()["shop"]
    assert shop["name"] == "Au Panier Frais"
    assert shop["user"]["email"] == "paul@panier-frais.fr"

    login = await test_client.post(
        f"{API_PREFIX}/auth/token", data={"username": "paul@panier-frais.fr", "password": "secret123"}
    )
    assert login.status_code == status.HTTP_200_OK
    token = login.json()["access_token"]

    me = await test_client.get(f"{API_PREFIX}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["role"] == "CLIENT"


async def test_create_shop_with_taken_email(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], client_shop: Shop
):
    response = await test_client.post(
        f"{API_PREFIX}/shops", json={**SHOP_PAYLOAD, "email": "client@example.com"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Cet email est déjà utilisé"


async def test_invalid_postal_code_is_rejected(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    response = await test_client.post(
        f"{API_PREFIX}/shops", json={**SHOP_PAYLOAD, "postal_code": "380"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Données invalides"


async def test_shops_are_admin_only(test_client: AsyncClient, auth_headers_client: dict[str, str]):
    response = await test_client.get(f"{API_PREFIX}/shops", headers=auth_headers_client)
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_delete_shop_with_orders_is_refused(
    test_client: AsyncClient,
    auth_headers_admin: dict[str, str],
    auth_headers_client: dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    await test_client.post(
        f"{API_PREFIX}/orders",
        json={"items": [{"product_id": test_product.id, "quantity": "1"}]},
        headers=auth_headers_client,
    )
    response = await test_client.delete(f"{API_PREFIX}/shops/{client_shop.id}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    detail = await test_client.get(f"{API_PREFIX}/shops/{client_shop.id}", headers=auth_headers_admin)
    assert detail.json()["shop"]["orders_count"] == 1
    assert len(detail.json()["shop"]["orders"]) == 1


async def test_delete_shop_removes_owner_account(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    created = await test_client.post(f"{API_PREFIX}/shops", json=SHOP_PAYLOAD, headers=auth_headers_admin)
    shop_id = created.json()["shop"]["id"]

    response = await test_client.delete(f"{API_PREFIX}/shops/{shop_id}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_200_OK

    login = await test_client.post(
        f"{API_PREFIX}/auth/token", data={"username": SHOP_PAYLOAD["email"], "password": SHOP_PAYLOAD["password"]}
    )
    assert login.status_code == status.HTTP_401_UNAUTHORIZED

    missing = await test_client.get(f"{API_PREFIX}/shops/{shop_id}", headers=auth_headers_admin)
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_delete_shop_with_quote_is_refused(
    test_client: AsyncClient,
    auth_headers_admin: dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    shop_id = client_shop.id
    quote = await test_client.post(
        f"{API_PREFIX}/quotes",
        json={
            "shop_id": shop_id,
            "items": [{"product_id": test_product.id, "quantity": "2"}],
            "valid_until": (utcnow() + timedelta(days=15)).isoformat(),
        },
        headers=auth_headers_admin,
    )
    assert quote.status_code == status.HTTP_201_CREATED, quote.text

    response = await test_client.delete(f"{API_PREFIX}/shops/{shop_id}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == (
        "Impossible de supprimer un magasin avec des devis ou des retours. Désactivez-le plutôt."
    )

    still_there = await test_client.get(f"{API_PREFIX}/shops/{shop_id}", headers=auth_headers_admin)
    assert still_there.status_code == status.HTTP_200_OK


async def test_delete_shop_removes_client_prices_and_notifications(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: dict[str, str],
    client_user: User,
    client_shop: Shop,
    test_product: Product,
):
    shop_id, owner_id = client_shop.id, client_user.id
    price = await test_client.post(
        f"{API_PREFIX}/prices/client",
        json={"product_id": test_product.id, "user_id": owner_id, "price_ht": "8.00"},
        headers=auth_headers_admin,
    )
    assert price.status_code == status.HTTP_201_CREATED, price.text
    db_session.add(Notification(user_id=owner_id, type="SYSTEM", title="Bienvenue", message="Votre compte est prêt"))
    await db_session.commit()

    response = await test_client.delete(f"{API_PREFIX}/shops/{shop_id}", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_200_OK, response.text

    prices_left = (
        await db_session.execute(select(func.count()).select_from(ClientPricing).where(ClientPricing.user_id == owner_id))
    ).scalar_one()
    notifications_left = (
        await db_session.execute(select(func.count()).select_from(Notification).where(Notification.user_id == owner_id))
    ).scalar_one()
    assert prices_left == 0
    assert notifications_left == 0
    owner = (await db_session.execute(select(User).where(User.id == owner_id))).scalar_one_or_none()
    assert owner is None


async def test_update_with_invalid_postal_code_is_rejected(
    test_client: AsyncClient, auth_headers_admin: dict[str, str], client_shop: Shop
):
    shop_id = client_shop.id
    response = await test_client.put(
        f"{API_PREFIX}/shops/{shop_id}", json={"postal_code": "69-001"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Données invalides"

    accepted = await test_client.put(
        f"{API_PREFIX}/shops/{shop_id}", json={"postal_code": " 69002 "}, headers=auth_headers_admin
    )
    assert accepted.status_code == status.HTTP_200_OK, accepted.text
    assert accepted.json()["shop"]["postal_code"] == "69002"
