"""
Tests des codes promo: fenêtre de validité, plafond de remise et limite d'utilisation.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.config import settings
from primeur.core.utils import utcnow
from primeur.promotions.models import Promotion, PromotionType
from primeur.promotions.service import compute_discount

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


async def _add_promotion(db_session: AsyncSession, **overrides) -> Promotion:
    now = utcnow()
    values = dict(
        code="PRINTEMPS",
        name="Printemps",
        type=PromotionType.PERCENTAGE.value,
        value=Decimal("20"),
        max_discount=Decimal("5.00"),
        valid_from=now - timedelta(days=1),
        valid_to=now + timedelta(days=30),
    )
    values.update(overrides)
    promotion = Promotion(**values)
    db_session.add(promotion)
    await db_session.commit()
    await db_session.refresh(promotion)
    return promotion


@pytest_asyncio.fixture(scope="function")
async def spring_promotion(db_session: AsyncSession) -> Promotion:
    return await _add_promotion(db_session)


def test_compute_discount_fixed_amount_never_exceeds_order():
    promotion = Promotion(
        code="FIX", name="Fixe", type=PromotionType.FIXED_AMOUNT.value, value=Decimal("15"),
        valid_from=utcnow(), valid_to=utcnow() + timedelta(days=1),
    )
    assert compute_discount(promotion, Decimal("10.00")) == Decimal("10.00")
    assert compute_discount(promotion, Decimal("40.00")) == Decimal("15.00")


async def test_percentage_discount_is_capped(
    test_client: AsyncClient, auth_headers_client: dict[str, str], spring_promotion: Promotion
):
    response = await test_client.get(
        f"{API_PREFIX}/promotions/{spring_promotion.code}/validate",
        params={"order_amount": "100"},
        headers=auth_headers_client,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["promotion"]["discount"] == "5.00"


async def test_validate_is_case_insensitive_and_does_not_consume(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_client: dict[str, str],
    spring_promotion: Promotion,
):
    response = await test_client.get(
        f"{API_PREFIX}/promotions/printemps/validate", params={"order_amount": "10"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["promotion"]["discount"] == "2.00"

    refreshed = await db_session.get(Promotion, spring_promotion.id, populate_existing=True)
    assert refreshed.usage_count == 0


async def test_expired_promotion_is_rejected(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_client: dict[str, str]
):
    now = utcnow()
    await _add_promotion(
        db_session, code="HIVER", valid_from=now - timedelta(days=60), valid_to=now - timedelta(days=1)
    )
    response = await test_client.get(
        f"{API_PREFIX}/promotions/HIVER/validate", params={"order_amount": "100"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False


async def test_inactive_promotion_is_rejected(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_client: dict[str, str]
):
    await _add_promotion(db_session, code="SUSPENDUE", is_active=False)
    response = await test_client.get(
        f"{API_PREFIX}/promotions/SUSPENDUE/validate", params={"order_amount": "100"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Cette promotion n'est plus active"


async def test_promotion_not_yet_started_is_rejected(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_client: dict[str, str]
):
    now = utcnow()
    await _add_promotion(
        db_session, code="BIENTOT", valid_from=now + timedelta(days=2), valid_to=now + timedelta(days=30)
    )
    response = await test_client.get(
        f"{API_PREFIX}/promotions/BIENTOT/validate", params={"order_amount": "100"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Cette promotion n'est plus valide"


async def test_usage_limit_reached_is_rejected(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_client: dict[str, str]
):
    await _add_promotion(db_session, code="UNIQUE", usage_limit=1, usage_count=1)
    response = await test_client.get(
        f"{API_PREFIX}/promotions/UNIQUE/validate", params={"order_amount": "100"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_minimum_amount_is_enforced(
    test_client: AsyncClient, db_session: AsyncSession, auth_headers_client: dict[str, str]
):
    await _add_promotion(db_session, code="GROS", min_amount=Decimal("50.00"))
    response = await test_client.get(
        f"{API_PREFIX}/promotions/GROS/validate", params={"order_amount": "20"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_unknown_code_returns_404(test_client: AsyncClient, auth_headers_client: dict[str, str]):
    response = await test_client.get(
        f"{API_PREFIX}/promotions/INCONNU/validate", params={"order_amount": "100"}, headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_create_promotion_uppercases_code_and_refuses_duplicates(
    test_client: AsyncClient, auth_headers_admin: dict[str, str]
):
    now = utcnow()
    payload = {
        "code": "ete24",
        "name": "Été",
        "type": "FIXED_AMOUNT",
        "value": "5",
        "valid_from": now.isoformat(),
        "valid_to": (now + timedelta(days=10)).isoformat(),
    }
    created = await test_client.post(f"{API_PREFIX}/promotions", json=payload, headers=auth_headers_admin)
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["promotion"]["code"] == "ETE24"

    duplicate = await test_client.post(f"{API_PREFIX}/promotions", json=payload, headers=auth_headers_admin)
    assert duplicate.status_code == status.HTTP_400_BAD_REQUEST


async def test_create_promotion_with_inverted_window_is_invalid(
    test_client: AsyncClient, auth_headers_admin: dict[str, str]
):
    now = utcnow()
    response = await test_client.post(
        f"{API_PREFIX}/promotions",
        json={
            "code": "ENVERS",
            "name": "Envers",
            "type": "PERCENTAGE",
            "value": "10",
            "valid_from": now.isoformat(),
            "valid_to": (now - timedelta(days=1)).isoformat(),
        },
        headers=auth_headers_admin,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
