"""
Tests de la piste d'audit: écriture après mutation et échec non bloquant.
"""
import json
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import func, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from primeur.audit.models import AuditLog
from primeur.audit.service import AuditTrail
from primeur.categories.models import Category
from primeur.config import settings
from primeur.core.utils import utcnow
from primeur.pricing.models import VolumePricing
from primeur.products.models import Product
from primeur.quotes.models import Quote
from primeur.shops.models import Shop

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


async def _drop_audit_table(db_session: AsyncSession) -> None:
    await db_session.execute(text("DROP TABLE audit_logs"))
    await db_session.commit()


async def test_log_action_persists_entry(db_session: AsyncSession):
    trail = AuditTrail(db_session, ip_address="10.0.0.1", user_agent="pytest")
    await trail.log_action("CREATE", "Category", 7, None, {"name": "Fruits"})

    entries = (await db_session.execute(select(AuditLog))).scalars().all()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.entity_id == "7"
    assert entry.ip_address == "10.0.0.1"
    assert json.loads(entry.changes) == {"name": "Fruits"}


async def test_log_action_failure_keeps_session_objects_loaded(db_session: AsyncSession, test_category: Category):
    category_id = test_category.id
    await _drop_audit_table(db_session)

    await AuditTrail(db_session).log_action("DELETE", "Category", category_id, 1)

    # Aucun objet de la session métier n'a été expiré
    assert test_category.name == "Fruits"
    assert test_category.id == category_id


async def test_mutations_succeed_when_audit_table_is_unavailable(
    test_client: AsyncClient,
    db_session: AsyncSession,
    auth_headers_admin: dict[str, str],
    client_shop: Shop,
    test_product: Product,
):
    shop_id, product_id = client_shop.id, test_product.id
    await _drop_audit_table(db_session)

    created = await test_client.post(
        f"{API_PREFIX}/quotes",
        json={
            "shop_id": shop_id,
            "items": [{"product_id": product_id, "quantity": "2"}],
            "valid_until": (utcnow() + timedelta(days=15)).isoformat(),
        },
        headers=auth_headers_admin,
    )
    assert created.status_code == status.HTTP_201_CREATED, created.text
    assert created.json()["quote"]["quote_number"].startswith("DEV-")

    volume = await test_client.post(
        f"{API_PREFIX}/prices/volume",
        json={"product_id": product_id, "min_quantity": "10", "price_ht": "8.00"},
        headers=auth_headers_admin,
    )
    assert volume.status_code == status.HTTP_201_CREATED, volume.text

    updated = await test_client.put(
        f"{API_PREFIX}/prices/volume/{volume.json()['id']}",
        json={"price_ht": "7.00"},
        headers=auth_headers_admin,
    )
    assert updated.status_code == status.HTTP_200_OK, updated.text
    assert Decimal(str(updated.json()["price_ht"])) == Decimal("7.00")

    quotes_count = (await db_session.execute(select(func.count()).select_from(Quote))).scalar_one()
    assert quotes_count == 1
    stored = (
        await db_session.execute(
            select(VolumePricing).where(VolumePricing.product_id == product_id).execution_options(populate_existing=True)
        )
    ).scalars().one()
    assert Decimal(str(stored.price_ht)) == Decimal("7.00")
