"""
Tests des endpoints d'administration de la sécurité: statistiques et journal d'audit.
"""
from datetime import datetime, timedelta

import pytest
from fastapi import status
from httpx import AsyncClient

from primeur.admin.service import SecurityService
from primeur.config import settings
from primeur.core.utils import utcnow

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


class FakeSecurityRepository:

    def __init__(self, summaries):
        self.summaries = summaries

    async def count_logs(self, since=None):
        if since is None:
            return len(self.summaries)
        return sum(1 for _, _, created_at in self.summaries if created_at >= since)

    async def count_active_users(self):
        return 4

    async def get_log_summaries(self, since):
        return [s for s in self.summaries if s[2] >= since]


async def test_stats_group_by_action_entity_and_day():
    now = datetime(2024, 5, 10, 15, 0)
    repository = FakeSecurityRepository([
        ("CREATE", "Order", now - timedelta(hours=1)),
        ("UPDATE", "Order", now - timedelta(days=1)),
        ("CREATE", "Quote", now - timedelta(days=2)),
        ("CREATE", "Quote", now - timedelta(days=30)),
    ])
    stats = await SecurityService(repository).get_stats(now=now)

    assert stats.total_logs == 4
    assert stats.today_logs == 1
    assert stats.active_users == 4
    assert stats.by_action == {"CREATE": 2, "UPDATE": 1}
    assert stats.by_entity == {"Order": 2, "Quote": 1}
    assert list(stats.by_day) == ["2024-05-08", "2024-05-09", "2024-05-10"]


async def test_mutations_appear_in_audit_log(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    created = await test_client.post(f"{API_PREFIX}/categories", json={"name": "Légumes"}, headers=auth_headers_admin)
    category_id = created.json()["category"]["id"]

    response = await test_client.get(
        f"{API_PREFIX}/admin/security/logs", params={"entity": "Category"}, headers=auth_headers_admin
    )
    assert response.status_code == status.HTTP_200_OK
    logs = response.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["action"] == "CREATE"
    assert logs[0]["entity_id"] == str(category_id)
    assert response.headers["content-range"] == "logs 0-0/1"


async def test_audit_log_date_filter(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    await test_client.post(f"{API_PREFIX}/categories", json={"name": "Herbes"}, headers=auth_headers_admin)

    future = (utcnow() + timedelta(days=1)).isoformat()
    response = await test_client.get(
        f"{API_PREFIX}/admin/security/logs", params={"start_date": future}, headers=auth_headers_admin
    )
    assert response.json()["pagination"]["total"] == 0


async def test_security_stats_endpoint(test_client: AsyncClient, auth_headers_admin: dict[str, str]):
    await test_client.post(f"{API_PREFIX}/categories", json={"name": "Agrumes"}, headers=auth_headers_admin)

    response = await test_client.get(f"{API_PREFIX}/admin/security/stats", headers=auth_headers_admin)
    assert response.status_code == status.HTTP_200_OK
    stats = response.json()["stats"]
    assert stats["total_logs"] >= 1
    assert stats["by_entity"]["Category"] == 1
    assert stats["active_users"] >= 1


async def test_security_routes_are_admin_only(test_client: AsyncClient, auth_headers_client: dict[str, str]):
    response = await test_client.get(f"{API_PREFIX}/admin/security/logs", headers=auth_headers_client)
    assert response.status_code == status.HTTP_403_FORBIDDEN
