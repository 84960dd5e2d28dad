"""
Tests d'intégration des notifications: lecture, compteur de non lues et périmètre utilisateur.
"""
from typing import List

import pytest
import pytest_asyncio
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.config import settings
from primeur.notifications.models import Notification, NotificationType
from primeur.users.models import User

API_PREFIX = settings.API_V1_PREFIX

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture(scope="function")
async def client_notifications(db_session: AsyncSession, client_user: User) -> List[Notification]:
    notifications = [
        Notification(user_id=client_user.id, type=NotificationType.SYSTEM.value, title=f"Info {i}", message="Message")
        for i in range(3)
    ]
    db_session.add_all(notifications)
    await db_session.commit()
    for notification in notifications:
        await db_session.refresh(notification)
    return notifications


async def test_list_and_unread_count(
    test_client: AsyncClient, auth_headers_client: dict[str, str], client_notifications: List[Notification]
):
    response = await test_client.get(f"{API_PREFIX}/notifications", headers=auth_headers_client)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data["notifications"]) == 3
    assert data["unread_count"] == 3
    assert data["pagination"]["total"] == 3

    count = await test_client.get(f"{API_PREFIX}/notifications/unread-count", headers=auth_headers_client)
    assert count.json()["count"] == 3


async def test_mark_one_then_all_as_read(
    test_client: AsyncClient, auth_headers_client: dict[str, str], client_notifications: List[Notification]
):
    first = client_notifications[0]
    response = await test_client.put(f"{API_PREFIX}/notifications/{first.id}/read", headers=auth_headers_client)
    assert response.status_code == status.HTTP_200_OK

    unread = await test_client.get(f"{API_PREFIX}/notifications", params={"read": "false"}, headers=auth_headers_client)
    assert len(unread.json()["notifications"]) == 2

    read_all = await test_client.put(f"{API_PREFIX}/notifications/read-all", headers=auth_headers_client)
    assert read_all.json()["count"] == 2

    count = await test_client.get(f"{API_PREFIX}/notifications/unread-count", headers=auth_headers_client)
    assert count.json()["count"] == 0


async def test_other_user_cannot_touch_notification(
    test_client: AsyncClient,
    auth_headers_other: dict[str, str],
    client_notifications: List[Notification],
):
    target = client_notifications[0]
    read = await test_client.put(f"{API_PREFIX}/notifications/{target.id}/read", headers=auth_headers_other)
    assert read.status_code == status.HTTP_404_NOT_FOUND
    deleted = await test_client.delete(f"{API_PREFIX}/notifications/{target.id}", headers=auth_headers_other)
    assert deleted.status_code == status.HTTP_404_NOT_FOUND


async def test_delete_notification(
    test_client: AsyncClient, auth_headers_client: dict[str, str], client_notifications: List[Notification]
):
    response = await test_client.delete(
        f"{API_PREFIX}/notifications/{client_notifications[0].id}", headers=auth_headers_client
    )
    assert response.status_code == status.HTTP_200_OK

    listing = await test_client.get(f"{API_PREFIX}/notifications", headers=auth_headers_client)
    assert listing.json()["pagination"]["total"] == 2


async def test_notifications_require_authentication(test_client: AsyncClient):
    response = await test_client.get(f"{API_PREFIX}/notifications")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
