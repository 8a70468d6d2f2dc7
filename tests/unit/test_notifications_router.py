"""Tests for notifications router."""
import uuid
from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.notifications.models import Notification, NotificationType, PushSubscription

BASE = "/api/v1/notifications"


@pytest.fixture
async def user_notifications(db_session: AsyncSession, sample_profile: dict[str, Any]) -> list[Notification]:
    """Create a todo reminder (unread) and a mindset reminder (read)."""
    rows = [
        Notification(
            user_id=sample_profile["id"],
            notification_type=NotificationType.TODO_REMINDER,
            title="Reminder: Leg day",
            body="Task is due at 9:00 AM",
            url="/planner",
        ),
        Notification(
            user_id=sample_profile["id"],
            notification_type=NotificationType.MINDSET_REMINDER,
            title="Daily Mindset Journal",
            body="Take a moment to reflect on your day and gratitude.",
            url="/mindset",
            is_read=True,
        ),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    for row in rows:
        await db_session.refresh(row)
    return rows


def subscription_body(endpoint: str = "https://push.example.com/send/abc123", auth: str = "auth-1") -> dict:
    return {
        "endpoint": endpoint,
        "keys": {"p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA", "auth": auth},
        "user_agent": "Mozilla/5.0",
    }


class TestNotificationHistory:
    """Tests for the notification history endpoints."""

    @pytest.mark.asyncio
    async def test_list_notifications(self, client: AsyncClient, sample_profile, user_notifications):
        """Should list the user's history with counts."""
        response = await client.get(f"{BASE}/users/{sample_profile['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["unread_count"] == 1
        assert {n["notification_type"] for n in data["notifications"]} == {"todo_reminder", "mindset_reminder"}

    @pytest.mark.asyncio
    async def test_list_unread_only(self, client: AsyncClient, sample_profile, user_notifications):
        """Should filter to unread notifications."""
        response = await client.get(f"{BASE}/users/{sample_profile['id']}", params={"unread_only": True})

        data = response.json()
        assert data["total"] == 1
        assert data["notifications"][0]["title"] == "Reminder: Leg day"

    @pytest.mark.asyncio
    async def test_list_by_type(self, client: AsyncClient, sample_profile, user_notifications):
        """Should filter by notification type."""
        response = await client.get(
            f"{BASE}/users/{sample_profile['id']}", params={"notification_type": "mindset_reminder"}
        )

        data = response.json()
        assert data["total"] == 1
        assert data["notifications"][0]["url"] == "/mindset"

    @pytest.mark.asyncio
    async def test_other_users_history_is_empty(self, client: AsyncClient, user_notifications):
        """Should not leak notifications across users."""
        response = await client.get(f"{BASE}/users/{uuid.uuid4()}")

        assert response.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_mark_read(self, client: AsyncClient, db_session, sample_profile, user_notifications):
        """Should mark a single notification as read."""
        unread = user_notifications[0]

        response = await client.post(f"{BASE}/users/{sample_profile['id']}/{unread.id}/read")

        assert response.status_code == 204
        await db_session.refresh(unread)
        assert unread.is_read is True
        assert unread.read_at is not None

    @pytest.mark.asyncio
    async def test_mark_read_wrong_user(self, client: AsyncClient, user_notifications):
        """Should return 404 for another user's notification."""
        response = await client.post(f"{BASE}/users/{uuid.uuid4()}/{user_notifications[0].id}/read")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client: AsyncClient, sample_profile, user_notifications):
        """Should mark every notification as read."""
        response = await client.post(f"{BASE}/users/{sample_profile['id']}/read-all")

        assert response.status_code == 204
        listing = await client.get(f"{BASE}/users/{sample_profile['id']}")
        assert listing.json()["unread_count"] == 0

    @pytest.mark.asyncio
    async def test_clear_history(self, client: AsyncClient, db_session, sample_profile, user_notifications):
        """Should delete the user's history."""
        response = await client.delete(f"{BASE}/users/{sample_profile['id']}")

        assert response.status_code == 204
        result = await db_session.execute(
            select(func.count(Notification.id)).where(Notification.user_id == sample_profile["id"])
        )
        assert result.scalar() == 0


class TestPushSubscriptions:
    """Tests for push subscription registration."""

    @pytest.mark.asyncio
    async def test_register_subscription(self, client: AsyncClient, sample_profile):
        """Should register a browser endpoint."""
        response = await client.post(
            f"{BASE}/users/{sample_profile['id']}/push-subscriptions", json=subscription_body()
        )

        assert response.status_code == 201
        data = response.json()
        assert data["endpoint"] == "https://push.example.com/send/abc123"
        assert data["user_agent"] == "Mozilla/5.0"

    @pytest.mark.asyncio
    async def test_reregister_updates_keys(self, client: AsyncClient, db_session, sample_profile):
        """Should refresh keys instead of duplicating the endpoint."""
        url = f"{BASE}/users/{sample_profile['id']}/push-subscriptions"
        first = await client.post(url, json=subscription_body(auth="auth-1"))
        second = await client.post(url, json=subscription_body(auth="auth-2"))

        assert first.json()["id"] == second.json()["id"]
        result = await db_session.execute(
            select(PushSubscription).where(PushSubscription.user_id == sample_profile["id"])
        )
        subscriptions = list(result.scalars().all())
        assert len(subscriptions) == 1
        await db_session.refresh(subscriptions[0])
        assert subscriptions[0].auth == "auth-2"

    @pytest.mark.asyncio
    async def test_invalid_subscription_rejected(self, client: AsyncClient, sample_profile):
        """Should reject a subscription without keys."""
        response = await client.post(
            f"{BASE}/users/{sample_profile['id']}/push-subscriptions",
            json={"endpoint": "https://push.example.com/send/abc123"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_subscriptions(self, client: AsyncClient, sample_profile):
        """Should list the user's endpoints."""
        url = f"{BASE}/users/{sample_profile['id']}/push-subscriptions"
        await client.post(url, json=subscription_body("https://push.example.com/send/phone"))
        await client.post(url, json=subscription_body("https://push.example.com/send/laptop"))

        response = await client.get(url)

        assert response.status_code == 200
        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_unregister_subscription(self, client: AsyncClient, sample_profile):
        """Should remove an endpoint."""
        url = f"{BASE}/users/{sample_profile['id']}/push-subscriptions"
        created = await client.post(url, json=subscription_body())

        response = await client.delete(f"{url}/{created.json()['id']}")

        assert response.status_code == 204
        assert (await client.get(url)).json() == []

    @pytest.mark.asyncio
    async def test_unregister_unknown_subscription(self, client: AsyncClient, sample_profile):
        """Should return 404 for an unknown endpoint id."""
        response = await client.delete(
            f"{BASE}/users/{sample_profile['id']}/push-subscriptions/{uuid.uuid4()}"
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_push_status(self, client: AsyncClient):
        """Should report whether VAPID keys are configured."""
        response = await client.get(f"{BASE}/push/status")

        assert response.status_code == 200
        assert "push_configured" in response.json()
