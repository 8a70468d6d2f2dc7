"""Web Push notification service using pywebpush.

Sends VAPID-signed payloads to every endpoint a user registered and prunes
endpoints the push service reports as gone.
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from pywebpush import WebPushException, webpush
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings

from .models import PushSubscription

logger = logging.getLogger(__name__)


class PushDeliveryError(Exception):
    """A push service refused a message."""

    # Endpoint expired or unsubscribed
    PERMANENT_STATUS_CODES = (404, 410)

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_permanent(self) -> bool:
        return self.status_code in self.PERMANENT_STATUS_CODES


@dataclass
class FanOutResult:
    """Outcome of sending one payload to all endpoints of a user."""

    sent: int = 0
    failed: int = 0
    pruned: list[UUID] = field(default_factory=list)


def get_push_status() -> dict:
    """Get Web Push configuration status for debugging."""
    return {
        "push_configured": settings.push_enabled,
        "vapid_public_key": settings.VAPID_PUBLIC_KEY or None,
        "vapid_subject": settings.VAPID_SUBJECT,
    }


async def send_web_push(subscription: PushSubscription, payload: dict[str, Any]) -> None:
    """Send one payload to one endpoint.

    Raises:
        PushDeliveryError: when the push service rejects the message
    """
    subscription_info = {
        "endpoint": subscription.endpoint,
        "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
    }
    try:
        await asyncio.to_thread(
            webpush,
            subscription_info=subscription_info,
            data=json.dumps(payload),
            vapid_private_key=settings.VAPID_PRIVATE_KEY,
            vapid_claims={"sub": settings.VAPID_SUBJECT},
            ttl=settings.PUSH_TTL_SECONDS,
            # High urgency so reminders arrive on mobile even when the screen is off
            headers={"Urgency": "high"},
        )
    except WebPushException as e:
        status_code = e.response.status_code if e.response is not None else None
        raise PushDeliveryError(str(e), status_code=status_code) from e


async def fan_out(
    db: AsyncSession,
    user_id: UUID,
    payload: dict[str, Any],
) -> FanOutResult:
    """Send a payload to all registered push endpoints of a user.

    Endpoints reported as gone (404/410) are deleted; that is the only change
    made to the registry here. Other failures are logged and not retried.

    Args:
        db: Database session
        user_id: User ID to send the notification to
        payload: JSON-serializable payload, e.g. {"title", "body", "url"}

    Returns:
        FanOutResult with sent / failed counts and pruned subscription ids
    """
    result = FanOutResult()

    if not settings.push_enabled:
        logger.warning(f"🔔 [PUSH] ❌ VAPID keys not configured. Skipping push for user {user_id}")
        return result

    query = select(PushSubscription).where(PushSubscription.user_id == user_id)
    rows = await db.execute(query)
    subscriptions = list(rows.scalars().all())

    if not subscriptions:
        logger.info(f"🔔 [PUSH] No push subscriptions for user {user_id}")
        return result

    logger.info(f"🔔 [PUSH] Sending '{payload.get('title')}' to {len(subscriptions)} endpoint(s) of user {user_id}")

    gone: list[PushSubscription] = []

    for subscription in subscriptions:
        try:
            await send_web_push(subscription, payload)
            result.sent += 1

        except PushDeliveryError as e:
            result.failed += 1
            if e.is_permanent:
                logger.warning(f"🔔 [PUSH] Endpoint gone ({e.status_code}), removing: {subscription.endpoint[:50]}...")
                gone.append(subscription)
            else:
                logger.error(f"🔔 [PUSH] ❌ Push rejected ({e.status_code}) for user {user_id}: {e}")

        except Exception as e:
            result.failed += 1
            logger.error(f"🔔 [PUSH] ❌ Failed to send push notification to user {user_id}: {e}")

    for subscription in gone:
        result.pruned.append(subscription.id)
        await db.delete(subscription)

    if gone:
        await db.commit()

    logger.info(f"🔔 [PUSH] Completed: {result.sent}/{len(subscriptions)} sent for user {user_id}")
    return result
