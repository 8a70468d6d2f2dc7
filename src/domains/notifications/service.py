"""Notification history and push subscription service functions."""
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Notification, PushSubscription
from .schemas import NotificationCreate, PushSubscriptionRequest


async def create_notification(
    db: AsyncSession,
    notification_data: NotificationCreate,
) -> Notification:
    """Create a new notification (internal use by other services)."""
    notification = Notification(
        user_id=notification_data.user_id,
        notification_type=notification_data.notification_type,
        title=notification_data.title,
        body=notification_data.body,
        url=notification_data.url,
        reference_id=notification_data.reference_id,
    )

    db.add(notification)
    await db.commit()
    await db.refresh(notification)

    return notification


async def upsert_push_subscription(
    db: AsyncSession,
    user_id: UUID,
    request: PushSubscriptionRequest,
) -> PushSubscription:
    """Register a push endpoint, refreshing its keys if already registered."""
    query = select(PushSubscription).where(
        and_(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == request.endpoint,
        )
    )
    result = await db.execute(query)
    subscription = result.scalar_one_or_none()

    if subscription:
        subscription.p256dh = request.keys.p256dh
        subscription.auth = request.keys.auth
        subscription.user_agent = request.user_agent
    else:
        subscription = PushSubscription(
            user_id=user_id,
            endpoint=request.endpoint,
            p256dh=request.keys.p256dh,
            auth=request.keys.auth,
            user_agent=request.user_agent,
        )
        db.add(subscription)

    await db.commit()
    await db.refresh(subscription)
    return subscription


async def list_push_subscriptions(db: AsyncSession, user_id: UUID) -> list[PushSubscription]:
    """All push endpoints registered by a user, oldest first."""
    query = (
        select(PushSubscription)
        .where(PushSubscription.user_id == user_id)
        .order_by(PushSubscription.created_at)
    )
    result = await db.execute(query)
    return list(result.scalars().all())
