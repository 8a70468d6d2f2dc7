"""Notifications router: in-app history and push subscriptions."""
from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.database import get_db

from .models import Notification, NotificationType, PushSubscription
from .push_service import get_push_status
from .schemas import (
    MarkReadRequest,
    NotificationListResponse,
    NotificationResponse,
    PushSubscriptionRequest,
    PushSubscriptionResponse,
)
from .service import list_push_subscriptions, upsert_push_subscription

router = APIRouter()


@router.get("/push/status")
async def push_status() -> dict:
    """Web Push configuration, including the public key browsers subscribe with."""
    return get_push_status()


@router.get("/users/{user_id}", response_model=NotificationListResponse)
async def list_notifications(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    unread_only: Annotated[bool, Query()] = False,
    notification_type: Annotated[NotificationType | None, Query()] = None,
) -> NotificationListResponse:
    """List notification history for a user, newest first."""
    base_filter = [Notification.user_id == user_id]

    if unread_only:
        base_filter.append(Notification.is_read == False)

    if notification_type:
        base_filter.append(Notification.notification_type == notification_type)

    count_query = select(func.count(Notification.id)).where(and_(*base_filter))
    result = await db.execute(count_query)
    total = result.scalar() or 0

    unread_query = select(func.count(Notification.id)).where(
        and_(
            Notification.user_id == user_id,
            Notification.is_read == False,
        )
    )
    result = await db.execute(unread_query)
    unread_count = result.scalar() or 0

    query = (
        select(Notification)
        .where(and_(*base_filter))
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    notifications = list(result.scalars().all())

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=unread_count,
    )


@router.post("/users/{user_id}/read-all", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_read(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    request: MarkReadRequest | None = None,
) -> None:
    """Mark all notifications as read (or specific ones if IDs provided)."""
    conditions = [
        Notification.user_id == user_id,
        Notification.is_read == False,
    ]
    if request and request.notification_ids:
        conditions.append(Notification.id.in_(request.notification_ids))

    stmt = update(Notification).where(and_(*conditions)).values(is_read=True, read_at=datetime.now(timezone.utc))
    await db.execute(stmt)
    await db.commit()


@router.post("/users/{user_id}/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_notification_read(
    user_id: UUID,
    notification_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Mark a notification as read."""
    notification = await db.get(Notification, notification_id)

    if not notification or notification.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        await db.commit()


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_notifications(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Delete the whole notification history of a user."""
    await db.execute(delete(Notification).where(Notification.user_id == user_id))
    await db.commit()


# ==================== Push Subscriptions ====================


@router.get("/users/{user_id}/push-subscriptions", response_model=list[PushSubscriptionResponse])
async def get_push_subscriptions(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[PushSubscriptionResponse]:
    """List push endpoints registered by a user."""
    subscriptions = await list_push_subscriptions(db, user_id)
    return [PushSubscriptionResponse.model_validate(s) for s in subscriptions]


@router.post(
    "/users/{user_id}/push-subscriptions",
    response_model=PushSubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_push_subscription(
    user_id: UUID,
    request: PushSubscriptionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PushSubscriptionResponse:
    """Register (or refresh) a browser push endpoint."""
    subscription = await upsert_push_subscription(db, user_id, request)
    return PushSubscriptionResponse.model_validate(subscription)


@router.delete("/users/{user_id}/push-subscriptions/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unregister_push_subscription(
    user_id: UUID,
    subscription_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Remove a push endpoint."""
    subscription = await db.get(PushSubscription, subscription_id)

    if not subscription or subscription.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Push subscription not found",
        )

    await db.delete(subscription)
    await db.commit()
