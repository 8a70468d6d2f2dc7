"""Notification schemas for API validation."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import NotificationType


class NotificationCreate(BaseModel):
    """Schema for creating a notification (internal use)."""

    user_id: UUID
    notification_type: NotificationType
    title: str = Field(..., max_length=255)
    body: str
    url: str | None = None
    reference_id: UUID | None = None


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    id: UUID
    notification_type: NotificationType
    title: str
    body: str
    url: str | None
    reference_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    """Schema for notification list response."""

    notifications: list[NotificationResponse]
    total: int
    unread_count: int


class MarkReadRequest(BaseModel):
    """Schema for marking notifications as read."""

    notification_ids: list[UUID] | None = None  # If None, mark all as read


# ==================== Push Subscription Schemas ====================


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1, max_length=255)
    auth: str = Field(..., min_length=1, max_length=255)


class PushSubscriptionRequest(BaseModel):
    """Browser PushSubscription as serialized by ``subscription.toJSON()``."""

    endpoint: str = Field(..., min_length=10, max_length=1000)
    keys: PushSubscriptionKeys
    user_agent: str | None = Field(None, max_length=255)


class PushSubscriptionResponse(BaseModel):
    """Schema for push subscription response."""

    id: UUID
    endpoint: str
    user_agent: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
