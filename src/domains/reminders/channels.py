"""Delivery channels for reminders.

A channel returns True when it delivered the message. The dispatcher walks
its channels in order and stops at the first delivery, so a client is set up
as ``[NativeChannel, InAppChannel]`` and the server sweep as
``[PushChannel]``.
"""
import enum
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.domains.reminders.schemas import ReminderMessage

logger = logging.getLogger(__name__)


class Permission(str, enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"


class NativeNotifier(Protocol):
    """OS-level notification capability."""

    def request_permission(self) -> Permission: ...

    def show(self, title: str, body: str) -> None: ...


class PlyerNotifier:
    """Desktop notifications through plyer."""

    def __init__(self, app_name: str | None = None, timeout: int = 10):
        self.app_name = app_name or settings.APP_NAME
        self.timeout = timeout

    def request_permission(self) -> Permission:
        if not settings.NATIVE_NOTIFICATIONS_ENABLED:
            return Permission.DENIED
        from plyer.utils import platform

        # plyer has notification backends for these platforms only
        if platform in ("win", "macosx", "linux", "android"):
            return Permission.GRANTED
        return Permission.DENIED

    def show(self, title: str, body: str) -> None:
        from plyer import notification

        notification.notify(title=title, message=body, app_name=self.app_name, timeout=self.timeout)


class NativeChannel:
    """Permission-gated OS notification."""

    name = "native"

    def __init__(self, notifier: NativeNotifier):
        self.notifier = notifier
        self._permission: Permission | None = None

    @property
    def permission(self) -> Permission:
        if self._permission is None:
            try:
                self._permission = self.notifier.request_permission()
            except Exception as e:
                logger.warning("Native notification permission request failed: %s", e)
                self._permission = Permission.DENIED
            if self._permission is Permission.DENIED:
                logger.info("Native notifications not permitted, using in-app messages only")
        return self._permission

    async def deliver(self, reminder, message: ReminderMessage) -> bool:
        if self.permission is not Permission.GRANTED:
            return False
        self.notifier.show(message.title, message.body)
        return True


class InAppInbox:
    """Transient in-app banners waiting to be shown."""

    def __init__(self, maxlen: int = 50):
        self._items: deque[dict] = deque(maxlen=maxlen)

    def push(self, message: ReminderMessage) -> None:
        self._items.append(
            {
                "title": message.title,
                "message": message.body,
                "type": "info",
                "timestamp": datetime.now(timezone.utc),
            }
        )

    def drain(self) -> list[dict]:
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


class InAppChannel:
    """In-app banner. Always available, used as the last resort."""

    name = "in_app"

    def __init__(self, inbox: InAppInbox):
        self.inbox = inbox

    async def deliver(self, reminder, message: ReminderMessage) -> bool:
        self.inbox.push(message)
        logger.info("In-app reminder: %s", message.title)
        return True


class PushChannel:
    """Web Push fan-out to every endpoint registered by the reminder's owner."""

    name = "push"

    def __init__(self, db: AsyncSession):
        self.db = db

    async def deliver(self, reminder, message: ReminderMessage) -> bool:
        from src.domains.notifications.push_service import fan_out

        result = await fan_out(self.db, reminder.user_id, message.push_payload())
        return result.sent > 0
