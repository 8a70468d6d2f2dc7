"""Reminder dispatcher: claim, deliver, record."""
import logging
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.notifications.schemas import NotificationCreate
from src.domains.notifications.service import create_notification
from src.domains.reminders.ledger import DedupLedger, marker_key
from src.domains.reminders.resolver import lead_minutes
from src.domains.reminders.schemas import DispatchResult, DispatchStatus, Reminder, ReminderMessage

logger = logging.getLogger(__name__)


class Channel(Protocol):
    name: str

    async def deliver(self, reminder: Reminder, message: ReminderMessage) -> bool: ...


class History(Protocol):
    async def record(self, reminder: Reminder, message: ReminderMessage) -> None: ...


def _history_entry(reminder: Reminder, message: ReminderMessage) -> NotificationCreate:
    return NotificationCreate(
        user_id=reminder.user_id,
        notification_type=message.notification_type,
        title=message.title,
        body=message.body,
        url=message.url,
        reference_id=reminder.id,
    )


class SessionHistory:
    """Records history rows on an existing session (server sweep)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(self, reminder: Reminder, message: ReminderMessage) -> None:
        try:
            await create_notification(self.db, _history_entry(reminder, message))
        except Exception:
            await self.db.rollback()
            raise


class DatabaseHistory:
    """Records history rows on a fresh session per reminder (long-running pollers)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(self, reminder: Reminder, message: ReminderMessage) -> None:
        async with self.session_factory() as db:
            await create_notification(db, _history_entry(reminder, message))


class ReminderDispatcher:
    """Delivers a due occurrence over the first channel that accepts it.

    The marker is claimed before any delivery attempt and is never rolled
    back: a failed best-effort delivery waits for the next occurrence.

    With ``show_due_time`` the message body states when the task is due (client
    banners); without it the body is the task description (server push).
    """

    def __init__(
        self,
        ledger: DedupLedger,
        channels: list[Channel],
        history: History | None = None,
        show_due_time: bool = True,
    ):
        self.ledger = ledger
        self.channels = channels
        self.history = history
        self.show_due_time = show_due_time

    async def dispatch(self, reminder: Reminder, trigger_at: datetime) -> DispatchResult:
        key = marker_key(reminder.id, trigger_at)
        if not await self.ledger.try_claim(key):
            return DispatchResult(
                reminder_id=reminder.id,
                kind=reminder.kind,
                trigger_at=trigger_at,
                status=DispatchStatus.DUPLICATE,
            )

        due_at = None
        if self.show_due_time:
            due_at = trigger_at + timedelta(minutes=lead_minutes(reminder.notify_before) or 0)
        message = reminder.message(due_at)

        delivered_by = None
        for channel in self.channels:
            try:
                if await channel.deliver(reminder, message):
                    delivered_by = channel.name
                    break
            except Exception as e:
                logger.error("Reminder %s: %s channel failed: %s", reminder.id, channel.name, e)

        if self.history is not None:
            try:
                await self.history.record(reminder, message)
            except Exception as e:
                logger.error("Reminder %s: failed to record notification history: %s", reminder.id, e)

        if delivered_by:
            logger.info("Reminder %s (%s) delivered via %s", reminder.id, reminder.kind, delivered_by)
        else:
            logger.warning("Reminder %s (%s) claimed but not delivered", reminder.id, reminder.kind)

        return DispatchResult(
            reminder_id=reminder.id,
            kind=reminder.kind,
            trigger_at=trigger_at,
            status=DispatchStatus.DELIVERED if delivered_by else DispatchStatus.UNDELIVERED,
            channel=delivered_by,
        )
