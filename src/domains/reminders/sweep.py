"""Server-side reminder sweep.

Invoked once a minute by Celery beat or by the cron endpoint. A sweep keeps
no state between runs: everything is recomputed from the database, and each
item commits its own flag so a sweep that dies halfway can simply run again.

Unlike the client poll loop there is no catch-up window here. Non-recurring
to-dos are gated by ``Todo.notification_sent``, recurring ones by the shared
dedup ledger, and the mindset prompt by ``Profile.mindset_last_notified``.
"""
import logging
from datetime import date, datetime

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.planner.models import MindsetLog, Recurrence, Todo
from src.domains.reminders.channels import PushChannel
from src.domains.reminders.dispatcher import ReminderDispatcher, SessionHistory
from src.domains.reminders.ledger import DedupLedger
from src.domains.reminders.resolver import local_now, resolve_trigger
from src.domains.reminders.schemas import (
    DispatchStatus,
    MindsetPrompt,
    SweepItem,
    SweepResponse,
    TodoReminder,
)
from src.domains.users.models import Profile

logger = logging.getLogger(__name__)


def _status(result_status: DispatchStatus) -> str:
    if result_status is DispatchStatus.DELIVERED:
        return "sent"
    if result_status is DispatchStatus.UNDELIVERED:
        return "undelivered"
    return "skipped"


async def process_todo_reminders(
    db: AsyncSession,
    dispatcher: ReminderDispatcher,
    now: datetime,
) -> list[SweepItem]:
    """Dispatch every to-do whose trigger instant has passed."""
    query = (
        select(Todo)
        .where(
            and_(
                Todo.notify == True,
                Todo.completed == False,
                or_(Todo.recurrence != Recurrence.NONE.value, Todo.notification_sent == False),
            )
        )
        .order_by(Todo.created_at)
    )
    result = await db.execute(query)
    # Snapshot first: a rollback below expires every loaded row
    reminders = [TodoReminder.from_todo(todo) for todo in result.scalars().all()]

    items = []
    for reminder in reminders:
        try:
            trigger_at = resolve_trigger(reminder, now)
            if trigger_at is None or now < trigger_at:
                continue

            dispatched = await dispatcher.dispatch(reminder, trigger_at)

            if reminder.recurrence == Recurrence.NONE.value:
                # One occurrence only: flag it even if another evaluator sent it first
                await db.execute(update(Todo).where(Todo.id == reminder.id).values(notification_sent=True))
                await db.commit()
            elif dispatched.status is DispatchStatus.DUPLICATE:
                continue

            items.append(SweepItem(type="todo", id=reminder.id, status=_status(dispatched.status)))
        except Exception as e:
            logger.error("Failed to process reminder for todo %s: %s", reminder.id, e)
            await db.rollback()
            items.append(SweepItem(type="todo", id=reminder.id, status="error"))

    return items


async def _journaled_on(db: AsyncSession, user_id, day: date) -> bool:
    query = select(func.count(MindsetLog.id)).where(
        and_(
            MindsetLog.user_id == user_id,
            MindsetLog.log_date == day,
        )
    )
    result = await db.execute(query)
    return (result.scalar() or 0) > 0


async def process_mindset_reminders(
    db: AsyncSession,
    dispatcher: ReminderDispatcher,
    now: datetime,
) -> list[SweepItem]:
    """Send the daily journal prompt to users who have not been prompted today."""
    today = now.date()
    query = select(Profile).where(
        and_(
            Profile.mindset_reminder_enabled == True,
            Profile.mindset_reminder_time.is_not(None),
            Profile.mindset_reminder_time != "",
            or_(Profile.mindset_last_notified.is_(None), Profile.mindset_last_notified != today),
        )
    )
    result = await db.execute(query)
    prompts = [MindsetPrompt.from_profile(profile, today) for profile in result.scalars().all()]

    items = []
    for prompt in prompts:
        try:
            trigger_at = resolve_trigger(prompt, now)
            if trigger_at is None or now < trigger_at:
                continue

            # Already journaled today: only flag the day so the check is not repeated
            status = "skipped"
            if not await _journaled_on(db, prompt.user_id, today):
                dispatched = await dispatcher.dispatch(prompt, trigger_at)
                status = _status(dispatched.status)

            await db.execute(
                update(Profile).where(Profile.id == prompt.user_id).values(mindset_last_notified=today)
            )
            await db.commit()
            items.append(SweepItem(type="mindset", id=prompt.user_id, status=status))
        except Exception as e:
            logger.error("Failed to process mindset reminder for user %s: %s", prompt.user_id, e)
            await db.rollback()
            items.append(SweepItem(type="mindset", id=prompt.user_id, status="error"))

    return items


async def process_reminders(
    db: AsyncSession,
    now: datetime | None = None,
    ledger: DedupLedger | None = None,
) -> SweepResponse:
    """Run one full sweep over to-dos and mindset prompts."""
    now = now or local_now()
    ledger = ledger or DedupLedger()
    await ledger.prune(now)

    dispatcher = ReminderDispatcher(
        ledger, [PushChannel(db)], history=SessionHistory(db), show_due_time=False
    )

    details = await process_todo_reminders(db, dispatcher, now)
    details += await process_mindset_reminders(db, dispatcher, now)

    logger.info("Reminder sweep at %s: %d processed", now.isoformat(timespec="seconds"), len(details))
    return SweepResponse(processed_count=len(details), details=details)
