"""Due-time resolution for reminder-bearing entities.

All instants are naive datetimes on the evaluator's local wall clock (or
``REMINDER_TIMEZONE`` when configured). Due dates and times are what the user
typed, so weekday / day-of-month comparisons must happen in local time, never
after a conversion to UTC.
"""
import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from src.config.settings import settings
from src.domains.planner.models import NOTIFY_BEFORE_MINUTES, NotifyBefore, Recurrence

logger = logging.getLogger(__name__)


def _zone() -> ZoneInfo | None:
    if settings.REMINDER_TIMEZONE:
        return ZoneInfo(settings.REMINDER_TIMEZONE)
    return None


def local_now() -> datetime:
    """Current local wall-clock time as a naive datetime."""
    zone = _zone()
    if zone is not None:
        return datetime.now(zone).replace(tzinfo=None)
    return datetime.now()


def to_epoch_ms(instant: datetime) -> int:
    """Epoch milliseconds of a local wall-clock instant."""
    if instant.tzinfo is None:
        zone = _zone()
        instant = instant.replace(tzinfo=zone) if zone is not None else instant.astimezone()
    return int(instant.timestamp() * 1000)


def parse_due_date(value: str | date | None) -> date | None:
    """Parse ``YYYY-MM-DD``. Returns None when absent or malformed."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        if len(value) > 10:
            # Full ISO timestamp, e.g. "2024-03-01T00:00:00Z"
            return datetime.fromisoformat(value).date()
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def parse_due_time(value: str | time | None) -> time | None:
    """Parse ``HH:MM`` or ``HH:MM:SS`` (seconds are dropped). None when absent or malformed."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
        return time(hour, minute)
    except ValueError:
        return None


def lead_minutes(notify_before: str | None) -> int | None:
    """Minutes between the reminder and the due instant. None for an unknown selector."""
    if notify_before is None or notify_before == "":
        return settings.REMINDER_DEFAULT_NOTIFY_BEFORE_MINUTES
    try:
        return NOTIFY_BEFORE_MINUTES[NotifyBefore(notify_before)]
    except ValueError:
        return None


def occurrence_instant(reminder, now: datetime) -> datetime | None:
    """Due instant of the occurrence that belongs to ``now``'s cycle.

    Non-recurring entities have one fixed occurrence; recurring ones occur on
    ``now``'s date when their recurrence predicate holds for it.
    """
    if not reminder.notify or reminder.completed:
        return None

    due_date = parse_due_date(reminder.due_date)
    if due_date is None:
        if reminder.due_date:
            logger.debug("Unparseable due_date %r on %s", reminder.due_date, reminder.id)
        return None

    if reminder.due_time:
        due_time = parse_due_time(reminder.due_time)
        if due_time is None:
            logger.debug("Unparseable due_time %r on %s", reminder.due_time, reminder.id)
            return None
    else:
        due_time = parse_due_time(settings.REMINDER_DEFAULT_TIME)

    try:
        recurrence = Recurrence(reminder.recurrence or Recurrence.NONE.value)
    except ValueError:
        logger.debug("Unknown recurrence %r on %s", reminder.recurrence, reminder.id)
        return None

    today = now.date()
    if recurrence is Recurrence.NONE:
        return datetime.combine(due_date, due_time)
    if recurrence is Recurrence.DAILY:
        return datetime.combine(today, due_time)
    if recurrence is Recurrence.WEEKLY:
        if today.weekday() != due_date.weekday():
            return None
        return datetime.combine(today, due_time)
    # Monthly: a due day missing from the current month (e.g. the 31st) never matches
    if today.day != due_date.day:
        return None
    return datetime.combine(today, due_time)


def resolve_trigger(reminder, now: datetime) -> datetime | None:
    """Instant at which the reminder for the current occurrence should fire.

    Returns None when the entity has nothing to fire for ``now``'s cycle or
    when any of its fields is malformed.
    """
    occurrence = occurrence_instant(reminder, now)
    if occurrence is None:
        return None

    minutes = lead_minutes(reminder.notify_before)
    if minutes is None:
        logger.debug("Unknown notify_before %r on %s", reminder.notify_before, reminder.id)
        return None
    return occurrence - timedelta(minutes=minutes)
