"""Planner models: to-dos and mindset journal entries."""
import enum
import uuid
from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.config.database import Base
from src.core.models import TimestampMixin, UUIDMixin


class Recurrence(str, enum.Enum):
    """How often a to-do repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class NotifyBefore(str, enum.Enum):
    """Lead time before the due instant at which the reminder fires."""

    AT_TIME = "at_time"
    FIVE_MIN = "5_min"
    TEN_MIN = "10_min"
    FIFTEEN_MIN = "15_min"
    THIRTY_MIN = "30_min"
    ONE_HOUR = "1_hour"
    ONE_DAY = "1_day"


NOTIFY_BEFORE_MINUTES: dict[NotifyBefore, int] = {
    NotifyBefore.AT_TIME: 0,
    NotifyBefore.FIVE_MIN: 5,
    NotifyBefore.TEN_MIN: 10,
    NotifyBefore.FIFTEEN_MIN: 15,
    NotifyBefore.THIRTY_MIN: 30,
    NotifyBefore.ONE_HOUR: 60,
    NotifyBefore.ONE_DAY: 1440,
}


class Todo(Base, UUIDMixin, TimestampMixin):
    """A planner task, optionally recurring and optionally reminded.

    Recurrence and lead-time are stored as plain strings because rows are also
    written by the calendar sync; the reminder resolver validates them.
    """

    __tablename__ = "todos"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_time: Mapped[str | None] = mapped_column(String(8), nullable=True)  # "HH:MM" or "HH:MM:SS"
    recurrence: Mapped[str] = mapped_column(String(20), default=Recurrence.NONE.value, nullable=False)

    notify: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notify_before: Mapped[str | None] = mapped_column(String(20), nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # One-shot marker used by the server sweep for non-recurring to-dos
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)


class MindsetLog(Base, UUIDMixin, TimestampMixin):
    """A daily mindset journal entry."""

    __tablename__ = "mindset_logs"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    log_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
