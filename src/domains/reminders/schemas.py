"""Reminder variants and reminder API schemas."""
import enum
from datetime import date, datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.domains.notifications.models import NotificationType
from src.domains.planner.models import NotifyBefore, Recurrence, Todo
from src.domains.users.models import Profile


class ReminderMessage(BaseModel):
    """What a reminder says, whatever the channel."""

    title: str
    body: str
    url: str = "/"
    notification_type: NotificationType

    def push_payload(self) -> dict[str, str]:
        return {"title": self.title, "body": self.body, "url": self.url}


class _ReminderBase(BaseModel):
    """Fields every reminder-bearing entity exposes to the resolver.

    Date, time and selectors stay as raw strings: the resolver parses them and
    fails closed on anything malformed.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: UUID
    notify: bool = True
    completed: bool = False
    due_date: str | None = None
    due_time: str | None = None
    recurrence: str = Recurrence.NONE.value
    notify_before: str | None = None


class TodoReminder(_ReminderBase):
    """Reminder for a planner to-do."""

    kind: Literal["todo"] = "todo"
    title: str
    description: str | None = None

    @classmethod
    def from_todo(cls, todo: Todo) -> "TodoReminder":
        return cls(
            id=todo.id,
            user_id=todo.user_id,
            notify=todo.notify,
            completed=todo.completed,
            due_date=todo.due_date.isoformat() if todo.due_date else None,
            due_time=todo.due_time,
            recurrence=todo.recurrence or Recurrence.NONE.value,
            notify_before=todo.notify_before,
            title=todo.title,
            description=todo.description,
        )

    def message(self, due_at: datetime | None = None) -> ReminderMessage:
        if due_at is not None:
            body = f"Task is due at {due_at.strftime('%I:%M %p').lstrip('0')}"
        else:
            body = self.description or "Your task is due soon!"
        return ReminderMessage(
            title=f"Reminder: {self.title}",
            body=body,
            url="/planner",
            notification_type=NotificationType.TODO_REMINDER,
        )


class MindsetPrompt(_ReminderBase):
    """The daily mindset journal prompt of one user.

    Behaves as a daily occurrence at the profile's reminder time; it counts as
    completed once today's journal entry exists.
    """

    kind: Literal["mindset"] = "mindset"
    recurrence: str = Recurrence.DAILY.value
    notify_before: str | None = NotifyBefore.AT_TIME.value

    @classmethod
    def from_profile(cls, profile: Profile, today: date, journaled_today: bool = False) -> "MindsetPrompt":
        return cls(
            id=profile.id,
            user_id=profile.id,
            notify=profile.mindset_reminder_enabled,
            completed=journaled_today,
            due_date=today.isoformat(),
            due_time=profile.mindset_reminder_time,
        )

    def message(self, due_at: datetime | None = None) -> ReminderMessage:
        return ReminderMessage(
            title="Daily Mindset Journal",
            body="Take a moment to reflect on your day and gratitude.",
            url="/mindset",
            notification_type=NotificationType.MINDSET_REMINDER,
        )


Reminder = Annotated[TodoReminder | MindsetPrompt, Field(discriminator="kind")]


class DispatchStatus(str, enum.Enum):
    """Outcome of one dispatch attempt."""

    DELIVERED = "delivered"
    UNDELIVERED = "undelivered"  # Claimed, but no channel accepted it
    DUPLICATE = "duplicate"


class DispatchResult(BaseModel):
    """Result of dispatching one occurrence."""

    reminder_id: UUID
    kind: str
    trigger_at: datetime
    status: DispatchStatus
    channel: str | None = None


# ==================== API Schemas ====================


class SweepItem(BaseModel):
    """One entity handled by a sweep."""

    type: Literal["todo", "mindset"]
    id: UUID
    status: Literal["sent", "undelivered", "skipped", "error"]


class SweepResponse(BaseModel):
    """Response of the sweep entrypoint."""

    success: bool = True
    processed_count: int
    details: list[SweepItem]


class SweepErrorResponse(BaseModel):
    """Response of a failed sweep."""

    success: bool = False
    error: str


class UpcomingReminder(BaseModel):
    """Trigger preview for one to-do."""

    todo_id: UUID
    title: str
    recurrence: str
    trigger_at: datetime


class UpcomingRemindersResponse(BaseModel):
    """Today's reminder triggers for a user."""

    reminders: list[UpcomingReminder]
    evaluated_at: datetime
