"""Entity sources feeding the reminder poll loop."""
from typing import Protocol
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.planner.models import MindsetLog, Todo
from src.domains.reminders.resolver import local_now
from src.domains.reminders.schemas import MindsetPrompt, Reminder, TodoReminder
from src.domains.users.models import Profile


class ReminderSource(Protocol):
    async def load(self) -> list[Reminder]: ...


class InMemoryReminderSource:
    """Reminders kept in memory and replaced wholesale by a live-update feed."""

    def __init__(self, reminders: list[Reminder] | None = None):
        self._reminders = list(reminders or [])

    def replace(self, reminders: list[Reminder]) -> None:
        self._reminders = list(reminders)

    async def load(self) -> list[Reminder]:
        return list(self._reminders)


async def load_user_reminders(db: AsyncSession, user_id: UUID) -> list[Reminder]:
    """Active to-dos of a user plus their mindset prompt, in insertion order."""
    todos_query = (
        select(Todo)
        .where(
            and_(
                Todo.user_id == user_id,
                Todo.notify == True,
                Todo.completed == False,
            )
        )
        .order_by(Todo.created_at)
    )
    result = await db.execute(todos_query)
    reminders: list[Reminder] = [TodoReminder.from_todo(todo) for todo in result.scalars().all()]

    profile = await db.get(Profile, user_id)
    if profile and profile.mindset_reminder_enabled and profile.mindset_reminder_time:
        today = local_now().date()
        count_query = select(func.count(MindsetLog.id)).where(
            and_(
                MindsetLog.user_id == user_id,
                MindsetLog.log_date == today,
            )
        )
        result = await db.execute(count_query)
        journaled = (result.scalar() or 0) > 0
        reminders.append(MindsetPrompt.from_profile(profile, today, journaled_today=journaled))

    return reminders


class DatabaseReminderSource:
    """Reloads one user's reminders from the database on every tick."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], user_id: UUID):
        self.session_factory = session_factory
        self.user_id = user_id

    async def load(self) -> list[Reminder]:
        async with self.session_factory() as db:
            return await load_user_reminders(db, self.user_id)
