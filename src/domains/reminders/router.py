"""Reminders router: sweep entrypoint and trigger previews."""
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.database import get_db
from src.config.settings import settings
from src.core.observability import capture_exception

from .resolver import local_now, resolve_trigger
from .schemas import (
    SweepErrorResponse,
    SweepResponse,
    TodoReminder,
    UpcomingReminder,
    UpcomingRemindersResponse,
)
from .sources import load_user_reminders
from .sweep import process_reminders

router = APIRouter()


def verify_cron_secret(
    x_cron_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Reject sweep calls without the shared secret, when one is configured."""
    if settings.CRON_SECRET and x_cron_secret != settings.CRON_SECRET:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret",
        )


@router.post(
    "/process",
    response_model=SweepResponse,
    responses={500: {"model": SweepErrorResponse}},
    dependencies=[Depends(verify_cron_secret)],
)
async def process_reminders_endpoint(
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Run one reminder sweep. Called by an external scheduler every minute."""
    try:
        return await process_reminders(db)
    except Exception as e:
        capture_exception(e, tags={"component": "reminder_sweep"})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=SweepErrorResponse(error=str(e)).model_dump(),
        )


@router.get("/users/{user_id}/upcoming", response_model=UpcomingRemindersResponse)
async def list_upcoming_reminders(
    user_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UpcomingRemindersResponse:
    """Trigger instants of a user's to-dos for the current cycle."""
    now = local_now()
    reminders = await load_user_reminders(db, user_id)

    upcoming = []
    for reminder in reminders:
        if not isinstance(reminder, TodoReminder):
            continue
        trigger_at = resolve_trigger(reminder, now)
        if trigger_at is None:
            continue
        upcoming.append(
            UpcomingReminder(
                todo_id=reminder.id,
                title=reminder.title,
                recurrence=reminder.recurrence,
                trigger_at=trigger_at,
            )
        )

    upcoming.sort(key=lambda r: r.trigger_at)
    return UpcomingRemindersResponse(reminders=upcoming, evaluated_at=now)
