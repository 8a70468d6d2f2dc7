"""Reminder sweep task.

Runs the server-side reminder sweep: to-do reminders and the daily mindset
journal prompt, delivered through Web Push.
"""
import asyncio
import logging

from src.core.celery_app import celery_app

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(bind=True)
def process_reminders(self):
    """Sweep all reminder-bearing entities and push the ones that are due.

    The sweep is stateless and idempotent, so a failed run is not retried:
    the next minute's run picks up where it stopped.

    Returns:
        {"success": True, "processed_count": n, "details": [...]} or
        {"success": False, "error": message}
    """
    logger.info("Starting reminder sweep task")
    return run_async(_process_reminders_async())


async def _process_reminders_async() -> dict:
    """Async implementation of the sweep task."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from src.config.database import _get_async_database_url
    from src.config.settings import settings
    from src.core.observability import capture_exception
    from src.core.redis import close_redis
    from src.domains.reminders.sweep import process_reminders as sweep

    # A fresh engine per run: the pooled one is bound to another event loop
    engine = create_async_engine(_get_async_database_url(settings.DATABASE_URL))
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with async_session() as db:
            result = await sweep(db)
        logger.info(f"Reminder sweep: processed={result.processed_count}")
        return result.model_dump(mode="json")
    except Exception as e:
        logger.error(f"Error in reminder sweep task: {e}")
        capture_exception(e, tags={"component": "reminder_sweep"})
        return {"success": False, "error": str(e)}
    finally:
        await close_redis()
        await engine.dispose()
