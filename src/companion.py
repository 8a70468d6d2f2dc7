"""Desktop reminder companion.

Runs the client-side poll loop for one user: reloads the user's to-dos and
mindset prompt from the database every tick and shows due reminders as native
desktop notifications, falling back to in-app banners (logged here) when the
OS refuses them.

Usage:
    python -m src.companion --user-id <uuid>
    python -m src.companion --user-id <uuid> --once
"""
import argparse
import asyncio
import signal
from uuid import UUID

import structlog

from src.config.database import AsyncSessionLocal
from src.config.settings import settings
from src.core.redis import close_redis
from src.domains.reminders.channels import InAppChannel, InAppInbox, NativeChannel, PlyerNotifier
from src.domains.reminders.dispatcher import DatabaseHistory, ReminderDispatcher
from src.domains.reminders.ledger import DedupLedger
from src.domains.reminders.poller import ReminderPoller
from src.domains.reminders.sources import DatabaseReminderSource

logger = structlog.get_logger(__name__)


def build_poller(
    user_id: UUID,
    inbox: InAppInbox,
    interval_seconds: float | None = None,
    window_seconds: float | None = None,
) -> ReminderPoller:
    """Wire a poller for one user with the desktop channels."""
    dispatcher = ReminderDispatcher(
        ledger=DedupLedger(),
        channels=[NativeChannel(PlyerNotifier()), InAppChannel(inbox)],
        history=DatabaseHistory(AsyncSessionLocal),
    )
    return ReminderPoller(
        DatabaseReminderSource(AsyncSessionLocal, user_id),
        dispatcher,
        interval_seconds=interval_seconds,
        window_seconds=window_seconds,
    )


async def run(user_id: UUID, interval: float, window: float, once: bool) -> None:
    inbox = InAppInbox()
    poller = build_poller(user_id, inbox, interval, window)

    if once:
        results = await poller.tick()
        for result in results:
            logger.info("reminder_dispatched", reminder_id=str(result.reminder_id), status=result.status.value, channel=result.channel)
        for banner in inbox.drain():
            logger.info("in_app_banner", title=banner["title"], message=banner["message"])
        await close_redis()
        return

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    await poller.start()
    logger.info("companion_started", user_id=str(user_id), interval=interval, window=window)
    try:
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=1)
            except asyncio.TimeoutError:
                for banner in inbox.drain():
                    logger.info("in_app_banner", title=banner["title"], message=banner["message"])
    finally:
        await poller.stop()
        await close_redis()
        logger.info("companion_stopped", user_id=str(user_id))


def main() -> None:
    parser = argparse.ArgumentParser(description="Show reminders for one user as desktop notifications")
    parser.add_argument("--user-id", type=UUID, required=True, help="Profile id of the user")
    parser.add_argument("--interval", type=float, default=settings.REMINDER_POLL_INTERVAL_SECONDS, help="Seconds between checks")
    parser.add_argument("--window", type=float, default=settings.REMINDER_CATCHUP_WINDOW_SECONDS, help="Catch-up window in seconds")
    parser.add_argument("--once", action="store_true", help="Run a single check and exit")
    args = parser.parse_args()

    asyncio.run(run(args.user_id, args.interval, args.window, args.once))


if __name__ == "__main__":
    main()
