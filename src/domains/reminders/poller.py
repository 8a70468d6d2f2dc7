"""Client-side reminder poll loop."""
import asyncio
import logging
from datetime import datetime, timedelta

from src.config.settings import settings
from src.domains.reminders.dispatcher import ReminderDispatcher
from src.domains.reminders.resolver import local_now, resolve_trigger
from src.domains.reminders.schemas import DispatchResult
from src.domains.reminders.sources import ReminderSource

logger = logging.getLogger(__name__)


class ReminderPoller:
    """Re-evaluates a user's reminders on a short fixed period.

    An occurrence is due while ``trigger <= now < trigger + window``. The
    bounded window keeps a client that was closed for hours from replaying
    every missed reminder when it starts again.
    """

    def __init__(
        self,
        source: ReminderSource,
        dispatcher: ReminderDispatcher,
        interval_seconds: float | None = None,
        window_seconds: float | None = None,
        initial_delay_seconds: float | None = None,
        clock=local_now,
    ):
        self.source = source
        self.dispatcher = dispatcher
        self.interval = interval_seconds if interval_seconds is not None else settings.REMINDER_POLL_INTERVAL_SECONDS
        self.window = timedelta(
            seconds=window_seconds if window_seconds is not None else settings.REMINDER_CATCHUP_WINDOW_SECONDS
        )
        self.initial_delay = (
            initial_delay_seconds if initial_delay_seconds is not None else settings.REMINDER_INITIAL_DELAY_SECONDS
        )
        self.clock = clock
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the loop. Calling start on a running poller is a no-op."""
        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info("ReminderPoller started (interval=%ss, window=%ss)", self.interval, self.window.total_seconds())

    async def stop(self) -> None:
        """Stop the loop; no tick runs after this returns."""
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("ReminderPoller stopped")

    async def _wait(self, seconds: float) -> bool:
        """Sleep unless stopped. Returns True when the loop should end."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run(self) -> None:
        if await self._wait(self.initial_delay):
            return
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.error("Reminder poll error: %s", e)
            if await self._wait(self.interval):
                break

    def is_due(self, trigger_at: datetime, now: datetime) -> bool:
        return trigger_at <= now < trigger_at + self.window

    async def tick(self, now: datetime | None = None) -> list[DispatchResult]:
        """Evaluate every reminder once against ``now``."""
        now = now or self.clock()
        await self.dispatcher.ledger.prune(now)

        results = []
        for reminder in await self.source.load():
            try:
                trigger_at = resolve_trigger(reminder, now)
                if trigger_at is None or not self.is_due(trigger_at, now):
                    continue
                results.append(await self.dispatcher.dispatch(reminder, trigger_at))
            except Exception as e:
                logger.error("Failed to evaluate reminder %s: %s", reminder.id, e)
        return results
