"""Tests for the client reminder poll loop."""
import asyncio
import uuid
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.domains.reminders.channels import InAppChannel, InAppInbox
from src.domains.reminders.dispatcher import ReminderDispatcher
from src.domains.reminders.ledger import DedupLedger
from src.domains.reminders.poller import ReminderPoller
from src.domains.reminders.schemas import DispatchStatus, TodoReminder
from src.domains.reminders.sources import InMemoryReminderSource


def make_todo(**overrides) -> TodoReminder:
    fields = {
        "id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "title": "Meal prep",
        "due_date": "2024-03-01",
        "due_time": "09:00",
        "recurrence": "none",
        "notify_before": "10_min",
    }
    fields.update(overrides)
    return TodoReminder(**fields)


@pytest.fixture
def inbox() -> InAppInbox:
    return InAppInbox(maxlen=500)


@pytest.fixture
def history():
    return AsyncMock()


def make_poller(reminders, inbox, history, **kwargs) -> ReminderPoller:
    dispatcher = ReminderDispatcher(DedupLedger(), [InAppChannel(inbox)], history)
    kwargs.setdefault("window_seconds", 120)
    return ReminderPoller(InMemoryReminderSource(reminders), dispatcher, **kwargs)


class TestTick:
    """Tests for a single evaluation pass."""

    @pytest.mark.asyncio
    async def test_fires_at_trigger_then_not_again(self, inbox, history):
        todo = make_todo()
        poller = make_poller([todo], inbox, history)

        first = await poller.tick(datetime(2024, 3, 1, 8, 50))
        second = await poller.tick(datetime(2024, 3, 1, 8, 51))

        assert [r.status for r in first] == [DispatchStatus.DELIVERED]
        assert first[0].trigger_at == datetime(2024, 3, 1, 8, 50)
        assert [r.status for r in second] == [DispatchStatus.DUPLICATE]
        assert len(inbox) == 1

    @pytest.mark.asyncio
    async def test_many_ticks_in_window_deliver_once(self, inbox, history):
        poller = make_poller([make_todo()], inbox, history)
        trigger = datetime(2024, 3, 1, 8, 50)

        for i in range(100):
            await poller.tick(trigger + timedelta(seconds=i))

        assert len(inbox) == 1
        history.record.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_due_before_trigger(self, inbox, history):
        poller = make_poller([make_todo()], inbox, history)

        assert await poller.tick(datetime(2024, 3, 1, 8, 49, 59)) == []
        assert len(inbox) == 0

    @pytest.mark.asyncio
    async def test_stale_occurrence_outside_window(self, inbox, history):
        poller = make_poller([make_todo()], inbox, history)

        # Client reopened long after the reminder time
        assert await poller.tick(datetime(2024, 3, 1, 8, 52)) == []
        assert await poller.tick(datetime(2024, 3, 1, 15, 0)) == []
        assert len(inbox) == 0
        history.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_daily_fires_once_per_day(self, inbox, history):
        todo = make_todo(recurrence="daily", notify_before="at_time")
        poller = make_poller([todo], inbox, history)

        for day in (1, 2, 3):
            await poller.tick(datetime(2024, 3, day, 9, 0))
            await poller.tick(datetime(2024, 3, day, 9, 1))

        assert len(inbox) == 3

    @pytest.mark.asyncio
    async def test_ineligible_entities_are_skipped(self, inbox, history):
        reminders = [
            make_todo(completed=True),
            make_todo(notify=False),
            make_todo(due_date=None),
            make_todo(recurrence="yearly"),
        ]
        poller = make_poller(reminders, inbox, history)

        assert await poller.tick(datetime(2024, 3, 1, 8, 50)) == []

    @pytest.mark.asyncio
    async def test_source_replacement_is_picked_up(self, inbox, history):
        source = InMemoryReminderSource()
        dispatcher = ReminderDispatcher(DedupLedger(), [InAppChannel(inbox)], history)
        poller = ReminderPoller(source, dispatcher, window_seconds=120)

        assert await poller.tick(datetime(2024, 3, 1, 8, 50)) == []
        source.replace([make_todo()])
        assert len(await poller.tick(datetime(2024, 3, 1, 8, 50, 30))) == 1

    @pytest.mark.asyncio
    async def test_two_pollers_share_markers(self, history):
        """Two open clients of the same user notify once."""
        todo = make_todo()
        inbox_a, inbox_b = InAppInbox(), InAppInbox()
        poller_a = make_poller([todo], inbox_a, history)
        poller_b = make_poller([todo], inbox_b, history)

        await poller_a.tick(datetime(2024, 3, 1, 8, 50))
        await poller_b.tick(datetime(2024, 3, 1, 8, 50, 5))

        assert len(inbox_a) + len(inbox_b) == 1


class TestLifecycle:
    """Tests for start / stop."""

    @pytest.mark.asyncio
    async def test_start_runs_ticks_and_stop_halts_them(self, inbox, history):
        clock_calls = []

        def clock():
            clock_calls.append(1)
            return datetime(2024, 3, 1, 8, 50)

        poller = make_poller(
            [make_todo()], inbox, history, interval_seconds=0.01, initial_delay_seconds=0, clock=clock
        )

        await poller.start()
        assert poller.is_running
        await asyncio.sleep(0.05)
        await poller.stop()

        assert not poller.is_running
        assert len(inbox) == 1
        ticks_at_stop = len(clock_calls)
        assert ticks_at_stop > 0

        await asyncio.sleep(0.05)
        assert len(clock_calls) == ticks_at_stop

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, inbox, history):
        poller = make_poller([], inbox, history, interval_seconds=10, initial_delay_seconds=10)

        await poller.start()
        task = poller._task
        await poller.start()

        assert poller._task is task
        await poller.stop()
        assert poller._task is None

    @pytest.mark.asyncio
    async def test_stop_during_initial_delay(self, inbox, history):
        clock = MagicMock()
        poller = make_poller([make_todo()], inbox, history, interval_seconds=10, initial_delay_seconds=10)
        poller.clock = clock

        await poller.start()
        await poller.stop()

        clock.assert_not_called()
        assert len(inbox) == 0

    @pytest.mark.asyncio
    async def test_stop_without_start(self, inbox, history):
        poller = make_poller([], inbox, history)

        await poller.stop()

        assert not poller.is_running

    @pytest.mark.asyncio
    async def test_tick_error_does_not_kill_loop(self, inbox, history):
        todo = make_todo()
        loads = []

        async def load():
            loads.append(1)
            if len(loads) == 1:
                raise RuntimeError("db down")
            return [todo]

        source = MagicMock()
        source.load = load
        dispatcher = ReminderDispatcher(DedupLedger(), [InAppChannel(inbox)], history)
        poller = ReminderPoller(
            source,
            dispatcher,
            interval_seconds=0.01,
            window_seconds=120,
            initial_delay_seconds=0,
            clock=lambda: datetime(2024, 3, 1, 8, 50),
        )

        await poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()

        assert len(loads) >= 2
        assert len(inbox) == 1
