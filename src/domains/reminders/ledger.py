"""Dedup ledger for dispatched reminders."""
import logging
from datetime import datetime, timedelta
from uuid import UUID

from src.config.settings import settings
from src.core.redis import ReminderMarkers
from src.domains.reminders.resolver import local_now, to_epoch_ms

logger = logging.getLogger(__name__)


def marker_key(entity_id: UUID | str, trigger_at: datetime) -> str:
    """Key identifying one occurrence of one entity."""
    return f"{entity_id}:{to_epoch_ms(trigger_at)}"


class DedupLedger:
    """Two-tier record of which occurrences were already dispatched.

    The ephemeral tier is a set owned by this ledger (one per process or
    sweep). The durable tier is shared through ``ReminderMarkers`` and is
    written before the notification goes out. There is no lock across
    processes; when the durable tier is unreachable each evaluator only
    knows its own claims and the same occurrence may be sent twice.
    """

    def __init__(self, markers=ReminderMarkers, ttl_hours: int | None = None):
        self._markers = markers
        self._claimed: set[str] = set()
        self._ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.REMINDER_MARKER_TTL_HOURS)

    async def try_claim(self, key: str, now: datetime | None = None) -> bool:
        """Claim a marker. True exactly once per key until the marker is pruned."""
        if key in self._claimed:
            return False
        self._claimed.add(key)

        claimed_at = now or local_now()
        try:
            return await self._markers.claim(key, to_epoch_ms(claimed_at))
        except Exception as e:
            # Degraded: only this process is protected against a duplicate
            logger.warning("Durable reminder marker write failed for %s: %s", key, e)
            return True

    async def prune(self, now: datetime | None = None) -> int:
        """Drop markers older than the TTL from both tiers."""
        cutoff = (now or local_now()) - self._ttl
        cutoff_ms = to_epoch_ms(cutoff)

        self._claimed = {
            key for key in self._claimed
            if not key.rpartition(":")[2].isdigit() or int(key.rpartition(":")[2]) >= cutoff_ms
        }
        try:
            removed = await self._markers.prune(cutoff_ms)
        except Exception as e:
            logger.warning("Reminder marker prune failed: %s", e)
            return 0
        if removed:
            logger.debug("Pruned %d stale reminder markers", removed)
        return removed
