"""Redis client and the shared reminder marker store."""
import logging

from src.config.settings import settings

logger = logging.getLogger(__name__)

# In-memory fallback for development when Redis is not available
_memory_store: dict[str, tuple[str, float | None]] = {}
_use_memory_fallback = False
_client = None


async def get_redis():
    """Get Redis client instance or None when using the memory fallback."""
    global _use_memory_fallback, _client

    if _use_memory_fallback:
        return None
    if _client is not None:
        return _client

    try:
        import redis.asyncio as redis

        pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        client = redis.Redis(connection_pool=pool)
        await client.ping()
        _client = client
        return client
    except Exception as e:
        logger.warning(f"Redis not available, using in-memory fallback: {e}")
        _use_memory_fallback = True
        return None


async def close_redis() -> None:
    """Close the cached client. The next get_redis() call reconnects."""
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None


class ReminderMarkers:
    """Durable dedup markers for dispatched reminders.

    Markers live in one Redis hash mapping marker key -> claim time in epoch
    milliseconds, so every process (API workers, Celery workers, companions)
    sees the same claims. HSETNX makes the claim itself atomic; the send that
    follows it is not, which leaves a small window for duplicates.
    """

    HASH_KEY = "reminder_markers"
    MEMORY_PREFIX = "reminder_marker:"

    @classmethod
    async def claim(cls, key: str, claimed_at_ms: int) -> bool:
        """Write the marker if absent. Returns True when this call wrote it."""
        client = await get_redis()

        if client:
            return bool(await client.hsetnx(cls.HASH_KEY, key, str(claimed_at_ms)))
        else:
            memory_key = f"{cls.MEMORY_PREFIX}{key}"
            if memory_key in _memory_store:
                return False
            _memory_store[memory_key] = (str(claimed_at_ms), None)
            return True

    @classmethod
    async def prune(cls, older_than_ms: int) -> int:
        """Delete markers claimed before ``older_than_ms``. Returns how many were removed."""
        client = await get_redis()

        if client:
            stale = []
            async for key, value in client.hscan_iter(cls.HASH_KEY):
                if not value.isdigit() or int(value) < older_than_ms:
                    stale.append(key)
            if stale:
                await client.hdel(cls.HASH_KEY, *stale)
            return len(stale)
        else:
            stale = [
                k
                for k, (value, _) in _memory_store.items()
                if k.startswith(cls.MEMORY_PREFIX) and (not value.isdigit() or int(value) < older_than_ms)
            ]
            for key in stale:
                del _memory_store[key]
            return len(stale)
