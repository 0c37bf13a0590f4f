import copy
import json
import logging
import os
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class SessionBackend(Protocol):
    """Protocol for session record storage.

    Records are plain JSON-serializable dicts keyed by session code. Every
    ``put`` (re)starts the record's time-to-live.
    """

    async def get(self, code: str) -> Optional[dict]:
        ...

    async def put(self, code: str, data: dict, ttl: int) -> None:
        ...

    async def exists(self, code: str) -> bool:
        ...

    async def delete(self, code: str) -> bool:
        ...

    async def count(self) -> int:
        ...

    async def cleanup_expired(self) -> int:
        ...


class MemorySessionBackend:
    """Process-lifetime session storage with lazy expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize memory backend.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._clock = clock
        self._records: Dict[str, Tuple[dict, float]] = {}

    def _live(self, code: str) -> Optional[dict]:
        entry = self._records.get(code)
        if entry is None:
            return None
        data, expires_at = entry
        if self._clock() >= expires_at:
            del self._records[code]
            return None
        return data

    async def get(self, code: str) -> Optional[dict]:
        data = self._live(code)
        # Callers get a private copy; only put() changes stored state
        return copy.deepcopy(data) if data is not None else None

    async def put(self, code: str, data: dict, ttl: int) -> None:
        if code not in self._records:
            # New sessions free the slots of expired ones
            self._sweep()
        self._records[code] = (copy.deepcopy(data), self._clock() + ttl)

    async def exists(self, code: str) -> bool:
        return self._live(code) is not None

    async def delete(self, code: str) -> bool:
        return self._records.pop(code, None) is not None

    async def count(self) -> int:
        await self.cleanup_expired()
        return len(self._records)

    async def cleanup_expired(self) -> int:
        """
        Drop expired records.

        Returns:
            Number of records removed
        """
        return self._sweep()

    def _sweep(self) -> int:
        now = self._clock()
        expired = [code for code, (_, expires_at) in self._records.items() if now >= expires_at]
        for code in expired:
            del self._records[code]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired sessions")
        return len(expired)


class RedisSessionBackend:
    """Session storage in Redis; expiry is handled by key TTLs."""

    ACTIVE_SET = "sessions:active"

    def __init__(self, redis_client, key_prefix: str = "session:"):
        """
        Initialize Redis backend.

        Args:
            redis_client: Async Redis client (decode_responses=True)
            key_prefix: Prefix for session record keys
        """
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _key(self, code: str) -> str:
        return f"{self.key_prefix}{code}"

    async def get(self, code: str) -> Optional[dict]:
        data = await self.redis.get(self._key(code))
        if data:
            return json.loads(data)
        return None

    async def put(self, code: str, data: dict, ttl: int) -> None:
        await self.redis.setex(self._key(code), ttl, json.dumps(data))
        await self.redis.sadd(self.ACTIVE_SET, code)

    async def exists(self, code: str) -> bool:
        return await self.redis.exists(self._key(code)) > 0

    async def delete(self, code: str) -> bool:
        removed = await self.redis.delete(self._key(code))
        await self.redis.srem(self.ACTIVE_SET, code)
        return removed > 0

    async def count(self) -> int:
        await self.cleanup_expired()
        return await self.redis.scard(self.ACTIVE_SET)

    async def cleanup_expired(self) -> int:
        """
        Clean up expired sessions from the active set.

        Returns:
            Number of stale entries removed
        """
        codes = await self.redis.smembers(self.ACTIVE_SET)
        cleaned = 0

        for code in codes:
            if not await self.redis.exists(self._key(code)):
                await self.redis.srem(self.ACTIVE_SET, code)
                cleaned += 1

        return cleaned


class StorageModule:
    """Black box storage abstraction."""

    def __init__(self, backend: str = "memory", connection_url: str = None):
        """Initialize storage for the named backend ("memory" or "redis")."""
        self.backend_name = backend
        self.url = connection_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._client = None

    async def connect(self) -> SessionBackend:
        """Build the session backend, opening a Redis connection if needed."""
        if self.backend_name == "redis":
            if not self._client:
                self._client = redis.from_url(self.url, decode_responses=True)
            await self._client.ping()
            logger.info("Session storage: redis")
            return RedisSessionBackend(self._client)

        logger.info("Session storage: in-memory")
        return MemorySessionBackend()

    async def disconnect(self):
        """Close storage connection."""
        if self._client:
            await self._client.close()
            self._client = None
