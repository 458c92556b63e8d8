import asyncio
import logging
import time
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncGenerator, Optional

logger = logging.getLogger(__name__)


class CoordinationService(ABC):
    """Interface for locks and short lived key-value state.

    This acts as a "redis-like" component for handling:
    1. Locks serializing structural changes to one user's folder tree.
    2. Cached lookups from collaborator services, with TTL expiry.
    """

    @abstractmethod
    async def set_value(self, key: str, value: str, ttl: int | None = None) -> None:
        """Set a key-value pair with optional TTL in seconds."""

    @abstractmethod
    async def get_value(self, key: str) -> Optional[str]:
        """Get a value by key, None if missing or expired."""

    @abstractmethod
    async def delete_value(self, key: str) -> None:
        """Delete a key."""

    @abstractmethod
    async def pop_value(self, key: str) -> Optional[str]:
        """Get and delete a value."""

    @abstractmethod
    def lock(self, key: str) -> AbstractAsyncContextManager[None]:
        """Async context manager holding the named lock."""


class LocalCoordinationService(CoordinationService):
    """In-process implementation backed by a dict and asyncio locks.

    Expired keys are evicted on access and swept on every write. A lock is
    dropped once no task holds or waits for it. Locks only coordinate tasks
    of the current process.
    """

    def __init__(self) -> None:
        """Create an empty coordination service."""
        self._store: dict[str, tuple[str, float | None]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    async def set_value(self, key: str, value: str, ttl: int | None = None) -> None:
        now = time.time()
        self._evict_expired(now)
        self._store[key] = (value, now + ttl if ttl else None)

    def _evict_expired(self, now: float) -> None:
        expired = [
            key
            for key, (_, expiry) in self._store.items()
            if expiry is not None and now > expiry
        ]
        for key in expired:
            del self._store[key]

    async def get_value(self, key: str) -> Optional[str]:
        if (entry := self._store.get(key)) is None:
            return None
        value, expiry = entry
        if expiry is not None and time.time() > expiry:
            # Lazy delete
            del self._store[key]
            return None
        return value

    async def delete_value(self, key: str) -> None:
        self._store.pop(key, None)

    async def pop_value(self, key: str) -> Optional[str]:
        if (entry := self._store.pop(key, None)) is None:
            return None
        value, expiry = entry
        if expiry is not None and time.time() > expiry:
            return None
        return value

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncGenerator[None, None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        # Holders include tasks still waiting to acquire
        self._lock_holders[key] = self._lock_holders.get(key, 0) + 1
        if lock.locked():
            logger.debug("Waiting for lock %s", key)
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[key] -= 1
            if not self._lock_holders[key]:
                del self._lock_holders[key]
                del self._locks[key]
