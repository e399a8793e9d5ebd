"""
Reference data cache with an explicit "load once, invalidate on demand" contract.

Publisher and client lists change rarely but are read by every channel form.
Instead of stashing them in module-level globals, a single ReferenceDataCache
instance is created in the application lifespan, stored on app.state and
injected into routes through a FastAPI dependency. Tests build their own
instance with stub loaders.

Usage:
    cache = ReferenceDataCache(ttl_seconds=300)
    cache.register("publishers", fetch_publishers)

    publishers = await cache.get("publishers")   # loads on first call
    cache.invalidate("publishers")               # next get() reloads
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    """A loaded value and the monotonic time it stops being valid."""
    value: Any
    expires_at: float


class ReferenceDataCache:
    """
    Keyed cache of reference data sets, each backed by an async loader.

    Concurrent get() calls for the same key share a single load. A ttl of 0
    or less means entries never expire and stay until invalidate().
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._loaders: Dict[str, Loader] = {}
        self._entries: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def register(self, key: str, loader: Loader) -> None:
        """Register (or replace) the loader for a key and drop any cached value."""
        self._loaders[key] = loader
        self._entries.pop(key, None)

    def _is_fresh(self, entry: CacheEntry) -> bool:
        if self._ttl <= 0:
            return True
        return self._clock() < entry.expires_at

    def peek(self, key: str) -> Optional[Any]:
        """Return the cached value without loading, or None."""
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry):
            return None
        return entry.value

    async def get(self, key: str) -> Any:
        """
        Return the value for key, loading it if missing or expired.

        Raises:
            KeyError: If no loader is registered for key.
        """
        if key not in self._loaders:
            raise KeyError(f"No reference data loader registered for '{key}'")

        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry):
            return entry.value

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # another waiter may have loaded it while we queued
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                return entry.value

            logger.info(f"Loading reference data '{key}'")
            value = await self._loaders[key]()
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self._ttl)
            return value

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one cached key, or every key when key is None."""
        if key is None:
            self._entries.clear()
            logger.info("Invalidated all reference data")
            return
        self._entries.pop(key, None)
        logger.info(f"Invalidated reference data '{key}'")
