"""In-process TTL cache for generated answers.

Keys are normalized queries, values are full answer payloads. Entries expire a
fixed time after insertion; expired entries are dropped lazily on access and
proactively by a periodic sweep.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable

CACHE_TTL_SECONDS = 180.0
SWEEP_INTERVAL_SECONDS = 300.0


class CacheEntry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: Any, expires_at: float) -> None:
        self.value = value
        self.expires_at = expires_at


class RetrievalCache:
    def __init__(
        self,
        logger: logging.Logger,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.logging = logger
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def normalize_key(query: str) -> str:
        return query.strip().casefold()

    ##########################################
    ################ ACCESS ##################
    ##########################################

    def get(self, key: str) -> Any | None:
        """Return the cached value for a normalized key, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value, self._clock() + self._ttl)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    ##########################################
    ################ EVICTION ################
    ##########################################

    def sweep(self) -> int:
        """Drop every expired entry.

        Returns:
            int: Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            self.logging.debug("Cache sweep removed %d expired entr%s.", len(expired), "y" if len(expired) == 1 else "ies")
        return len(expired)

    async def run_sweeper(self, interval: float = SWEEP_INTERVAL_SECONDS, stop_event: asyncio.Event | None = None) -> None:
        """Sweep periodically until the stop event is set or the task is cancelled."""
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                self.sweep()
