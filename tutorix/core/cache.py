"""
In-process TTL cache.

A ``TTLCache`` is created explicitly and handed to whatever needs it (rate
limiter, quota guard). Nothing here is module-level state.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from tutorix.core.logging import get_logger

logger = get_logger(__name__)

_MISSING = object()


class TTLCache:
    """Thread-safe key/value cache with per-entry expiry.

    Args:
        ttl_seconds: Default lifetime of an entry
        clock: Monotonic time source, injectable for tests
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _expired(self, expires_at: float) -> bool:
        return self._clock() >= expires_at

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            value, expires_at = entry
            if self._expired(expires_at):
                del self._entries[key]
                return default
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + (ttl or self.ttl_seconds))

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def incr(self, key: str, ttl: Optional[float] = None) -> Tuple[int, float]:
        """Increment a fixed-window counter.

        The window starts on the first hit and is not extended by later hits.
        Returns the new count and the window's expiry time.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or now >= entry[1]:
                expires_at = now + (ttl or self.ttl_seconds)
                self._entries[key] = (1, expires_at)
                return 1, expires_at
            count, expires_at = entry
            self._entries[key] = (count + 1, expires_at)
            return count + 1, expires_at

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; returns how many were removed."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Cache entries invalidated", extra={"prefix": prefix, "count": len(doomed)})
        return len(doomed)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            doomed = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def now(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        self.purge_expired()
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING
