"""In-process key/value cache with a per-entry TTL.

Values are opaque. Entries only ever leave the cache by expiring or by an
explicit delete; there is no size bound.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading at which it expires."""

    value: Any
    expires_at: float


class TTLCache:
    """Key/value store where an expired key behaves exactly like a miss.

    Args:
        clock: Monotonic clock in seconds; injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def _live(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            # Lazy purge
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> Any:
        """Return the value for ``key``, or None on a miss or expiry."""
        entry = self._live(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl_s: float) -> None:
        """Store ``value`` under ``key`` for ``ttl_s`` seconds."""
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_s)

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if a live entry was removed."""
        live = self._live(key) is not None
        self._entries.pop(key, None)
        return live

    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``; returns live entries removed."""
        removed = 0
        for key in [k for k in self._entries if k.startswith(prefix)]:
            if self.delete(key):
                removed += 1
        return removed

    def expires_in(self, key: str) -> Optional[float]:
        """Return seconds until ``key`` expires, or None if not cached."""
        entry = self._live(key)
        if entry is None:
            return None
        return entry.expires_at - self._clock()

    def keys(self, prefix: str = "") -> list[str]:
        """Return live keys, optionally restricted to a prefix."""
        return [k for k in list(self._entries) if k.startswith(prefix) and self._live(k)]

    def __contains__(self, key: str) -> bool:
        return self._live(key) is not None

    def __len__(self) -> int:
        return len(self.keys())
