"""Time-bounded in-memory cache for upstream responses."""

from __future__ import annotations

import time
from typing import Any, Callable


class TTLCache:
    """In-memory key/value store with per-entry expiry.

    Expired entries are evicted lazily when looked up; there is no
    background sweep and no size bound.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() > expires_at:
            del self._entries[key]
            return None
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
