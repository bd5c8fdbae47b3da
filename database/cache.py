"""
Time-bounded read cache.

Entries expire after a fixed TTL. Values are deep-copied on the way in and
out so callers never share mutable state with the cache.
"""

import copy
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """Key-value cache with a fixed time-to-live and an injectable clock."""

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return copy.deepcopy(value)

    def set(self, key: Hashable, value: Any):
        self._entries[key] = (self.clock(), copy.deepcopy(value))

    def invalidate_all(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
