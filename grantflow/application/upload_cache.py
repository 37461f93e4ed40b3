"""Per-orchestrator cache of upload contexts."""

import logging
import time
from collections import OrderedDict
from typing import Callable

from grantflow.domain.models.org import UploadContext

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str | None]


class UploadContextCache:
    """LRU cache with a maximum entry age, keyed by ``(org_id, grant_id)``.

    Entries are safe to drop at any time; a miss just refetches.
    """

    def __init__(
        self,
        max_size: int = 32,
        max_age: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = max_size
        self.max_age = max_age
        self._clock = clock
        self._entries: OrderedDict[CacheKey, tuple[float, UploadContext]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> UploadContext | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.max_age:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def put(self, key: CacheKey, value: UploadContext) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted upload context for {evicted}")

    def get_or_load(self, key: CacheKey, loader: Callable[[], UploadContext]) -> UploadContext:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        self.put(key, value)
        return value

    def invalidate(self, key: CacheKey | None = None) -> None:
        """Drop one entry, or everything when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def invalidate_where(self, predicate: Callable[[CacheKey], bool]) -> int:
        """Drop every entry whose key matches; returns how many were dropped."""
        stale = [key for key in self._entries if predicate(key)]
        for key in stale:
            del self._entries[key]
        return len(stale)
