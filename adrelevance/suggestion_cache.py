from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .utils import content_hash

logger = logging.getLogger("adrelevance.cache")

CacheKey = Tuple[str, str, str]


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    inserted_at: float


def make_cache_key(conversation_id: str, user_id: str, text: str) -> CacheKey:
    """Key a turn by conversation, user, and a digest of the exact message text."""
    return (conversation_id, user_id, content_hash(text))


class SuggestionCache:
    """Exact-replay result cache with a TTL and a hard entry bound.

    Entries are written whole under a lock, so readers see either the old entry or the new one.
    When full, the entry with the oldest insertion time is evicted by a linear scan, which is
    fine at the default bound of 1000; a larger bound would want an ordered index instead.
    clear() and invalidate() bump a generation counter; a put() carrying an older generation is
    dropped, so a turn computed before an invalidation cannot land after it.
    """

    def __init__(
        self,
        ttl_sec: float = 30.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl_sec = ttl_sec
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        """Counter bumped by every clear() and invalidate()."""
        with self._lock:
            return self._generation

    def get(self, key: CacheKey) -> Optional[Any]:
        """Purpose: Return the cached value for a key while it is still fresh.
        Inputs/Outputs: Input is a CacheKey; output is the stored value or None.
        Side Effects / State: Removes the entry when it has outlived the TTL.
        Dependencies: The injected clock.
        Failure Modes: None; a miss and an expiry both return None.
        If Removed: Every repeated message is recomputed.
        Testing Notes: Advance a fake clock past ttl_sec to observe expiry.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.inserted_at < self._ttl_sec:
                return entry.value
            del self._entries[key]
            return None

    def put(self, key: CacheKey, value: Any, generation: Optional[int] = None) -> bool:
        """Purpose: Store a computed value, evicting the oldest entry when the cache is full.
        Inputs/Outputs: Inputs are the key, the value, and optionally the generation observed
            before the value was computed; output is True when the value was stored.
        Side Effects / State: May evict one entry; stamps the entry with the current clock.
        Dependencies: The injected clock and the generation counter.
        Failure Modes: Returns False without writing when the generation has moved on, so a
            value computed before an invalidation is never replayed after it.
        If Removed: Nothing is ever cached.
        Testing Notes: Read generation, call clear(), then put with the old generation.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            if key not in self._entries and len(self._entries) >= self._max_entries:
                oldest_key = min(self._entries, key=lambda k: self._entries[k].inserted_at)
                del self._entries[oldest_key]
                logger.debug("cache evicted key=%s", oldest_key[0])
            self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())
            return True

    def invalidate(self, predicate: Callable[[CacheKey], bool]) -> int:
        """Drop every entry whose key satisfies the predicate; returns how many were dropped."""
        with self._lock:
            self._generation += 1
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> int:
        with self._lock:
            self._generation += 1
            dropped = len(self._entries)
            self._entries.clear()
        if dropped:
            logger.info("cache cleared entries=%d", dropped)
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
