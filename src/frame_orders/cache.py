from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from frame_orders.models import MatchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Resolved lookup for one product key. `result` is None when the source
    confirmed it has no such product."""
    product_key: str
    result: Optional[MatchResult]
    inserted_at: float


class EnrichmentCache:
    """Insert-only product_key -> MatchResult store.

    Safe to share between pipeline runs on different threads. Entries are
    never replaced or evicted, so a hit always returns exactly what the first
    lookup produced.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, product_key: str) -> Tuple[Optional[MatchResult], bool]:
        with self._lock:
            entry = self._entries.get(product_key)
        if entry is None:
            return None, False
        logger.debug("cache hit %s", product_key)
        return entry.result, True

    def put(self, product_key: str, result: Optional[MatchResult]) -> CacheEntry:
        with self._lock:
            # Racing lookups for the same key: the first insert wins
            existing = self._entries.get(product_key)
            if existing is not None:
                return existing
            entry = CacheEntry(product_key, result, time.time())
            self._entries[product_key] = entry
            return entry

    def entry(self, product_key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(product_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, product_key: str) -> bool:
        with self._lock:
            return product_key in self._entries
