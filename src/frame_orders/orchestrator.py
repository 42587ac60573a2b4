"""Drive catalog lookups for one order.

Line items are grouped by product_key; each group is resolved once (document,
cache, or adapter) and the outcome is copied onto every item in the group.
Adapter calls run in small concurrent batches with a pause in between.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from frame_orders.adapters.base import EnrichmentAdapter
from frame_orders.adapters.http import Deadline
from frame_orders.cache import EnrichmentCache
from frame_orders.config import Settings
from frame_orders.errors import AdapterError
from frame_orders.matcher import Matcher
from frame_orders.models import (
    Enriched,
    EnrichmentResult,
    Failed,
    ItemStatus,
    LineItem,
    MatchResult,
    NoCandidates,
    Order,
)

logger = logging.getLogger(__name__)

NO_CANDIDATES = "no candidates"
NO_CATALOG_SOURCE = "no catalog source"


@dataclass
class EnrichmentStats:
    total_items: int = 0
    enriched_count: int = 0
    failed_count: int = 0
    verified_in_document: int = 0
    cache_hits: int = 0
    lookups: int = 0
    processing_time_seconds: float = 0.0

    @property
    def enrichment_rate(self) -> float:
        needed = self.enriched_count + self.failed_count
        if not needed:
            return 100.0
        return round(100.0 * self.enriched_count / needed, 1)


def carries_catalog_data(item: LineItem) -> bool:
    return item.api_verified or (item.wholesale_price is not None and bool(item.upc))


class EnrichmentOrchestrator:
    def __init__(
        self,
        adapter: Optional[EnrichmentAdapter],
        cache: EnrichmentCache,
        settings: Settings,
        deadline: Optional[Deadline] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.adapter = adapter
        self.cache = cache
        self.settings = settings
        self.deadline = deadline or Deadline(None)
        self._sleep = sleep
        self.matcher = Matcher(adapter.rules, settings.min_confidence) if adapter is not None else None

    # -------- entry point --------
    def enrich(self, order: Order) -> EnrichmentStats:
        started = time.monotonic()
        stats = EnrichmentStats(total_items=len(order.items))
        pending = [i for i in order.items if not i.status.terminal]

        if self.adapter is None:
            self._settle_without_source(pending)
        else:
            groups = self._group(pending)
            to_fetch: Dict[str, List[LineItem]] = {}
            for key, items in groups.items():
                cached, found = self.cache.get(key)
                if found:
                    stats.cache_hits += 1
                    self._apply(items, self._result_from(cached, from_cache=True))
                else:
                    to_fetch[key] = items
            self._dispatch(to_fetch, stats)

        for item in order.items:
            # Items verified in the document count as enriched
            if item.status is ItemStatus.VERIFIED_IN_DOCUMENT:
                stats.verified_in_document += 1
                stats.enriched_count += 1
            elif item.status is ItemStatus.ENRICHMENT_FAILED:
                stats.failed_count += 1
            elif item.status in (ItemStatus.ENRICHED_VALIDATED, ItemStatus.ENRICHED_LOW_CONFIDENCE):
                stats.enriched_count += 1

        stats.processing_time_seconds = round(time.monotonic() - started, 2)
        logger.info(
            "[%s] enrichment: %d items, %d enriched, %d failed, %d cache hits",
            order.vendor, stats.total_items, stats.enriched_count, stats.failed_count, stats.cache_hits,
        )
        return stats

    # -------- grouping --------
    def _group(self, items: List[LineItem]) -> Dict[str, List[LineItem]]:
        groups: Dict[str, List[LineItem]] = {}
        for item in items:
            if carries_catalog_data(item):
                item.mark(ItemStatus.VERIFIED_IN_DOCUMENT, confidence=100)
                continue
            groups.setdefault(item.product_key, []).append(item)
        return groups

    def _settle_without_source(self, items: List[LineItem]) -> None:
        for item in items:
            if item.upc or item.wholesale_price is not None:
                item.mark(ItemStatus.VERIFIED_IN_DOCUMENT, confidence=100)
            else:
                item.mark(ItemStatus.ENRICHMENT_FAILED, confidence=0, detail=NO_CATALOG_SOURCE)

    # -------- lookups --------
    def _dispatch(self, to_fetch: Dict[str, List[LineItem]], stats: EnrichmentStats) -> None:
        keys = list(to_fetch)
        if not keys:
            return
        size, delay = self.settings.batch_policy(self.adapter.kind)
        batches = [keys[i:i + size] for i in range(0, len(keys), size)]

        for n, batch in enumerate(batches, start=1):
            logger.debug("batch %d/%d (%d lookups)", n, len(batches), len(batch))
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = {key: pool.submit(self._resolve, key, to_fetch[key][0]) for key in batch}
                # _resolve returns a result for every key; nothing raises out of result()
                results = {key: fut.result() for key, fut in futures.items()}
            stats.lookups += len(batch)
            for key in batch:
                self._apply(to_fetch[key], results[key])

            if n < len(batches):
                self._pause(delay)

    def _resolve(self, key: str, item: LineItem) -> EnrichmentResult:
        try:
            candidates = self.adapter.lookup(item)
            match = None
            if not isinstance(candidates, NoCandidates):
                match = self.matcher.best_match(self.adapter.match_attributes(item), candidates)
        except AdapterError as exc:
            logger.warning("lookup failed for %s: %s", key, exc)
            return Failed(reason=str(exc))
        except Exception as exc:
            # A catalog answering in a shape we don't understand fails this group only
            logger.exception("unexpected error resolving %s", key)
            return Failed(reason=f"unexpected catalog response: {type(exc).__name__}: {exc}")

        if match is None:
            logger.debug("no candidates for %s (%s)", key, candidates.lookup)
            entry = self.cache.put(key, None)
        else:
            entry = self.cache.put(key, match)
        # First insert wins if another run resolved the same key meanwhile
        return self._result_from(entry.result, from_cache=False)

    @staticmethod
    def _result_from(match: Optional[MatchResult], from_cache: bool) -> EnrichmentResult:
        if match is None or match.variant is None:
            return Failed(reason=NO_CANDIDATES, from_cache=from_cache)
        return Enriched(match=match, from_cache=from_cache)

    def _pause(self, seconds: float) -> None:
        remaining = self.deadline.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._sleep(seconds)

    # -------- results --------
    def _apply(self, items: List[LineItem], result: EnrichmentResult) -> None:
        for item in items:
            if isinstance(result, Failed):
                item.mark(ItemStatus.ENRICHMENT_FAILED, confidence=0, detail=result.reason)
                continue
            apply_match(item, result.match)
            status = ItemStatus.ENRICHED_VALIDATED if result.match.validated else ItemStatus.ENRICHED_LOW_CONFIDENCE
            item.mark(status, confidence=result.match.score)


def apply_match(item: LineItem, match: MatchResult) -> None:
    """Copy catalog fields onto the item. Parsed values stay where the catalog is silent."""
    v = match.variant
    for name in ("upc", "sku", "wholesale_price", "msrp", "material", "frame_type", "in_stock", "availability"):
        value = getattr(v, name)
        if value is not None:
            setattr(item, name, value)
    for name in ("bridge", "temple", "color_name"):
        if getattr(item, name) is None and getattr(v, name) is not None:
            setattr(item, name, getattr(v, name))
    item.api_verified = match.validated
    item.enriched_data["match"] = {
        "source": v.source,
        "url": v.url,
        "model": v.model,
        "color_code": v.color_code,
        "eye_size": v.eye_size,
        "bridge": v.bridge,
        "temple": v.temple,
    }
