from __future__ import annotations

from typing import Any, Dict, Optional

from frame_orders.models import Order
from frame_orders.orchestrator import EnrichmentStats


def enrichment_summary(stats: EnrichmentStats) -> Dict[str, Any]:
    return {
        "totalItems": stats.total_items,
        "enrichedCount": stats.enriched_count,
        "failedCount": stats.failed_count,
        "cacheHits": stats.cache_hits,
        "enrichmentRate": stats.enrichment_rate,
        "processingTimeSeconds": stats.processing_time_seconds,
    }


def assemble(vendor: str, order: Optional[Order], stats: Optional[EnrichmentStats] = None) -> Dict[str, Any]:
    """Final output record.

    Order totals are recomputed here from the items that are being returned,
    never carried over from parse time.
    """
    if order is None:
        return {
            "vendor": vendor,
            "order": None,
            "items": [],
            "enrichment": enrichment_summary(stats or EnrichmentStats()),
        }

    order.recompute_totals()
    if stats is None:
        stats = EnrichmentStats(total_items=len(order.items))
    return {
        "vendor": vendor,
        "order": order.to_output(),
        "items": [item.to_output() for item in order.items],
        "enrichment": enrichment_summary(stats),
    }
