import pytest

from frame_orders.adapters.http import Deadline
from frame_orders.assembler import assemble
from frame_orders.cache import EnrichmentCache
from frame_orders.models import ItemStatus, LineItem, MatchResult, Order
from frame_orders.orchestrator import (
    NO_CANDIDATES,
    NO_CATALOG_SOURCE,
    EnrichmentOrchestrator,
    EnrichmentStats,
    apply_match,
)
from tests.conftest import FakeAdapter, line_item, variant


def _order(items):
    order = Order(vendor="marchon", order_number="1")
    order.attach(items)
    return order


def _catalog(*models):
    return {
        m: [variant(m, "001", "52", upc=f"UPC-{m}", bridge="17", wholesale_price=100.0, in_stock=True)]
        for m in models
    }


@pytest.fixture
def cache():
    return EnrichmentCache()


@pytest.fixture
def orchestrate(cache, settings, fake_sleep):
    def _run(adapter, order, deadline=None):
        return EnrichmentOrchestrator(adapter, cache, settings, deadline=deadline, sleep=fake_sleep).enrich(order)
    return _run


class TestPartialFailure:
    def test_one_timeout_does_not_sink_the_order(self, orchestrate):
        models = ["M1", "M2", "M3", "M4", "M5"]
        adapter = FakeAdapter(_catalog(*models), fail={"M3"})
        order = _order([line_item(m) for m in models])

        stats = orchestrate(adapter, order)

        assert stats.total_items == 5
        assert stats.failed_count == 1
        assert stats.enriched_count == 4
        assert stats.enrichment_rate == 80.0
        assert len(order.items) == 5
        failed = [i for i in order.items if i.status is ItemStatus.ENRICHMENT_FAILED]
        assert [i.model for i in failed] == ["M3"]
        assert failed[0].confidence_score == 0
        assert "timed out" in failed[0].enriched_data["detail"]

    def test_failures_are_not_cached(self, orchestrate, cache):
        adapter = FakeAdapter(_catalog("M1"), fail={"M1"})
        orchestrate(adapter, _order([line_item("M1")]))
        assert len(cache) == 0

    def test_no_candidates(self, orchestrate, cache):
        order = _order([line_item("GHOST")])
        stats = orchestrate(FakeAdapter({}), order)
        item = order.items[0]
        assert item.status is ItemStatus.ENRICHMENT_FAILED
        assert item.enriched_data["detail"] == NO_CANDIDATES
        assert stats.failed_count == 1
        # Confirmed absence is remembered
        assert cache.get(item.product_key) == (None, True)

    def test_unexpected_adapter_error_is_isolated(self, orchestrate, cache):
        class BrokenAdapter(FakeAdapter):
            def lookup(self, item):
                if item.model == "M2":
                    raise AttributeError("'str' object has no attribute 'get'")
                return super().lookup(item)

        order = _order([line_item("M1"), line_item("M2")])
        stats = orchestrate(BrokenAdapter(_catalog("M1", "M2")), order)

        assert len(order.items) == 2
        assert order.items[0].status is ItemStatus.ENRICHED_VALIDATED
        assert order.items[1].status is ItemStatus.ENRICHMENT_FAILED
        assert "AttributeError" in order.items[1].enriched_data["detail"]
        assert stats.failed_count == 1
        assert cache.get(order.items[1].product_key) == (None, False)


class TestGrouping:
    def test_identical_frames_share_one_lookup(self, orchestrate):
        adapter = FakeAdapter(_catalog("M1"))
        order = _order([line_item("M1", quantity=1), line_item("M1", quantity=2), line_item("M1", quantity=4)])

        stats = orchestrate(adapter, order)

        assert adapter.calls == ["M1"]
        assert stats.lookups == 1
        assert {i.upc for i in order.items} == {"UPC-M1"}
        assert {i.confidence_score for i in order.items} == {70}
        assert all(i.status is ItemStatus.ENRICHED_VALIDATED for i in order.items)

    def test_items_with_catalog_data_skip_lookup(self, orchestrate):
        adapter = FakeAdapter(_catalog("M1"))
        order = _order([line_item("M1", upc="123", wholesale_price=50.0)])
        stats = orchestrate(adapter, order)
        assert adapter.calls == []
        assert order.items[0].status is ItemStatus.VERIFIED_IN_DOCUMENT
        assert order.items[0].confidence_score == 100
        assert stats.verified_in_document == 1
        assert stats.enriched_count == 1
        assert stats.enrichment_rate == 100.0

    def test_batches_pause_between_each_other(self, orchestrate, sleeps, settings):
        adapter = FakeAdapter(_catalog("A", "B", "C", "D", "E"))
        orchestrate(adapter, _order([line_item(m) for m in "ABCDE"]))
        # api_batch_size=2 -> three batches, two pauses
        assert sleeps == [settings.api_batch_delay, settings.api_batch_delay]
        assert sorted(adapter.calls) == list("ABCDE")


class TestCacheAcrossRuns:
    def test_second_run_hits_cache(self, orchestrate):
        adapter = FakeAdapter(_catalog("M1"))
        orchestrate(adapter, _order([line_item("M1")]))

        second = _order([line_item("M1")])
        stats = orchestrate(adapter, second)

        assert adapter.calls == ["M1"]
        assert stats.cache_hits == 1
        assert stats.lookups == 0
        assert second.items[0].upc == "UPC-M1"
        assert second.items[0].status is ItemStatus.ENRICHED_VALIDATED

    def test_cached_result_is_identical(self, orchestrate):
        adapter = FakeAdapter(_catalog("M1"))
        first = _order([line_item("M1")])
        second = _order([line_item("M1")])
        orchestrate(adapter, first)
        orchestrate(adapter, second)
        assert first.items[0].to_output() == second.items[0].to_output()


class TestWithoutCatalogSource:
    def test_items_with_document_data_are_verified(self, orchestrate):
        order = _order([
            line_item("K1", upc="715317146401"),
            line_item("K2"),
        ])
        stats = orchestrate(None, order)
        assert order.items[0].status is ItemStatus.VERIFIED_IN_DOCUMENT
        assert order.items[1].status is ItemStatus.ENRICHMENT_FAILED
        assert order.items[1].enriched_data["detail"] == NO_CATALOG_SOURCE
        assert stats.failed_count == 1
        assert stats.verified_in_document == 1
        assert stats.enriched_count == 1
        assert stats.total_items == stats.enriched_count + stats.failed_count
        assert stats.enrichment_rate == 50.0


class TestLowConfidence:
    def test_weak_match_keeps_data_but_flags_it(self, orchestrate):
        catalog = {"M1": [variant("M1", "999", "52", upc="U1")]}
        order = _order([line_item("M1", color_code="001", eye="52")])
        orchestrate(FakeAdapter(catalog), order)
        item = order.items[0]
        # eye only: 30 < 50
        assert item.status is ItemStatus.ENRICHED_LOW_CONFIDENCE
        assert item.confidence_score == 30
        assert item.upc == "U1"
        assert item.api_verified is False


class TestAggregates:
    def test_totals_follow_enriched_items(self, orchestrate):
        adapter = FakeAdapter(_catalog("M1", "M2"))
        order = _order([line_item("M1", quantity=2), line_item("M2", quantity=1), line_item("M3", quantity=1)])
        assert order.total_value == 0.0

        orchestrate(adapter, order)
        out = assemble("marchon", order)

        assert out["order"]["total_pieces"] == 4
        assert order.total_value == 300.0
        assert order.total_value == sum(
            i["wholesale_price"] * i["quantity"] for i in out["items"] if i["wholesale_price"] is not None
        )

    def test_stats_rate_rounding(self):
        assert EnrichmentStats(enriched_count=2, failed_count=1).enrichment_rate == 66.7
        assert EnrichmentStats().enrichment_rate == 100.0


class TestApplyMatch:
    def test_parsed_values_survive_where_catalog_is_silent(self):
        item = LineItem(brand="B", model="M", color_name="Black", bridge="18", eye_size="52")
        match = MatchResult(variant=variant("M", "1", "52", bridge="17", temple="140", upc="U"), score=90, validated=True)
        apply_match(item, match)
        assert item.bridge == "18"
        assert item.temple == "140"
        assert item.color_name == "Black"
        assert item.upc == "U"
        assert item.api_verified is True
        assert item.enriched_data["match"]["source"] == "fake"


class TestDeadline:
    def test_expired_deadline_fails_remaining_lookups(self, cache, settings, fake_sleep):
        class Clock:
            now = 0.0

            def __call__(self):
                return self.now

        clock = Clock()
        deadline = Deadline(1.0, clock=clock)
        clock.now = 5.0

        class DeadlineAdapter(FakeAdapter):
            def lookup(self, item):
                deadline.bound(1.0)
                return super().lookup(item)

        order = _order([line_item("M1"), line_item("M2")])
        stats = EnrichmentOrchestrator(
            DeadlineAdapter(_catalog("M1", "M2")), cache, settings, deadline=deadline, sleep=fake_sleep,
        ).enrich(order)
        assert stats.failed_count == 2
        assert len(order.items) == 2
        assert all("deadline" in i.enriched_data["detail"] for i in order.items)
