"""
tests/test_metrics_service.py

Tests for MetricsService: the overview computation, its day-keyed cache
and the settings-driven delegations.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

import pytest

from app.config import MetricsSettings
from app.services.metrics_service import OVERVIEW_METRIC, MetricsService, OverviewMetrics
from conftest import NOW, InMemoryMetricsCache, InMemoryStore, utc


@pytest.fixture()
def busy_store(store: InMemoryStore) -> InMemoryStore:
    """
    A stays all along, B joins on Jun 1 and C (yearly plan) cancels on
    Jun 1 after exactly 90 days.
    """
    monthly = store.add_plan(store.add_product(name="Community"), price="49")
    yearly = store.add_plan(store.add_product(name="Archive"), price="120", billing_period="yearly")

    a, b, c = store.add_member(), store.add_member(), store.add_member()
    store.add_membership(a, monthly, utc(2024, 1, 1))
    store.add_membership(b, monthly, utc(2024, 6, 1))
    store.add_membership(c, yearly, utc(2024, 3, 3), utc(2024, 6, 1), "cancelled")
    store.add_payment(a, "49", utc(2024, 6, 1))
    store.add_payment(b, "49", utc(2024, 6, 2), status="failed")
    return store


class TestComputeOverview:
    def test_headline_numbers(self, busy_store: InMemoryStore, settings: MetricsSettings) -> None:
        overview = MetricsService(busy_store, settings=settings).compute_overview("co_1", NOW)

        assert overview.mrr == Decimal("98.00")
        # 49 + 120/12 a month ago against 98 now
        assert overview.mrr_growth == 66.1
        assert overview.total_revenue == Decimal("49.00")
        assert overview.active_members == 2
        assert overview.member_growth == 0.0
        assert overview.churn_rate == 50.0
        assert overview.churn_change == 0.0
        assert overview.arpu == Decimal("49.00")
        assert overview.ltv == Decimal("147.00")

    def test_empty_company_is_all_zero(self, store: InMemoryStore, settings: MetricsSettings) -> None:
        overview = MetricsService(store, settings=settings).compute_overview("co_1", NOW)

        assert overview == OverviewMetrics(
            mrr=Decimal("0.00"),
            mrr_growth=0.0,
            total_revenue=Decimal("0.00"),
            active_members=0,
            member_growth=0.0,
            churn_rate=0.0,
            churn_change=0.0,
            ltv=Decimal("0.00"),
            arpu=Decimal("0.00"),
        )

    def test_payload_round_trip(self, busy_store: InMemoryStore, settings: MetricsSettings) -> None:
        overview = MetricsService(busy_store, settings=settings).compute_overview("co_1", NOW)
        payload = overview.to_payload()

        assert payload["mrr"] == "98.00"
        assert payload["active_members"] == 2
        assert OverviewMetrics.from_payload(payload) == overview


class TestOverviewCache:
    def test_second_call_is_served_from_cache(
        self,
        busy_store: InMemoryStore,
        cache: InMemoryMetricsCache,
        settings: MetricsSettings,
    ) -> None:
        service = MetricsService(busy_store, cache, settings)

        first = service.overview("co_1", NOW)
        second = service.overview("co_1", NOW)

        assert first == second
        assert cache.gets == 2
        assert cache.sets == 1
        assert cache.entries[("co_1", OVERVIEW_METRIC, NOW.date())]["mrr"] == "98.00"

    def test_invalidate_forces_recompute(
        self,
        busy_store: InMemoryStore,
        cache: InMemoryMetricsCache,
        settings: MetricsSettings,
        monthly_plan,
    ) -> None:
        service = MetricsService(busy_store, cache, settings)
        service.overview("co_1", NOW)

        busy_store.add_membership(busy_store.add_member(), monthly_plan, utc(2024, 6, 10))
        assert service.overview("co_1", NOW).mrr == Decimal("98.00")

        assert service.invalidate("co_1") == 1
        assert service.overview("co_1", NOW).mrr == Decimal("147.00")
        assert cache.sets == 2

    def test_new_day_is_a_new_entry(
        self,
        busy_store: InMemoryStore,
        cache: InMemoryMetricsCache,
        settings: MetricsSettings,
    ) -> None:
        service = MetricsService(busy_store, cache, settings)
        service.overview("co_1", NOW)
        service.overview("co_1", utc(2024, 6, 16, 9))
        assert cache.sets == 2

    def test_without_cache(self, busy_store: InMemoryStore, settings: MetricsSettings) -> None:
        service = MetricsService(busy_store, settings=settings)
        assert service.overview("co_1", NOW).mrr == Decimal("98.00")
        assert service.invalidate("co_1") == 0


class TestDelegations:
    def test_settings_drive_series_lengths(
        self, busy_store: InMemoryStore, settings: MetricsSettings
    ) -> None:
        service = MetricsService(
            busy_store, settings=replace(settings, member_growth_months=3, cohorts_count=2)
        )
        assert [p.month for p in service.member_growth("co_1", NOW)] == [
            "2024-04",
            "2024-05",
            "2024-06",
        ]
        assert [row.month for row in service.cohorts("co_1", NOW)] == ["2024-06"]

    def test_ltv_uses_configured_default(self, store: InMemoryStore, monthly_plan) -> None:
        store.add_membership(store.add_member(), monthly_plan, utc(2024, 1, 1))
        service = MetricsService(store, settings=MetricsSettings(default_lifespan_months=6.0))
        assert service.ltv("co_1") == Decimal("294.00")

    def test_single_metrics(self, busy_store: InMemoryStore, settings: MetricsSettings) -> None:
        service = MetricsService(busy_store, settings=settings)
        assert service.mrr("co_1") == Decimal("98.00")
        assert service.arpu("co_1") == Decimal("49.00")
        assert service.total_revenue("co_1") == Decimal("49.00")
        assert service.churn_rate("co_1", utc(2024, 5, 15, 12), NOW) == 50.0
        assert [p.label for p in service.revenue_series("co_1", utc(2024, 1, 1), NOW)] == ["2024-06"]
        assert service.payment_summary("co_1").failed_count == 1
        assert service.failed_payments("co_1").total_failed == 1
        assert {row.name for row in service.products("co_1")} == {"Community", "Archive"}


class FailingCache(InMemoryMetricsCache):
    """Cache whose backend is unreachable."""

    def get(self, company_id, metric_type, day):
        self.gets += 1
        raise RuntimeError("cache down")

    def set(self, company_id, metric_type, day, payload, value=None):
        self.sets += 1
        raise RuntimeError("cache down")


class TestOverviewCacheFailures:
    def test_unreachable_cache_falls_back_to_compute(
        self,
        busy_store: InMemoryStore,
        settings: MetricsSettings,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        cache = FailingCache()
        service = MetricsService(busy_store, cache, settings)

        with caplog.at_level(logging.WARNING, logger="app.services.metrics_service"):
            overview = service.overview("co_1", NOW)

        assert overview == service.compute_overview("co_1", NOW)
        assert cache.gets == 1
        assert cache.sets == 1
        assert "metrics_cache_read_failed" in caplog.text
        assert "metrics_cache_write_failed" in caplog.text

    def test_failed_write_still_returns_result(
        self, busy_store: InMemoryStore, settings: MetricsSettings
    ) -> None:
        class ReadOnlyCache(InMemoryMetricsCache):
            def set(self, company_id, metric_type, day, payload, value=None):
                raise RuntimeError("read-only replica")

        overview = MetricsService(busy_store, ReadOnlyCache(), settings).overview("co_1", NOW)
        assert overview.mrr == Decimal("98.00")
