"""
tests/test_member_analytics.py

Tests for MemberAnalyticsOrchestrator: batch recompute, the thread-pool
path and the single-member scorecard.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from app.config import MetricsSettings
from db.repositories.errors import MemberNotFoundError
from risk.orchestrator import MemberAnalyticsOrchestrator
from conftest import NOW, InMemoryStore, utc


@pytest.fixture()
def populated(store: InMemoryStore, monthly_plan) -> InMemoryStore:
    payer = store.add_member(created_at=utc(2024, 1, 15), member_id="mem_payer")
    store.add_membership(payer, monthly_plan, utc(2024, 1, 15))
    for month in range(1, 7):
        store.add_payment(payer, "49", utc(2024, month, 15))

    lapsed = store.add_member(created_at=utc(2023, 6, 1), member_id="mem_lapsed")
    store.add_membership(lapsed, monthly_plan, utc(2023, 6, 1), utc(2023, 12, 1), "cancelled")
    store.add_payment(lapsed, "49", utc(2023, 6, 1))
    store.add_payment(lapsed, "49", utc(2023, 7, 1), status="failed")

    store.add_member(created_at=utc(2024, 6, 1), member_id="mem_new")

    # another tenant's member must not be scored
    store.add_company("co_2")
    store.add_member(company_id="co_2", member_id="mem_other")
    return store


class TestRecompute:
    def test_upserts_every_member(self, populated: InMemoryStore, settings: MetricsSettings) -> None:
        snapshots = MemberAnalyticsOrchestrator(populated, settings).recompute("co_1", NOW)

        assert [s.member_id for s in snapshots] == ["mem_payer", "mem_lapsed", "mem_new"]
        assert set(populated.analytics) == {"mem_payer", "mem_lapsed", "mem_new"}
        assert all(s.calculated_at == NOW for s in snapshots)

    def test_snapshot_figures(self, populated: InMemoryStore, settings: MetricsSettings) -> None:
        MemberAnalyticsOrchestrator(populated, settings).recompute("co_1", NOW)

        payer = populated.analytics["mem_payer"]
        assert payer.total_revenue == Decimal("294.00")
        assert payer.total_payments == 6
        assert payer.average_payment == Decimal("49.00")
        assert payer.lifetime_months == 5
        assert payer.last_payment_at == utc(2024, 6, 15)

        newcomer = populated.analytics["mem_new"]
        assert newcomer.total_revenue == Decimal("0.00")
        assert newcomer.last_payment_at is None
        assert newcomer.engagement_score == 0

    def test_thread_pool_matches_serial(
        self, populated: InMemoryStore, settings: MetricsSettings
    ) -> None:
        serial = MemberAnalyticsOrchestrator(populated, settings).recompute("co_1", NOW)
        pooled = MemberAnalyticsOrchestrator(
            populated, replace(settings, scoring_workers=4)
        ).recompute("co_1", NOW)
        assert pooled == serial

    def test_recompute_is_idempotent(
        self, populated: InMemoryStore, settings: MetricsSettings
    ) -> None:
        orchestrator = MemberAnalyticsOrchestrator(populated, settings)
        first = orchestrator.recompute("co_1", NOW)
        second = orchestrator.recompute("co_1", NOW)
        assert first == second
        assert len(populated.analytics) == 3

    def test_scores_in_range(self, populated: InMemoryStore, settings: MetricsSettings) -> None:
        for snapshot in MemberAnalyticsOrchestrator(populated, settings).recompute("co_1", NOW):
            assert 0 <= snapshot.churn_risk_score <= 100
            assert 0 <= snapshot.engagement_score <= 100

    def test_empty_company(self, store: InMemoryStore, settings: MetricsSettings) -> None:
        assert MemberAnalyticsOrchestrator(store, settings).recompute("co_1", NOW) == []
        assert store.analytics == {}


class TestMemberProfile:
    def test_scorecard_carries_label_and_color(
        self, populated: InMemoryStore, settings: MetricsSettings
    ) -> None:
        card = MemberAnalyticsOrchestrator(populated, settings).member_profile(
            "co_1", "mem_lapsed", NOW
        )
        assert card.snapshot.member_id == "mem_lapsed"
        assert card.risk_label == "High"
        assert card.risk_color == "red"

    def test_profile_is_not_persisted(
        self, populated: InMemoryStore, settings: MetricsSettings
    ) -> None:
        MemberAnalyticsOrchestrator(populated, settings).member_profile("co_1", "mem_payer", NOW)
        assert populated.analytics == {}

    @pytest.mark.parametrize("member_id", ["mem_missing", "mem_other"])
    def test_unknown_member_raises(
        self, populated: InMemoryStore, settings: MetricsSettings, member_id: str
    ) -> None:
        with pytest.raises(MemberNotFoundError):
            MemberAnalyticsOrchestrator(populated, settings).member_profile("co_1", member_id, NOW)
