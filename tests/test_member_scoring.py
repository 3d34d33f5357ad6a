"""
tests/test_member_scoring.py

Unit tests for the member scoring models, the score normalizer and the
churn-risk labels.

Coverage
--------
- Churn risk: brand-new member without payments, clamping, declining amounts
- Engagement: zero without payments, healthy payer
- Bounds and integer output for both models
- Label and color thresholds
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from risk.labels import get_churn_risk_color, get_churn_risk_label
from risk.normalizer import ScoreNormalizer
from risk.profile import build_profile
from risk.scoring import ChurnRiskModel, EngagementModel
from conftest import NOW, InMemoryStore, utc


@pytest.fixture()
def churn_model() -> ChurnRiskModel:
    return ChurnRiskModel()


@pytest.fixture()
def engagement_model() -> EngagementModel:
    return EngagementModel()


def _profile(store: InMemoryStore, member):
    return build_profile(
        member,
        [p for p in store.payments if p.member_id == member.id],
        [m for m in store.memberships if m.member_id == member.id],
        NOW,
    )


# ---------------------------------------------------------------------------
# ChurnRiskModel
# ---------------------------------------------------------------------------


class TestChurnRiskModel:
    def test_new_member_without_payments_is_risky(
        self, store: InMemoryStore, churn_model: ChurnRiskModel
    ) -> None:
        member = store.add_member(created_at=NOW - timedelta(days=40))
        score = churn_model.compute(_profile(store, member))
        assert score >= 55
        assert get_churn_risk_label(score) == "High"

    def test_healthy_payer_scores_zero(
        self, store: InMemoryStore, monthly_plan, churn_model: ChurnRiskModel
    ) -> None:
        member = store.add_member(created_at=utc(2024, 1, 15))
        store.add_membership(member, monthly_plan, utc(2024, 1, 15))
        for month in range(1, 7):
            store.add_payment(member, "49", utc(2024, month, 15))

        assert churn_model.compute(_profile(store, member)) == 0

    def test_score_is_clamped(
        self, store: InMemoryStore, monthly_plan, churn_model: ChurnRiskModel
    ) -> None:
        member = store.add_member(created_at=utc(2023, 1, 1))
        store.add_membership(member, monthly_plan, utc(2023, 1, 1), utc(2023, 6, 1), "cancelled")
        store.add_membership(member, monthly_plan, utc(2023, 6, 1), utc(2023, 9, 1), "expired")
        for day in range(1, 5):
            store.add_payment(member, "49", utc(2023, 2, day), status="failed")

        assert churn_model.compute(_profile(store, member)) == 100

    def test_declining_payments_add_points(
        self, store: InMemoryStore, monthly_plan, churn_model: ChurnRiskModel
    ) -> None:
        flat = store.add_member(created_at=utc(2023, 1, 1))
        shrinking = store.add_member(created_at=utc(2023, 1, 1))
        for member in (flat, shrinking):
            store.add_membership(member, monthly_plan, utc(2023, 1, 1))
        for month, amount in ((3, "50"), (4, "50"), (5, "20"), (6, "20")):
            store.add_payment(flat, "50", utc(2024, month, 1))
            store.add_payment(shrinking, amount, utc(2024, month, 1))

        flat_score = churn_model.compute(_profile(store, flat))
        shrinking_score = churn_model.compute(_profile(store, shrinking))
        assert shrinking_score - flat_score == ChurnRiskModel.DECLINING_POINTS

    def test_declining_needs_minimum_history(
        self, store: InMemoryStore, monthly_plan
    ) -> None:
        member = store.add_member(created_at=utc(2023, 1, 1))
        store.add_membership(member, monthly_plan, utc(2023, 1, 1))
        for month, amount in ((4, "50"), (5, "50"), (6, "10")):
            store.add_payment(member, amount, utc(2024, month, 1))

        model = ChurnRiskModel(declining_min_count=4)
        assert model._is_declining(_profile(store, member)) is False

    def test_cancel_at_period_end_counts_as_cancelled(
        self, store: InMemoryStore, monthly_plan, churn_model: ChurnRiskModel
    ) -> None:
        plain = store.add_member(created_at=utc(2023, 1, 1))
        leaving = store.add_member(created_at=utc(2023, 1, 1))
        store.add_membership(plain, monthly_plan, utc(2023, 1, 1))
        store.add_membership(leaving, monthly_plan, utc(2023, 1, 1), cancel_at_period_end=True)
        for member in (plain, leaving):
            store.add_payment(member, "49", utc(2024, 6, 1))

        difference = churn_model.compute(_profile(store, leaving)) - churn_model.compute(
            _profile(store, plain)
        )
        assert difference == ChurnRiskModel.CANCELLED_POINTS


# ---------------------------------------------------------------------------
# EngagementModel
# ---------------------------------------------------------------------------


class TestEngagementModel:
    def test_zero_without_successful_payments(
        self, store: InMemoryStore, engagement_model: EngagementModel
    ) -> None:
        member = store.add_member()
        store.add_payment(member, "49", utc(2024, 5, 1), status="failed")
        assert engagement_model.compute(_profile(store, member)) == 0

    def test_healthy_payer(
        self, store: InMemoryStore, monthly_plan, engagement_model: EngagementModel
    ) -> None:
        member = store.add_member(created_at=utc(2024, 1, 15))
        store.add_membership(member, monthly_plan, utc(2024, 1, 15))
        for month in range(1, 7):
            store.add_payment(member, "49", utc(2024, month, 15))

        # consistency 40 + recency 30 + reliability 15 + tenure 5 * 2
        assert engagement_model.compute(_profile(store, member)) == 95

    def test_failures_lower_reliability(
        self, store: InMemoryStore, monthly_plan, engagement_model: EngagementModel
    ) -> None:
        clean = store.add_member(created_at=utc(2024, 1, 15))
        flaky = store.add_member(created_at=utc(2024, 1, 15))
        for member in (clean, flaky):
            for month in range(1, 7):
                store.add_payment(member, "49", utc(2024, month, 15))
        for day in (2, 3):
            store.add_payment(flaky, "49", utc(2024, 6, day), status="failed")

        assert engagement_model.compute(_profile(store, flaky)) < engagement_model.compute(
            _profile(store, clean)
        )


class TestScoreBounds:
    @pytest.mark.parametrize("days_ago", [0, 5, 20, 40, 400])
    def test_scores_are_bounded_integers(
        self,
        store: InMemoryStore,
        monthly_plan,
        churn_model: ChurnRiskModel,
        engagement_model: EngagementModel,
        days_ago: int,
    ) -> None:
        member = store.add_member(created_at=NOW - timedelta(days=days_ago))
        store.add_membership(member, monthly_plan, member.created_at)
        store.add_payment(member, "49", member.created_at)

        profile = _profile(store, member)
        for score in (churn_model.compute(profile), engagement_model.compute(profile)):
            assert isinstance(score, int)
            assert 0 <= score <= 100


# ---------------------------------------------------------------------------
# ScoreNormalizer and labels
# ---------------------------------------------------------------------------


class TestScoreNormalizer:
    @pytest.mark.parametrize(
        "points, expected",
        [(-5, 0), (0, 0), (54.5, 55), (54.4, 54), (100, 100), (160, 100)],
    )
    def test_to_score(self, points: float, expected: int) -> None:
        assert ScoreNormalizer().to_score(points) == expected

    def test_clamp(self) -> None:
        normalizer = ScoreNormalizer()
        assert normalizer.clamp(5.0, 0.0, 1.0) == 1.0
        assert normalizer.clamp(-5.0, 0.0, 1.0) == 0.0
        assert normalizer.clamp(0.5, 0.0, 1.0) == 0.5


class TestRiskLabels:
    @pytest.mark.parametrize(
        "score, label, color",
        [
            (0, "Low", "green"),
            (29, "Low", "green"),
            (30, "Medium", "yellow"),
            (59, "Medium", "yellow"),
            (60, "High", "red"),
            (100, "High", "red"),
        ],
    )
    def test_thresholds(self, score: int, label: str, color: str) -> None:
        assert get_churn_risk_label(score) == label
        assert get_churn_risk_color(score) == color
