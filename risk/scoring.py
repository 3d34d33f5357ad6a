"""
risk/scoring.py

Member churn-risk and engagement models implementing BaseMemberScoreModel.
Both are additive point systems clamped to a 0–100 integer scale.
"""

from decimal import Decimal
from statistics import mean

from app.domain.commerce import (
    MEMBERSHIP_ACTIVE,
    MEMBERSHIP_CANCELED,
    MEMBERSHIP_CANCELLED,
    MEMBERSHIP_COMPLETED,
    MEMBERSHIP_EXPIRED,
    MEMBERSHIP_PAST_DUE,
    MEMBERSHIP_TRIALING,
)
from kpi.money import to_decimal
from risk.base import BaseMemberScoreModel
from risk.normalizer import ScoreNormalizer
from risk.profile import MemberProfile

_CANCELLED = frozenset({MEMBERSHIP_CANCELLED, MEMBERSHIP_CANCELED})
_LIVE = frozenset({MEMBERSHIP_ACTIVE, MEMBERSHIP_TRIALING, MEMBERSHIP_COMPLETED})


class ChurnRiskModel(BaseMemberScoreModel):
    """Heuristic likelihood that a member cancels soon.

    Each signal adds a fixed number of points; the total is clamped
    to [0, 100]. Thresholds mirror the labels in :mod:`risk.labels`.
    """

    NO_PAYMENTS_POINTS: int = 40
    FAILED_PAYMENT_POINTS: int = 10
    FAILED_PAYMENT_CAP: int = 30
    CANCELLED_POINTS: int = 20
    PAST_DUE_POINTS: int = 25
    EXPIRED_POINTS: int = 15
    DECLINING_POINTS: int = 15
    NO_LIVE_MEMBERSHIP_POINTS: int = 25

    # (days strictly greater than, points), checked in order
    INACTIVITY_TIERS: tuple[tuple[int, int], ...] = ((60, 30), (45, 25), (35, 15), (30, 10))
    # (months strictly less than, points), checked in order
    TENURE_TIERS: tuple[tuple[int, int], ...] = ((1, 10), (3, 5))

    def __init__(
        self,
        declining_ratio: float = 0.7,
        declining_min_count: int = 4,
    ) -> None:
        """
        Args:
            declining_ratio: Recent-pair average below this fraction of the
                             prior-pair average counts as declining.
            declining_min_count: Successful payments required before the
                                 declining signal is evaluated.
        """
        self._normalizer = ScoreNormalizer()
        self._declining_ratio = declining_ratio
        self._declining_min_count = declining_min_count

    def compute(self, profile: MemberProfile) -> int:
        """Compute the churn-risk score.

        Signals:
            - no successful payment ever
            - failed payments, 10 points each up to 30
            - days since the last successful payment (join date if none)
            - any cancelled / cancel-at-period-end, past_due, expired membership
            - declining recent payment amounts
            - short tenure
            - memberships exist but none is active, trialing or completed

        Args:
            profile: The member's data slice.

        Returns:
            An integer risk score in [0, 100].
        """
        successful = profile.successful_payments
        statuses = {m.status for m in profile.memberships}
        points = 0

        if not successful:
            points += self.NO_PAYMENTS_POINTS

        points += min(profile.failed_count * self.FAILED_PAYMENT_POINTS, self.FAILED_PAYMENT_CAP)
        points += _first_tier_above(profile.days_since_last_payment(), self.INACTIVITY_TIERS)

        if statuses & _CANCELLED or any(m.cancel_at_period_end for m in profile.memberships):
            points += self.CANCELLED_POINTS
        if MEMBERSHIP_PAST_DUE in statuses:
            points += self.PAST_DUE_POINTS
        if MEMBERSHIP_EXPIRED in statuses:
            points += self.EXPIRED_POINTS

        if self._is_declining(profile):
            points += self.DECLINING_POINTS

        points += _first_tier_below(profile.lifetime_months, self.TENURE_TIERS)

        if profile.memberships and not statuses & _LIVE:
            points += self.NO_LIVE_MEMBERSHIP_POINTS

        return self._normalizer.to_score(points)

    def _is_declining(self, profile: MemberProfile) -> bool:
        successful = profile.successful_payments
        if len(successful) < self._declining_min_count:
            return False
        recent = mean(to_decimal(p.amount) for p in successful[:2])
        prior = mean(to_decimal(p.amount) for p in successful[2:4])
        return recent < prior * Decimal(str(self._declining_ratio))


class EngagementModel(BaseMemberScoreModel):
    """Heuristic measure of a member's payment consistency and recency."""

    CONSISTENCY_WEIGHT: float = 40.0
    RELIABILITY_WEIGHT: float = 15.0
    TENURE_POINTS_PER_MONTH: int = 2
    TENURE_CAP: int = 15

    # (days strictly less than, points), checked in order
    RECENCY_TIERS: tuple[tuple[int, int], ...] = ((7, 30), (14, 20), (30, 10))

    def __init__(self) -> None:
        self._normalizer = ScoreNormalizer()

    def compute(self, profile: MemberProfile) -> int:
        """Compute the engagement score.

        Members with no successful payment score 0. Otherwise the score
        sums payment consistency against tenure, recency of the last
        successful payment, the share of non-failed payments and a small
        tenure bonus.

        Args:
            profile: The member's data slice.

        Returns:
            An integer engagement score in [0, 100].
        """
        successful = profile.successful_payments
        if not successful:
            return 0

        expected = max(profile.lifetime_months, 1)
        points = min(len(successful) / expected, 1.0) * self.CONSISTENCY_WEIGHT

        points += _first_tier_below(
            profile.days_since_last_payment(fallback_to_join=False),
            self.RECENCY_TIERS,
        )

        failure_rate = profile.failed_count / max(len(profile.payments), 1)
        points += (1 - failure_rate) * self.RELIABILITY_WEIGHT
        points += min(profile.lifetime_months * self.TENURE_POINTS_PER_MONTH, self.TENURE_CAP)

        return self._normalizer.to_score(points)


def _first_tier_above(value: int | None, tiers: tuple[tuple[int, int], ...]) -> int:
    if value is None:
        return 0
    for threshold, points in tiers:
        if value > threshold:
            return points
    return 0


def _first_tier_below(value: int | None, tiers: tuple[tuple[int, int], ...]) -> int:
    if value is None:
        return 0
    for threshold, points in tiers:
        if value < threshold:
            return points
    return 0
