"""
risk/orchestrator.py

Orchestrates member analytics recomputation by coordinating the Store,
the profile builder and the two scoring models. Contains no scoring math.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from app.config import MetricsSettings, get_metrics_settings
from app.domain.commerce import Member, MemberAnalyticsSnapshot, Membership, Payment
from app.domain.store import Store
from app.logging_utils import timed_event
from db.repositories.errors import MemberNotFoundError
from risk.labels import get_churn_risk_color, get_churn_risk_label
from risk.profile import average_payment, build_profile, total_revenue
from risk.scoring import ChurnRiskModel, EngagementModel

logger = logging.getLogger(__name__)

_T = TypeVar("_T", Membership, Payment)


@dataclass(frozen=True)
class MemberScorecard:
    """A member's fresh analytics snapshot with its display classification."""

    snapshot: MemberAnalyticsSnapshot
    risk_label: str
    risk_color: str


class MemberAnalyticsOrchestrator:
    """Coordinates per-member scoring and the batch upsert of the results.

    Each member's computation reads only that member's slice of payments
    and memberships, so slices may be scored on a bounded thread pool
    (``MetricsSettings.scoring_workers``).  Results are collected before a
    single batch upsert; transaction control stays with the Store's owner.
    """

    def __init__(self, store: Store, settings: MetricsSettings | None = None) -> None:
        """
        Args:
            store: Source of members, payments and memberships; also the
                   sink for the recomputed snapshots.
            settings: Engine settings; read from the environment if omitted.
        """
        self._store = store
        self._settings = settings or get_metrics_settings()
        self._churn_model = ChurnRiskModel(
            declining_ratio=self._settings.declining_payment_ratio,
            declining_min_count=self._settings.declining_payment_min_count,
        )
        self._engagement_model = EngagementModel()

    def score(
        self,
        member: Member,
        payments: Iterable[Payment],
        memberships: Iterable[Membership],
        now: datetime,
    ) -> MemberAnalyticsSnapshot:
        """Build one member's snapshot from their own payments and memberships.

        Args:
            member: The member being scored.
            payments: All of the member's payments, any status.
            memberships: All of the member's memberships, any status.
            now: Reference time for tenure and recency.

        Returns:
            A MemberAnalyticsSnapshot with both scores in [0, 100].
        """
        profile = build_profile(member, payments, memberships, now)
        return MemberAnalyticsSnapshot(
            member_id=member.id,
            company_id=member.company_id,
            total_revenue=total_revenue(profile.payments),
            total_payments=len(profile.successful_payments),
            average_payment=average_payment(profile.payments),
            lifetime_months=profile.lifetime_months,
            last_payment_at=profile.last_payment_at,
            churn_risk_score=self._churn_model.compute(profile),
            engagement_score=self._engagement_model.compute(profile),
            calculated_at=now,
        )

    def recompute(self, company_id: str, now: datetime) -> list[MemberAnalyticsSnapshot]:
        """Score every member of the company and upsert the snapshots.

        Args:
            company_id: Tenant whose members are rescored.
            now: Reference time shared by every member of the run.

        Returns:
            The snapshots, in the Store's member order.
        """
        with timed_event(logger, "member_analytics_recompute", company_id=company_id) as extra:
            members = self._store.get_members(company_id)
            payments = _by_member(self._store.get_payments(company_id))
            memberships = _by_member(self._store.get_memberships(company_id))

            def score_one(member: Member) -> MemberAnalyticsSnapshot:
                return self.score(
                    member,
                    payments.get(member.id, ()),
                    memberships.get(member.id, ()),
                    now,
                )

            snapshots = self._score_all(members, score_one)
            written = self._store.upsert_member_analytics(snapshots)
            extra.update(members=len(members), written=written)
        return snapshots

    def member_profile(self, company_id: str, member_id: str, now: datetime) -> MemberScorecard:
        """Fresh scorecard for one member, without persisting it.

        Raises:
            MemberNotFoundError: The member does not belong to the company.
        """
        member = next((m for m in self._store.get_members(company_id) if m.id == member_id), None)
        if member is None:
            raise MemberNotFoundError(f"Member {member_id!r} not found in company {company_id!r}.")

        snapshot = self.score(
            member,
            self._store.get_payments(company_id, member_id=member_id),
            self._store.get_memberships(company_id, member_id=member_id),
            now,
        )
        return MemberScorecard(
            snapshot=snapshot,
            risk_label=get_churn_risk_label(snapshot.churn_risk_score),
            risk_color=get_churn_risk_color(snapshot.churn_risk_score),
        )

    def _score_all(self, members: Sequence[Member], score_one) -> list[MemberAnalyticsSnapshot]:
        workers = self._settings.scoring_workers
        if workers <= 1 or len(members) <= 1:
            return [score_one(member) for member in members]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="member-scoring") as pool:
            return list(pool.map(score_one, members))


def _by_member(rows: Iterable[_T]) -> dict[str, list[_T]]:
    grouped: dict[str, list[_T]] = defaultdict(list)
    for row in rows:
        grouped[row.member_id].append(row)
    return grouped
