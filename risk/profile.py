"""
risk/profile.py

Per-member input slice for the scoring models, plus the plain analytics
figures (revenue, payment count, tenure) cached alongside the scores.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from app.domain.commerce import PAYMENT_FAILED, PAYMENT_SUCCEEDED, Member, Membership, Payment
from kpi.money import ZERO, round_money, to_decimal
from kpi.periods import days_between, whole_months_between


@dataclass(frozen=True)
class MemberProfile:
    """
    Read-only view of one member at reference time ``now``.

    Payments are ordered newest first.
    """

    member: Member
    payments: tuple[Payment, ...]
    memberships: tuple[Membership, ...]
    lifetime_months: int
    last_payment_at: datetime | None
    now: datetime

    @property
    def successful_payments(self) -> tuple[Payment, ...]:
        return tuple(p for p in self.payments if p.status == PAYMENT_SUCCEEDED)

    @property
    def failed_count(self) -> int:
        return sum(1 for p in self.payments if p.status == PAYMENT_FAILED)

    def days_since_last_payment(self, fallback_to_join: bool = True) -> int | None:
        """Days since the last successful payment, or since joining when none."""
        anchor = self.last_payment_at
        if anchor is None:
            if not fallback_to_join:
                return None
            anchor = self.member.created_at
        return days_between(anchor, self.now)


def build_profile(
    member: Member,
    payments: Iterable[Payment],
    memberships: Iterable[Membership],
    now: datetime,
) -> MemberProfile:
    ordered = tuple(sorted(payments, key=lambda p: p.payment_date, reverse=True))
    return MemberProfile(
        member=member,
        payments=ordered,
        memberships=tuple(memberships),
        lifetime_months=lifetime_months(member.created_at, now),
        last_payment_at=last_payment_date(ordered),
        now=now,
    )


def total_revenue(payments: Iterable[Payment]) -> Decimal:
    return round_money(
        sum((to_decimal(p.amount) for p in payments if p.status == PAYMENT_SUCCEEDED), ZERO)
    )


def average_payment(payments: Sequence[Payment]) -> Decimal:
    successful = [to_decimal(p.amount) for p in payments if p.status == PAYMENT_SUCCEEDED]
    if not successful:
        return round_money(ZERO)
    return round_money(sum(successful, ZERO) / len(successful))


def lifetime_months(joined_at: datetime, now: datetime) -> int:
    return whole_months_between(joined_at, now)


def last_payment_date(payments: Iterable[Payment]) -> datetime | None:
    dates = [p.payment_date for p in payments if p.status == PAYMENT_SUCCEEDED]
    return max(dates) if dates else None
