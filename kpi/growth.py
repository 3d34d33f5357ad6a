"""
kpi/growth.py

Monthly member growth series built on the temporal evaluator.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from app.domain.commerce import Membership
from app.domain.store import Store
from kpi.money import round_half_up, safe_percent
from kpi.periods import add_months, month_key, month_label, month_start
from kpi.temporal import (
    active_member_ids_at,
    churned_member_ids_in_window,
    new_member_ids_in_window,
)


@dataclass(frozen=True)
class MemberGrowthPoint:
    date: str
    month: str
    members: int
    new_members: int
    churned_members: int


def member_growth_from(
    memberships: Iterable[Membership],
    now: datetime,
    months: int = 12,
) -> list[MemberGrowthPoint]:
    """
    One point per trailing calendar month, oldest first.

    ``members`` is the distinct active count at the month's end (``now``
    for the running month); new and churned use ``[month_start, month_end)``.
    """
    memberships = list(memberships)
    current_month = month_start(now)
    points: list[MemberGrowthPoint] = []
    for back in range(months - 1, -1, -1):
        start = add_months(current_month, -back)
        end = now if back == 0 else add_months(start, 1)
        points.append(
            MemberGrowthPoint(
                date=month_label(start),
                month=month_key(start),
                members=len(active_member_ids_at(memberships, end)),
                new_members=len(new_member_ids_in_window(memberships, start, end)),
                churned_members=len(churned_member_ids_in_window(memberships, start, end)),
            )
        )
    return points


def member_growth(
    store: Store,
    company_id: str,
    now: datetime,
    months: int = 12,
) -> list[MemberGrowthPoint]:
    return member_growth_from(store.get_memberships(company_id), now, months)


def headcount_change(current: int, previous: int) -> float:
    """
    Percent change of active headcount.

    With no previous members any current member counts as 100 % growth.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round_half_up(safe_percent(current - previous, previous), 1)
