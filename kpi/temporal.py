"""
kpi/temporal.py

Temporal membership evaluator.

Every "active / new / churned" question in the engine is answered here,
always by distinct member id.  A member can hold several concurrent or
sequential memberships; counting rows instead of members double counts.

Ground truth for "active at T" is the date window, not the status field:
a membership cancelled today was still active last month.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

from app.domain.commerce import MEMBERSHIP_ACTIVE, TERMINAL_STATUSES, Membership


def is_active_at(membership: Membership, moment: datetime) -> bool:
    """``start_date <= moment`` and (open-ended or ``end_date >= moment``)."""
    if membership.start_date > moment:
        return False
    return membership.end_date is None or membership.end_date >= moment


def group_by_member(memberships: Iterable[Membership]) -> dict[str, list[Membership]]:
    """Memberships keyed by member id, each list ordered by start date."""
    grouped: dict[str, list[Membership]] = defaultdict(list)
    for membership in memberships:
        grouped[membership.member_id].append(membership)
    for rows in grouped.values():
        rows.sort(key=lambda m: m.start_date)
    return dict(grouped)


def active_member_ids_at(memberships: Iterable[Membership], moment: datetime) -> set[str]:
    return {m.member_id for m in memberships if is_active_at(m, moment)}


def current_member_ids(
    memberships: Iterable[Membership],
    statuses: Iterable[str],
) -> set[str]:
    """Distinct members holding at least one membership in *statuses* right now."""
    wanted = frozenset(statuses)
    return {m.member_id for m in memberships if m.status in wanted}


def first_start_dates(memberships: Iterable[Membership]) -> dict[str, datetime]:
    """Earliest membership start per member (the member's signup instant)."""
    firsts: dict[str, datetime] = {}
    for membership in memberships:
        seen = firsts.get(membership.member_id)
        if seen is None or membership.start_date < seen:
            firsts[membership.member_id] = membership.start_date
    return firsts


def new_member_ids_in_window(
    memberships: Iterable[Membership],
    start: datetime,
    end: datetime,
) -> set[str]:
    """Members whose first-ever membership starts in ``[start, end)``."""
    return {
        member_id
        for member_id, first_start in first_start_dates(memberships).items()
        if start <= first_start < end
    }


def churned_member_ids_in_window(
    memberships: Iterable[Membership],
    start: datetime,
    end: datetime,
) -> set[str]:
    """
    Members whose latest membership ended by churn in ``[start, end)``.

    The latest membership (by start date) must carry a terminal status and
    an end date inside the window.  A member with an ``active`` membership
    starting at or after that end date re-subscribed and is not churned.
    """
    churned: set[str] = set()
    for member_id, rows in group_by_member(memberships).items():
        if _churned_in_window(rows, start, end):
            churned.add(member_id)
    return churned


def _churned_in_window(rows: Sequence[Membership], start: datetime, end: datetime) -> bool:
    latest = rows[-1]
    if latest.status not in TERMINAL_STATUSES or latest.end_date is None:
        return False
    if not start <= latest.end_date < end:
        return False
    return not any(
        m.status == MEMBERSHIP_ACTIVE and m.start_date >= latest.end_date
        for m in rows
        if m is not latest
    )


def member_active_at(rows: Iterable[Membership], moment: datetime) -> bool:
    """True when any of one member's memberships is active at *moment*."""
    return any(is_active_at(m, moment) for m in rows)


def count_active_in(
    member_ids: Iterable[str],
    by_member: Mapping[str, Sequence[Membership]],
    moment: datetime,
) -> int:
    """How many of *member_ids* are active at *moment*."""
    return sum(1 for member_id in member_ids if member_active_at(by_member.get(member_id, ()), moment))
