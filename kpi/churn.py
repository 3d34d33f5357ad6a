"""
kpi/churn.py

Churn-rate calculator.

Churn Rate = churned_in_window / active_at_start * 100

``active_at_start`` uses the date-window predicate, so a membership that
was cancelled later still counts if it was running at ``start``.  A member
counts as churned when one of the memberships that was running at
``start`` ended with a terminal status inside ``[start, end]``, even when
another of their memberships stays open past ``end``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from app.domain.commerce import TERMINAL_STATUSES, Membership
from app.domain.store import Store
from kpi.money import round_half_up, safe_percent
from kpi.temporal import group_by_member, is_active_at

logger = logging.getLogger(__name__)


def churn_counts(
    memberships: Iterable[Membership],
    start: datetime,
    end: datetime,
) -> tuple[int, int]:
    """Return ``(active_at_start, churned_in_window)`` by distinct member."""
    active_at_start = 0
    churned = 0
    for rows in group_by_member(memberships).values():
        running = [m for m in rows if is_active_at(m, start)]
        if not running:
            continue
        active_at_start += 1
        if _churned(running, start, end):
            churned += 1
    return active_at_start, churned


def _churned(running: Sequence[Membership], start: datetime, end: datetime) -> bool:
    return any(
        m.status in TERMINAL_STATUSES and m.end_date is not None and start <= m.end_date <= end
        for m in running
    )


def churn_rate_from(memberships: Iterable[Membership], start: datetime, end: datetime) -> float:
    """Churn percentage in [0, 100], 1 decimal; 0 when nobody was active at start."""
    active_at_start, churned = churn_counts(memberships, start, end)
    return round_half_up(safe_percent(churned, active_at_start), 1)


def churn_rate(store: Store, company_id: str, start: datetime, end: datetime) -> float:
    rate = churn_rate_from(store.get_memberships(company_id), start, end)
    logger.debug("Churn rate company=%s window=[%s, %s] value=%.1f", company_id, start, end, rate)
    return rate


def churned_memberships(
    store: Store,
    company_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Membership]:
    """Terminal memberships, optionally limited to those ending inside ``[start, end]``."""
    rows = store.get_memberships(company_id, statuses=TERMINAL_STATUSES)
    if start is not None:
        rows = [m for m in rows if m.end_date is not None and m.end_date >= start]
    if end is not None:
        rows = [m for m in rows if m.end_date is not None and m.end_date <= end]
    return rows
