"""
kpi/cohorts.py

Cohort retention engine.

A cohort is the set of distinct members whose earliest membership starts
inside a calendar month.  For each month offset ``k`` the retention is the
share of the cohort with any membership active at ``cohort_start + k
months``.  Offsets whose check date lies after ``now`` are not observable
yet and carry the sentinel ``-1``, which is distinct from 0 % retention.
Month 0 is 100 by definition.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from app.domain.commerce import Membership
from app.domain.store import Store
from kpi.money import round_half_up, safe_percent
from kpi.periods import add_months, month_key, month_label, month_start
from kpi.temporal import count_active_in, first_start_dates, group_by_member

logger = logging.getLogger(__name__)

NOT_OBSERVABLE: Final[float] = -1.0
MAX_OFFSET: Final[int] = 5


@dataclass(frozen=True)
class CohortRetention:
    """
    Retention row for one signup month.

    ``retention`` maps ``"month0"`` .. ``"month5"`` to a percentage in
    [0, 100] or :data:`NOT_OBSERVABLE`.
    """

    cohort: str
    month: str
    size: int
    retention: dict[str, float] = field(default_factory=dict)


def cohort_retention_from(
    memberships: Iterable[Membership],
    now: datetime,
    cohorts_count: int = 6,
    max_offset: int = MAX_OFFSET,
) -> list[CohortRetention]:
    """Retention rows for the trailing *cohorts_count* months, oldest first."""
    memberships = list(memberships)
    signups = first_start_dates(memberships)
    by_member = group_by_member(memberships)
    current_month = month_start(now)

    rows: list[CohortRetention] = []
    for back in range(cohorts_count - 1, -1, -1):
        cohort_start = add_months(current_month, -back)
        cohort_end = add_months(cohort_start, 1)
        cohort = [
            member_id for member_id, first in signups.items() if cohort_start <= first < cohort_end
        ]
        if not cohort:
            continue

        retention = {"month0": 100.0}
        for offset in range(1, max_offset + 1):
            check_date = add_months(cohort_start, offset)
            if check_date > now:
                retention[f"month{offset}"] = NOT_OBSERVABLE
                continue
            retained = count_active_in(cohort, by_member, check_date)
            retention[f"month{offset}"] = round_half_up(safe_percent(retained, len(cohort)), 1)

        rows.append(
            CohortRetention(
                cohort=month_label(cohort_start),
                month=month_key(cohort_start),
                size=len(cohort),
                retention=retention,
            )
        )
    return rows


def cohort_retention(
    store: Store,
    company_id: str,
    now: datetime,
    cohorts_count: int = 6,
) -> list[CohortRetention]:
    rows = cohort_retention_from(store.get_memberships(company_id), now, cohorts_count)
    logger.debug("Cohorts company=%s requested=%d non_empty=%d", company_id, cohorts_count, len(rows))
    return rows
