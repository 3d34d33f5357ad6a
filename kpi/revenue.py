"""
kpi/revenue.py

Revenue aggregator.

Only ``succeeded`` payments count toward revenue.  Date windows bound
``payment_date`` inclusively on both ends.

Formulas
--------
Total revenue   = sum(amount) of succeeded payments in the window
Revenue growth  = (current - previous) / previous * 100, 0 when previous is 0
ARPU            = MRR / distinct members with an active or trialing membership
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Final

from app.domain.commerce import CURRENT_STATUSES, PAYMENT_SUCCEEDED, Payment
from app.domain.store import Store
from kpi.money import ZERO, round_half_up, round_money, safe_percent, to_decimal
from kpi.mrr import calculate_mrr
from kpi.periods import day_start, month_key, week_start
from kpi.temporal import current_member_ids

logger = logging.getLogger(__name__)

BUCKET_DAY: Final[str] = "day"
BUCKET_WEEK: Final[str] = "week"
BUCKET_MONTH: Final[str] = "month"

_BUCKET_KEYS: dict[str, Callable[[datetime], str]] = {
    BUCKET_DAY: lambda moment: day_start(moment).date().isoformat(),
    BUCKET_WEEK: lambda moment: week_start(moment).date().isoformat(),
    BUCKET_MONTH: month_key,
}


@dataclass(frozen=True)
class RevenuePoint:
    """Revenue summed over one bucket.  ``label`` is the bucket start."""

    label: str
    revenue: Decimal


@dataclass(frozen=True)
class Window:
    """Closed ``[start, end]`` interval."""

    start: datetime
    end: datetime


# ---------------------------------------------------------------------------
# Pure aggregation
# ---------------------------------------------------------------------------


def sum_succeeded(payments: Iterable[Payment]) -> Decimal:
    """Unrounded sum of succeeded payment amounts."""
    return sum(
        (to_decimal(p.amount) for p in payments if p.status == PAYMENT_SUCCEEDED),
        ZERO,
    )


def bucket_revenue(payments: Iterable[Payment], bucket: str = BUCKET_MONTH) -> list[RevenuePoint]:
    """
    Group succeeded payments by bucket start and sum each bucket.

    Weeks start on Sunday; months are keyed ``YYYY-MM``.  Empty buckets
    are omitted, so callers charting a continuous axis must fill gaps.
    """
    key_for = _BUCKET_KEYS.get(bucket)
    if key_for is None:
        raise ValueError(f"Unknown revenue bucket {bucket!r}; expected one of {sorted(_BUCKET_KEYS)}.")

    grouped: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        if payment.status != PAYMENT_SUCCEEDED:
            continue
        grouped[key_for(payment.payment_date)] += to_decimal(payment.amount)

    return [RevenuePoint(label=label, revenue=round_money(grouped[label])) for label in sorted(grouped)]


def growth_percent(current: Decimal | float, previous: Decimal | float) -> float:
    """Period-over-period change in percent, 1 decimal; 0 when previous is 0."""
    if not previous:
        return 0.0
    return round_half_up(safe_percent(Decimal(str(current)) - Decimal(str(previous)), previous), 1)


# ---------------------------------------------------------------------------
# Store-facing queries
# ---------------------------------------------------------------------------


def total_revenue(
    store: Store,
    company_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Decimal:
    payments = store.get_payments(company_id, statuses=(PAYMENT_SUCCEEDED,), start=start, end=end)
    return round_money(sum_succeeded(payments))


def revenue_time_series(
    store: Store,
    company_id: str,
    start: datetime,
    end: datetime,
    bucket: str = BUCKET_MONTH,
) -> list[RevenuePoint]:
    payments = store.get_payments(company_id, statuses=(PAYMENT_SUCCEEDED,), start=start, end=end)
    series = bucket_revenue(payments, bucket)
    logger.debug(
        "Revenue series company=%s bucket=%s points=%d", company_id, bucket, len(series)
    )
    return series


def revenue_growth(
    store: Store,
    company_id: str,
    current: Window,
    previous: Window,
) -> float:
    current_revenue = total_revenue(store, company_id, current.start, current.end)
    previous_revenue = total_revenue(store, company_id, previous.start, previous.end)
    return growth_percent(current_revenue, previous_revenue)


def active_member_count(store: Store, company_id: str) -> int:
    """Distinct members holding an active or trialing membership."""
    memberships = store.get_memberships(company_id, statuses=CURRENT_STATUSES)
    return len(current_member_ids(memberships, CURRENT_STATUSES))


def arpu_from(mrr: Decimal, active_members: int) -> Decimal:
    if active_members == 0:
        return round_money(ZERO)
    return round_money(mrr / active_members)


def arpu(store: Store, company_id: str) -> Decimal:
    """MRR per distinct active member, 2 decimals; 0 with no active members."""
    return arpu_from(calculate_mrr(store, company_id), active_member_count(store, company_id))
