"""
kpi/ltv.py

LTV estimator.

LTV = ARPU * average lifespan in months

Lifespan is averaged over ended memberships (terminal status with an end
date) as ``days / 30``.  With no ended memberships the lifespan falls back
to a configured floor (12 months by default).  That floor is an assumption
applied to young companies, not a measurement.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from app.config import get_metrics_settings
from app.domain.commerce import TERMINAL_STATUSES, Membership
from app.domain.store import Store
from kpi.money import round_money
from kpi.revenue import arpu

logger = logging.getLogger(__name__)

_DAYS_PER_MONTH = 30.0


def average_lifespan_from(
    memberships: Iterable[Membership],
    default_months: float,
) -> float:
    durations = [
        (m.end_date - m.start_date).total_seconds() / 86400 / _DAYS_PER_MONTH
        for m in memberships
        if m.status in TERMINAL_STATUSES and m.end_date is not None
    ]
    if not durations:
        return float(default_months)
    return sum(durations) / len(durations)


def average_lifespan_months(
    store: Store,
    company_id: str,
    default_months: float | None = None,
) -> float:
    if default_months is None:
        default_months = get_metrics_settings().default_lifespan_months
    memberships = store.get_memberships(company_id, statuses=TERMINAL_STATUSES)
    return average_lifespan_from(memberships, default_months)


def ltv_from(arpu_value: Decimal, lifespan_months: float) -> Decimal:
    return round_money(arpu_value * Decimal(str(lifespan_months)))


def ltv(store: Store, company_id: str, default_months: float | None = None) -> Decimal:
    lifespan = average_lifespan_months(store, company_id, default_months)
    value = ltv_from(arpu(store, company_id), lifespan)
    logger.debug("LTV company=%s lifespan=%.3f value=%s", company_id, lifespan, value)
    return value
