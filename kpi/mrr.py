"""
kpi/mrr.py

MRR normalizer.

Billing periods
---------------
monthly / month / "30"   -> price
yearly  / year  / "365"  -> price / 12
weekly  / week  / "7"    -> price * 4.33
daily   / day   / "1"    -> price * 30
"<n>" (other n > 0)      -> price * 30 / n
anything else            -> 0 (excluded, never an error)

One malformed plan must never fail a company's MRR, so parse failures
contribute zero instead of raising.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.commerce import CURRENT_STATUSES, Membership, Plan
from app.domain.store import Store
from kpi.money import ZERO, round_money, to_decimal
from kpi.temporal import is_active_at

logger = logging.getLogger(__name__)

_WEEKS_PER_MONTH = Decimal("4.33")
_DAYS_PER_MONTH = Decimal("30")

_MONTHLY = frozenset({"monthly", "month", "30"})
_YEARLY = frozenset({"yearly", "year", "365"})
_WEEKLY = frozenset({"weekly", "week", "7"})
_DAILY = frozenset({"daily", "day", "1"})


def monthly_equivalent(price: Any, billing_period: Any) -> Decimal:
    """
    Monthly-equivalent amount of one billing cycle of *price*.

    Unrounded; callers round once at the point the total is returned.
    """
    amount = to_decimal(price)
    period = str(billing_period or "").strip().lower()

    if period in _MONTHLY:
        return amount
    if period in _YEARLY:
        return amount / 12
    if period in _WEEKLY:
        return amount * _WEEKS_PER_MONTH
    if period in _DAILY:
        return amount * _DAYS_PER_MONTH

    try:
        days = Decimal(period)
    except (InvalidOperation, ValueError):
        return ZERO
    if not days.is_finite() or days <= 0:
        return ZERO
    return amount * _DAYS_PER_MONTH / days


def is_recognized_period(billing_period: Any) -> bool:
    """True when *billing_period* maps to a non-zero multiplier."""
    return monthly_equivalent(Decimal("1"), billing_period) != ZERO


def plans_by_id(store: Store, company_id: str) -> dict[str, Plan]:
    """All plans of the company's products keyed by plan id."""
    plans: dict[str, Plan] = {}
    for product in store.get_products(company_id):
        for plan in store.get_plans(product.id):
            plans[plan.id] = plan
    return plans


def sum_monthly_equivalents(
    memberships: Iterable[Membership],
    plans: Mapping[str, Plan],
) -> Decimal:
    """Unrounded MRR over *memberships*; unknown plans and periods contribute zero."""
    total = ZERO
    unrecognized: set[str] = set()
    for membership in memberships:
        plan = plans.get(membership.plan_id)
        if plan is None:
            logger.warning(
                "Membership %s references unknown plan %s; excluded from MRR.",
                membership.id,
                membership.plan_id,
            )
            continue
        if not is_recognized_period(plan.billing_period):
            if plan.id not in unrecognized:
                unrecognized.add(plan.id)
                logger.warning(
                    "Plan %s has unrecognised billing period %r; excluded from MRR.",
                    plan.id,
                    plan.billing_period,
                )
            continue
        total += monthly_equivalent(plan.price, plan.billing_period)
    return total


def mrr_from_memberships(
    memberships: Iterable[Membership],
    plans: Mapping[str, Plan],
    as_of: datetime | None = None,
) -> Decimal:
    """
    MRR over a membership snapshot.

    With *as_of*, memberships active at that instant (date window) count;
    without it, memberships currently ``active`` or ``trialing`` count.
    """
    if as_of is None:
        selected = [m for m in memberships if m.status in CURRENT_STATUSES]
    else:
        selected = [m for m in memberships if is_active_at(m, as_of)]
    return round_money(sum_monthly_equivalents(selected, plans))


def calculate_mrr(store: Store, company_id: str, as_of: datetime | None = None) -> Decimal:
    """Company MRR, 2 decimal places."""
    memberships = store.get_memberships(company_id)
    mrr = mrr_from_memberships(memberships, plans_by_id(store, company_id), as_of)
    logger.debug("MRR company=%s as_of=%s value=%s", company_id, as_of, mrr)
    return mrr
