"""
kpi/products.py

Per-product performance table.

All member counts are by distinct member.  Revenue is attributed through
``Payment.membership_id``, so a member holding two products does not have
every payment counted against both.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from app.domain.commerce import CURRENT_STATUSES, PAYMENT_SUCCEEDED, TERMINAL_STATUSES, Membership
from app.domain.store import Store
from kpi.money import ZERO, round_half_up, round_money, safe_percent, to_decimal
from kpi.mrr import sum_monthly_equivalents

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductPerformance:
    id: str
    name: str
    plans: int
    revenue: Decimal
    mrr: Decimal
    active_members: int
    total_members: int
    churned_members: int
    churn_rate: float


def product_performance(store: Store, company_id: str) -> list[ProductPerformance]:
    """One row per product, highest revenue first."""
    memberships = store.get_memberships(company_id)
    payments = store.get_payments(company_id, statuses=(PAYMENT_SUCCEEDED,))

    revenue_by_membership: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        if payment.membership_id is not None:
            revenue_by_membership[payment.membership_id] += to_decimal(payment.amount)

    rows: list[ProductPerformance] = []
    for product in store.get_products(company_id):
        plans = {plan.id: plan for plan in store.get_plans(product.id)}
        on_product = [m for m in memberships if m.plan_id in plans]
        rows.append(_summarize(product.id, product.name, plans, on_product, revenue_by_membership))

    rows.sort(key=lambda row: row.revenue, reverse=True)
    logger.debug("Product performance company=%s products=%d", company_id, len(rows))
    return rows


def _summarize(
    product_id: str,
    name: str,
    plans: dict,
    memberships: list[Membership],
    revenue_by_membership: dict[str, Decimal],
) -> ProductPerformance:
    current = [m for m in memberships if m.status in CURRENT_STATUSES]
    total_members = len({m.member_id for m in memberships})
    churned_members = len({m.member_id for m in memberships if m.status in TERMINAL_STATUSES})
    revenue = sum((revenue_by_membership.get(m.id, ZERO) for m in memberships), ZERO)
    return ProductPerformance(
        id=product_id,
        name=name,
        plans=len(plans),
        revenue=round_money(revenue),
        mrr=round_money(sum_monthly_equivalents(current, plans)),
        active_members=len({m.member_id for m in current}),
        total_members=total_members,
        churned_members=churned_members,
        churn_rate=round_half_up(safe_percent(churned_members, total_members), 1),
    )
