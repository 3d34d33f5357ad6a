"""
kpi/payments.py

Payment health summaries: success rate, average value, processor mix and
the recent failed-payment list used for dunning follow-up.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.domain.commerce import PAYMENT_FAILED, PAYMENT_SUCCEEDED, Member, Payment
from app.domain.store import Store
from kpi.money import ZERO, round_half_up, round_money, safe_percent, to_decimal

DEFAULT_PROCESSOR = "card"


@dataclass(frozen=True)
class PaymentSummary:
    total_payments: int
    failed_count: int
    success_rate: float
    average_value: Decimal
    refunded_amount: Decimal
    method_breakdown: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class FailedPayment:
    payment: Payment
    member: Member | None


@dataclass(frozen=True)
class FailedPaymentReport:
    payments: list[FailedPayment]
    total_failed: int
    total_amount: Decimal
    unique_members: int


def summarize_payments(payments: Iterable[Payment]) -> PaymentSummary:
    payments = list(payments)
    succeeded = [p for p in payments if p.status == PAYMENT_SUCCEEDED]
    failed_count = sum(1 for p in payments if p.status == PAYMENT_FAILED)

    total = sum((to_decimal(p.amount) for p in succeeded), ZERO)
    average = total / len(succeeded) if succeeded else ZERO
    methods = Counter(
        str((p.metadata or {}).get("payment_processor") or DEFAULT_PROCESSOR) for p in succeeded
    )

    return PaymentSummary(
        total_payments=len(succeeded),
        failed_count=failed_count,
        success_rate=round_half_up(safe_percent(len(succeeded), len(succeeded) + failed_count), 1),
        average_value=round_money(average),
        refunded_amount=round_money(sum((to_decimal(p.refunded_amount) for p in payments), ZERO)),
        method_breakdown=dict(methods),
    )


def payment_summary(
    store: Store,
    company_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> PaymentSummary:
    return summarize_payments(store.get_payments(company_id, start=start, end=end))


def failed_payments(store: Store, company_id: str, limit: int = 100) -> FailedPaymentReport:
    """Most recent failed payments (newest first) plus totals over all failures."""
    failed = sorted(
        store.get_payments(company_id, statuses=(PAYMENT_FAILED,)),
        key=lambda p: p.payment_date,
        reverse=True,
    )
    members = {m.id: m for m in store.get_members(company_id)}
    return FailedPaymentReport(
        payments=[FailedPayment(payment=p, member=members.get(p.member_id)) for p in failed[:limit]],
        total_failed=len(failed),
        total_amount=round_money(sum((to_decimal(p.amount) for p in failed), ZERO)),
        unique_members=len({p.member_id for p in failed}),
    )
