"""
app/domain/commerce.py

Immutable snapshots of the records synced from the commerce platform.

The metrics engine only ever reads these.  Members, memberships and
payments are written by the sync collaborator; MemberAnalyticsSnapshot and
BenchmarkBucket are derived values written back through the Store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Final

# ---------------------------------------------------------------------------
# Status vocabularies
# ---------------------------------------------------------------------------

MEMBERSHIP_ACTIVE: Final[str] = "active"
MEMBERSHIP_TRIALING: Final[str] = "trialing"
MEMBERSHIP_PAST_DUE: Final[str] = "past_due"
MEMBERSHIP_COMPLETED: Final[str] = "completed"
MEMBERSHIP_CANCELLED: Final[str] = "cancelled"
MEMBERSHIP_CANCELED: Final[str] = "canceled"
MEMBERSHIP_EXPIRED: Final[str] = "expired"

CURRENT_STATUSES: Final[frozenset[str]] = frozenset({MEMBERSHIP_ACTIVE, MEMBERSHIP_TRIALING})
"""Statuses that count as "active right now" for the current-moment fast paths."""

TERMINAL_STATUSES: Final[frozenset[str]] = frozenset(
    {MEMBERSHIP_CANCELLED, MEMBERSHIP_CANCELED, MEMBERSHIP_EXPIRED}
)
"""Statuses that mark a membership as ended by churn."""

PAYMENT_SUCCEEDED: Final[str] = "succeeded"
PAYMENT_FAILED: Final[str] = "failed"
PAYMENT_PENDING: Final[str] = "pending"
PAYMENT_REFUNDED: Final[str] = "refunded"


# ---------------------------------------------------------------------------
# Synced entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Company:
    """
    Tenant that owns products, members and payments.
    """

    id: str
    name: str
    external_company_id: str | None = None


@dataclass(frozen=True)
class Member:
    """
    Identity record.  ``created_at`` is the member's join date.
    """

    id: str
    company_id: str
    external_user_id: str
    created_at: datetime
    email: str | None = None
    username: str | None = None


@dataclass(frozen=True)
class Product:
    id: str
    company_id: str
    name: str
    is_app: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class Plan:
    """
    Pricing policy of a product.

    ``price`` is kept as synced (decimal or decimal string); the MRR
    normalizer tolerates malformed values.
    """

    id: str
    product_id: str
    price: Decimal | str
    billing_period: str
    currency: str = "USD"
    name: str | None = None


@dataclass(frozen=True)
class Membership:
    """
    Time-bounded relationship between a member and a plan.

    ``end_date`` of ``None`` means the membership is still open.
    """

    id: str
    company_id: str
    member_id: str
    plan_id: str
    status: str
    start_date: datetime
    end_date: datetime | None = None
    product_id: str | None = None
    cancel_at_period_end: bool = False


@dataclass(frozen=True)
class Payment:
    """
    One transaction.  Amounts are in the platform's native currency units.
    """

    id: str
    company_id: str
    member_id: str
    amount: Decimal
    status: str
    payment_date: datetime
    membership_id: str | None = None
    currency: str = "USD"
    refunded_amount: Decimal = Decimal("0")
    metadata: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Derived records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MemberAnalyticsSnapshot:
    """
    Cached per-member analytics.  Always reproducible from the synced records.
    """

    member_id: str
    company_id: str
    total_revenue: Decimal
    total_payments: int
    average_payment: Decimal
    lifetime_months: int
    last_payment_at: datetime | None
    churn_risk_score: int
    engagement_score: int
    calculated_at: datetime


@dataclass(frozen=True)
class BenchmarkBucket:
    """
    Running cross-tenant averages for one (niche, revenue_range) bucket.
    """

    niche: str
    revenue_range: str
    avg_mrr: Decimal
    avg_churn_rate: Decimal
    avg_ltv: Decimal
    avg_arpu: Decimal
    sample_size: int
    contributing_companies: tuple[str, ...] = field(default_factory=tuple)
