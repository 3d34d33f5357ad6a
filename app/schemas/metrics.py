"""
Response schemas for the metrics, member analytics and benchmark queries.

Built from the engine's dataclasses with ``model_validate(obj)``; money
fields keep their ``Decimal`` type and serialize as strings in JSON mode.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class OverviewResponse(_FromAttributes):
    mrr: Decimal
    mrr_growth: float
    total_revenue: Decimal
    active_members: int
    member_growth: float
    churn_rate: float
    churn_change: float
    ltv: Decimal
    arpu: Decimal


class RevenuePointResponse(_FromAttributes):
    label: str
    revenue: Decimal


class CohortRetentionResponse(_FromAttributes):
    cohort: str
    month: str
    size: int
    retention: dict[str, float] = Field(
        default_factory=dict,
        description="month0..month5 percentages; -1 marks offsets not observable yet.",
    )


class MemberGrowthPointResponse(_FromAttributes):
    date: str
    month: str
    members: int
    new_members: int
    churned_members: int


class ProductPerformanceResponse(_FromAttributes):
    id: str
    name: str
    plans: int
    revenue: Decimal
    mrr: Decimal
    active_members: int
    total_members: int
    churned_members: int
    churn_rate: float


class PaymentSummaryResponse(_FromAttributes):
    total_payments: int
    failed_count: int
    success_rate: float
    average_value: Decimal
    refunded_amount: Decimal
    method_breakdown: dict[str, int] = Field(default_factory=dict)


class MemberAnalyticsResponse(_FromAttributes):
    member_id: str
    company_id: str
    total_revenue: Decimal
    total_payments: int
    average_payment: Decimal
    lifetime_months: int
    last_payment_at: datetime | None = None
    churn_risk_score: int = Field(ge=0, le=100)
    engagement_score: int = Field(ge=0, le=100)
    calculated_at: datetime


class MemberScorecardResponse(_FromAttributes):
    snapshot: MemberAnalyticsResponse
    risk_label: str
    risk_color: str


class MetricComparisonResponse(_FromAttributes):
    metric: str
    yours: float
    average: float
    percentile: int = Field(description="Coarse band of the gap to the average, not a rank.")
    status: str


class BenchmarkComparisonResponse(_FromAttributes):
    company_id: str
    niche: str
    revenue_range: str
    no_benchmark: bool
    sample_size: int = 0
    metrics: list[MetricComparisonResponse] = Field(default_factory=list)


class BenchmarkContributionResponse(_FromAttributes):
    company_id: str
    niche: str
    revenue_range: str
    contributed: bool
    sample_size: int
    message: str
