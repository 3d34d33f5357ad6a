"""
app/schemas package marker.
"""

from app.schemas.metrics import (
    BenchmarkComparisonResponse,
    BenchmarkContributionResponse,
    CohortRetentionResponse,
    MemberAnalyticsResponse,
    MemberGrowthPointResponse,
    MemberScorecardResponse,
    MetricComparisonResponse,
    OverviewResponse,
    PaymentSummaryResponse,
    ProductPerformanceResponse,
    RevenuePointResponse,
)

__all__ = [
    "BenchmarkComparisonResponse",
    "BenchmarkContributionResponse",
    "CohortRetentionResponse",
    "MemberAnalyticsResponse",
    "MemberGrowthPointResponse",
    "MemberScorecardResponse",
    "MetricComparisonResponse",
    "OverviewResponse",
    "PaymentSummaryResponse",
    "ProductPerformanceResponse",
    "RevenuePointResponse",
]
