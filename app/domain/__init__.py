"""
app/domain package marker.
"""

from app.domain.commerce import (
    BenchmarkBucket,
    Company,
    Member,
    MemberAnalyticsSnapshot,
    Membership,
    Payment,
    Plan,
    Product,
)
from app.domain.store import BenchmarkUpdate, MetricsCache, Store

__all__ = [
    "BenchmarkBucket",
    "BenchmarkUpdate",
    "Company",
    "Member",
    "MemberAnalyticsSnapshot",
    "Membership",
    "MetricsCache",
    "Payment",
    "Plan",
    "Product",
    "Store",
]
