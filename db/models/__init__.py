"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.  The derived tables live beside
their repositories (``risk.repository``, ``benchmark.repository``) and are
registered here as well.
"""

from benchmark.repository import BenchmarkRecord
from db.models.catalog import PlanRecord, ProductRecord
from db.models.company import CompanyRecord
from db.models.member import MemberRecord, MembershipRecord, PaymentRecord
from db.models.metrics_cache import MetricsCacheEntry
from risk.repository import MemberAnalyticsRecord

__all__ = [
    "CompanyRecord",
    "ProductRecord",
    "PlanRecord",
    "MemberRecord",
    "MembershipRecord",
    "PaymentRecord",
    "MetricsCacheEntry",
    "MemberAnalyticsRecord",
    "BenchmarkRecord",
]
