"""
Repository layer exports.
"""

from db.repositories.errors import (
    BenchmarkWriteConflictError,
    CompanyNotFoundError,
    MemberNotFoundError,
    StoreError,
)
from db.repositories.metrics_cache_repository import MetricsCacheRepository
from db.repositories.store import SqlAlchemyStore

__all__ = [
    "SqlAlchemyStore",
    "MetricsCacheRepository",
    "StoreError",
    "CompanyNotFoundError",
    "MemberNotFoundError",
    "BenchmarkWriteConflictError",
]
