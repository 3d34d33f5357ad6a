"""
app/domain/store.py

Capabilities the metrics engine consumes.

The engine holds no global state: every entry point receives a Store (and
optionally a MetricsCache) so tests can run against in-memory fakes and
production runs against SqlAlchemyStore / MetricsCacheRepository.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Sequence
from datetime import date, datetime
from typing import Any, Protocol

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

BenchmarkUpdate = Callable[[BenchmarkBucket | None], BenchmarkBucket | None]
"""
Read-modify-write step applied to a benchmark row.  Receives the current
bucket (or None) and returns the bucket to persist, or None to leave the
row untouched.
"""


class Store(Protocol):
    """
    Read access to synced records plus the derived-record upserts.

    Empty results are valid input: a company with no memberships simply
    yields zero-valued metrics.  Infrastructure failures propagate.
    """

    def get_company(self, company_id: str) -> Company | None:
        ...

    def list_company_ids(self) -> list[str]:
        ...

    def get_members(self, company_id: str) -> list[Member]:
        ...

    def get_memberships(
        self,
        company_id: str,
        *,
        member_id: str | None = None,
        statuses: Collection[str] | None = None,
    ) -> list[Membership]:
        ...

    def get_payments(
        self,
        company_id: str,
        *,
        member_id: str | None = None,
        statuses: Collection[str] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Payment]:
        """
        Payments for the company.  ``start`` / ``end`` bound ``payment_date``
        inclusively on both sides.
        """
        ...

    def get_products(self, company_id: str) -> list[Product]:
        ...

    def get_plans(self, product_id: str) -> list[Plan]:
        ...

    def upsert_member_analytics(self, snapshots: Sequence[MemberAnalyticsSnapshot]) -> int:
        ...

    def get_benchmark(self, niche: str, revenue_range: str) -> BenchmarkBucket | None:
        ...

    def update_benchmark(
        self,
        niche: str,
        revenue_range: str,
        update: BenchmarkUpdate,
    ) -> BenchmarkBucket | None:
        """
        Apply *update* to the (niche, revenue_range) row with updates to the
        same bucket serialized.  Returns the bucket as stored afterwards.
        """
        ...


class MetricsCache(Protocol):
    """
    Best-effort memoization keyed by company, metric type and day.

    Concurrent misses may compute twice; the last writer wins.
    """

    def get(self, company_id: str, metric_type: str, day: date) -> dict[str, Any] | None:
        ...

    def set(
        self,
        company_id: str,
        metric_type: str,
        day: date,
        payload: dict[str, Any],
        value: float | None = None,
    ) -> None:
        ...

    def invalidate(self, company_id: str, metric_type: str | None = None) -> int:
        ...
