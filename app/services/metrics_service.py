"""
app/services/metrics_service.py

Metrics facade for the dashboard layer.

Wires the Store snapshot → kpi formulas → optional MetricsCache.  No
formula lives here; every number comes from a ``kpi`` module:

    kpi.mrr       – MRR normalizer
    kpi.revenue   – revenue totals, time series, ARPU
    kpi.churn     – churn rate over a window
    kpi.ltv       – lifespan and LTV
    kpi.cohorts   – cohort retention table
    kpi.growth    – monthly member growth
    kpi.products  – per-product table
    kpi.payments  – payment health

Caching contract
----------------
Only :meth:`MetricsService.overview` is cached, keyed by ``(company_id,
"overview", now.date())``.  The cache is best-effort memoization: two
concurrent misses both compute and the last write wins, and a failing
cache is logged and skipped.  Callers that just finished a sync call
:meth:`MetricsService.invalidate`.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from app.config import MetricsSettings, get_metrics_settings
from app.domain.commerce import CURRENT_STATUSES, PAYMENT_SUCCEEDED
from app.domain.store import MetricsCache, Store
from app.logging_utils import log_event
from kpi import churn as churn_kpi
from kpi import cohorts as cohorts_kpi
from kpi import growth as growth_kpi
from kpi import ltv as ltv_kpi
from kpi import mrr as mrr_kpi
from kpi import payments as payments_kpi
from kpi import products as products_kpi
from kpi import revenue as revenue_kpi
from kpi.money import round_money
from kpi.periods import add_months
from kpi.temporal import active_member_ids_at, current_member_ids

logger = logging.getLogger(__name__)

OVERVIEW_METRIC = "overview"


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OverviewMetrics:
    """
    Headline dashboard numbers at reference time ``now``.

    Money fields are 2-decimal ``Decimal``; percentages are 1-decimal floats.
    """

    mrr: Decimal
    mrr_growth: float
    total_revenue: Decimal
    active_members: int
    member_growth: float
    churn_rate: float
    churn_change: float
    ltv: Decimal
    arpu: Decimal

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation; money as 2-decimal strings."""
        payload = asdict(self)
        for key in ("mrr", "total_revenue", "ltv", "arpu"):
            payload[key] = str(payload[key])
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "OverviewMetrics":
        return cls(
            mrr=Decimal(str(payload["mrr"])),
            mrr_growth=float(payload["mrr_growth"]),
            total_revenue=Decimal(str(payload["total_revenue"])),
            active_members=int(payload["active_members"]),
            member_growth=float(payload["member_growth"]),
            churn_rate=float(payload["churn_rate"]),
            churn_change=float(payload["churn_change"]),
            ltv=Decimal(str(payload["ltv"])),
            arpu=Decimal(str(payload["arpu"])),
        )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class MetricsService:
    """
    Per-company metric queries over an injected Store.

    Holds no state besides its collaborators; safe to share across threads
    as long as the Store is.
    """

    def __init__(
        self,
        store: Store,
        cache: MetricsCache | None = None,
        settings: MetricsSettings | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._settings = settings or get_metrics_settings()

    # -- overview ------------------------------------------------------------

    def overview(self, company_id: str, now: datetime) -> OverviewMetrics:
        day = now.date()
        cached = self._cache_get(company_id, day)
        if cached is not None:
            logger.debug("Overview cache hit company=%s day=%s", company_id, day)
            return OverviewMetrics.from_payload(cached)

        result = self.compute_overview(company_id, now)
        self._cache_set(company_id, day, result)
        return result

    def _cache_get(self, company_id: str, day: date) -> dict[str, Any] | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(company_id, OVERVIEW_METRIC, day)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.WARNING,
                "metrics_cache_read_failed",
                company_id=company_id,
                metric_type=OVERVIEW_METRIC,
                error=type(exc).__name__,
            )
            return None

    def _cache_set(self, company_id: str, day: date, result: OverviewMetrics) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(
                company_id,
                OVERVIEW_METRIC,
                day,
                result.to_payload(),
                value=float(result.mrr),
            )
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.WARNING,
                "metrics_cache_write_failed",
                company_id=company_id,
                metric_type=OVERVIEW_METRIC,
                error=type(exc).__name__,
            )

    def compute_overview(self, company_id: str, now: datetime) -> OverviewMetrics:
        """Compute the overview from one store snapshot, bypassing the cache."""
        memberships = self._store.get_memberships(company_id)
        plans = mrr_kpi.plans_by_id(self._store, company_id)
        succeeded = self._store.get_payments(company_id, statuses=(PAYMENT_SUCCEEDED,))

        month_ago = add_months(now, -1)
        two_months_ago = add_months(now, -2)

        current_mrr = mrr_kpi.mrr_from_memberships(memberships, plans)
        mrr_now = mrr_kpi.mrr_from_memberships(memberships, plans, as_of=now)
        mrr_prev = mrr_kpi.mrr_from_memberships(memberships, plans, as_of=month_ago)

        active_members = len(current_member_ids(memberships, CURRENT_STATUSES))
        headcount_now = len(active_member_ids_at(memberships, now))
        headcount_prev = len(active_member_ids_at(memberships, month_ago))

        churn_now = churn_kpi.churn_rate_from(memberships, month_ago, now)
        churn_prev = churn_kpi.churn_rate_from(memberships, two_months_ago, month_ago)

        arpu_value = revenue_kpi.arpu_from(current_mrr, active_members)
        lifespan = ltv_kpi.average_lifespan_from(memberships, self._settings.default_lifespan_months)

        result = OverviewMetrics(
            mrr=current_mrr,
            mrr_growth=revenue_kpi.growth_percent(mrr_now, mrr_prev),
            total_revenue=round_money(revenue_kpi.sum_succeeded(succeeded)),
            active_members=active_members,
            member_growth=growth_kpi.headcount_change(headcount_now, headcount_prev),
            churn_rate=churn_now,
            churn_change=revenue_kpi.growth_percent(churn_now, churn_prev),
            ltv=ltv_kpi.ltv_from(arpu_value, lifespan),
            arpu=arpu_value,
        )
        logger.info(
            "Overview computed company=%s mrr=%s active=%d churn=%.1f",
            company_id,
            result.mrr,
            result.active_members,
            result.churn_rate,
        )
        return result

    def invalidate(self, company_id: str) -> int:
        """Drop every cached metric of the company; returns entries removed."""
        if self._cache is None:
            return 0
        removed = self._cache.invalidate(company_id)
        logger.info("Metrics cache invalidated company=%s entries=%d", company_id, removed)
        return removed

    # -- single metrics ------------------------------------------------------

    def mrr(self, company_id: str, as_of: datetime | None = None) -> Decimal:
        return mrr_kpi.calculate_mrr(self._store, company_id, as_of)

    def total_revenue(
        self,
        company_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Decimal:
        return revenue_kpi.total_revenue(self._store, company_id, start, end)

    def revenue_series(
        self,
        company_id: str,
        start: datetime,
        end: datetime,
        bucket: str = revenue_kpi.BUCKET_MONTH,
    ) -> list[revenue_kpi.RevenuePoint]:
        return revenue_kpi.revenue_time_series(self._store, company_id, start, end, bucket)

    def revenue_growth(
        self,
        company_id: str,
        current: revenue_kpi.Window,
        previous: revenue_kpi.Window,
    ) -> float:
        return revenue_kpi.revenue_growth(self._store, company_id, current, previous)

    def arpu(self, company_id: str) -> Decimal:
        return revenue_kpi.arpu(self._store, company_id)

    def churn_rate(self, company_id: str, start: datetime, end: datetime) -> float:
        return churn_kpi.churn_rate(self._store, company_id, start, end)

    def ltv(self, company_id: str) -> Decimal:
        return ltv_kpi.ltv(self._store, company_id, self._settings.default_lifespan_months)

    def cohorts(self, company_id: str, now: datetime) -> list[cohorts_kpi.CohortRetention]:
        return cohorts_kpi.cohort_retention(
            self._store, company_id, now, self._settings.cohorts_count
        )

    def member_growth(self, company_id: str, now: datetime) -> list[growth_kpi.MemberGrowthPoint]:
        return growth_kpi.member_growth(
            self._store, company_id, now, self._settings.member_growth_months
        )

    def products(self, company_id: str) -> list[products_kpi.ProductPerformance]:
        return products_kpi.product_performance(self._store, company_id)

    def payment_summary(
        self,
        company_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> payments_kpi.PaymentSummary:
        return payments_kpi.payment_summary(self._store, company_id, start, end)

    def failed_payments(self, company_id: str, limit: int = 100) -> payments_kpi.FailedPaymentReport:
        return payments_kpi.failed_payments(self._store, company_id, limit)
