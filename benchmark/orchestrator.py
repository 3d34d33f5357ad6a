"""
benchmark/orchestrator.py

Cross-tenant benchmark contribution and comparison.

Coordinates MetricsService (the company's own numbers), classification
(niche and revenue range) and the Store's serialized bucket update.
Contains no metric formulas.

Online mean
-----------
    new_avg = (old_avg * n + value) / (n + 1)

computed in Decimal and stored with 2 fractional digits.  A company
contributes to a given bucket at most once: the bucket keeps the set of
contributing company ids and a repeat contribution leaves the row as is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.domain.commerce import BenchmarkBucket
from app.domain.store import Store
from app.logging_utils import log_event
from app.services.metrics_service import MetricsService, OverviewMetrics
from benchmark.classification import (
    comparison_status,
    determine_niche,
    percentile_band,
    revenue_range,
)
from db.repositories.errors import CompanyNotFoundError
from kpi.money import round_money

logger = logging.getLogger(__name__)

# (metric name, bucket attribute, lower is better)
_COMPARED_METRICS: tuple[tuple[str, str, bool], ...] = (
    ("mrr", "avg_mrr", False),
    ("churn_rate", "avg_churn_rate", True),
    ("ltv", "avg_ltv", False),
    ("arpu", "avg_arpu", False),
)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContributionResult:
    company_id: str
    niche: str
    revenue_range: str
    contributed: bool
    sample_size: int
    message: str


@dataclass(frozen=True)
class MetricComparison:
    """
    One metric against its bucket average.

    ``percentile`` is a coarse band of the percent difference, not a
    statistical percentile rank.
    """

    metric: str
    yours: float
    average: float
    percentile: int
    status: str


@dataclass(frozen=True)
class BenchmarkComparison:
    company_id: str
    niche: str
    revenue_range: str
    no_benchmark: bool
    sample_size: int = 0
    metrics: list[MetricComparison] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class BenchmarkOrchestrator:
    """
    Contributes a company's headline metrics to its bucket and compares
    them against the bucket averages.

    Serialization of concurrent contributions to one bucket is the Store's
    job (``Store.update_benchmark``); this class only supplies the
    read-modify-write step.
    """

    def __init__(self, store: Store, metrics: MetricsService | None = None) -> None:
        self._store = store
        self._metrics = metrics or MetricsService(store)

    def classify(self, company_id: str, now: datetime) -> tuple[str, str, OverviewMetrics]:
        """Return ``(niche, revenue_range, overview)`` for the company."""
        if self._store.get_company(company_id) is None:
            raise CompanyNotFoundError(f"Company {company_id!r} not found.")
        overview = self._metrics.overview(company_id, now)
        niche = determine_niche(self._store.get_products(company_id))
        return niche, revenue_range(overview.mrr), overview

    def contribute(self, company_id: str, now: datetime) -> ContributionResult:
        """
        Fold the company's metrics into its bucket's running averages.

        Idempotent per company and bucket: a repeat call succeeds with
        ``contributed=False`` and leaves the bucket untouched.

        Raises:
            CompanyNotFoundError: unknown company.
            BenchmarkWriteConflictError: the bucket update kept conflicting
                with concurrent writers (transient).
        """
        niche, bucket_range, overview = self.classify(company_id, now)
        values = _metric_values(overview)
        applied = False

        def merge(current: BenchmarkBucket | None) -> BenchmarkBucket | None:
            nonlocal applied
            applied = False
            if current is not None and company_id in current.contributing_companies:
                return None
            applied = True
            return _fold(current, niche, bucket_range, company_id, values)

        stored = self._store.update_benchmark(niche, bucket_range, merge)
        sample_size = stored.sample_size if stored is not None else 0

        log_event(
            logger,
            logging.INFO,
            "benchmark_contribution",
            company_id=company_id,
            niche=niche,
            revenue_range=bucket_range,
            contributed=applied,
            sample_size=sample_size,
        )
        return ContributionResult(
            company_id=company_id,
            niche=niche,
            revenue_range=bucket_range,
            contributed=applied,
            sample_size=sample_size,
            message="Contributed" if applied else "Already contributed",
        )

    def compare(self, company_id: str, now: datetime) -> BenchmarkComparison:
        niche, bucket_range, overview = self.classify(company_id, now)
        bucket = self._store.get_benchmark(niche, bucket_range)
        if bucket is None:
            return BenchmarkComparison(
                company_id=company_id,
                niche=niche,
                revenue_range=bucket_range,
                no_benchmark=True,
            )

        values = _metric_values(overview)
        metrics = []
        for name, attribute, lower_is_better in _COMPARED_METRICS:
            yours = float(values[name])
            average = float(getattr(bucket, attribute))
            metrics.append(
                MetricComparison(
                    metric=name,
                    yours=yours,
                    average=average,
                    percentile=percentile_band(yours, average, lower_is_better),
                    status=comparison_status(yours, average, lower_is_better),
                )
            )

        return BenchmarkComparison(
            company_id=company_id,
            niche=niche,
            revenue_range=bucket_range,
            no_benchmark=False,
            sample_size=len(bucket.contributing_companies),
            metrics=metrics,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _metric_values(overview: OverviewMetrics) -> dict[str, Decimal]:
    return {
        "mrr": overview.mrr,
        "churn_rate": Decimal(str(overview.churn_rate)),
        "ltv": overview.ltv,
        "arpu": overview.arpu,
    }


def online_mean(old_average: Decimal, count: int, value: Decimal) -> Decimal:
    return round_money((old_average * count + value) / (count + 1))


def _fold(
    current: BenchmarkBucket | None,
    niche: str,
    bucket_range: str,
    company_id: str,
    values: dict[str, Decimal],
) -> BenchmarkBucket:
    if current is None:
        return BenchmarkBucket(
            niche=niche,
            revenue_range=bucket_range,
            avg_mrr=round_money(values["mrr"]),
            avg_churn_rate=round_money(values["churn_rate"]),
            avg_ltv=round_money(values["ltv"]),
            avg_arpu=round_money(values["arpu"]),
            sample_size=1,
            contributing_companies=(company_id,),
        )

    n = current.sample_size
    return BenchmarkBucket(
        niche=niche,
        revenue_range=bucket_range,
        avg_mrr=online_mean(current.avg_mrr, n, values["mrr"]),
        avg_churn_rate=online_mean(current.avg_churn_rate, n, values["churn_rate"]),
        avg_ltv=online_mean(current.avg_ltv, n, values["ltv"]),
        avg_arpu=online_mean(current.avg_arpu, n, values["arpu"]),
        sample_size=n + 1,
        contributing_companies=(*current.contributing_companies, company_id),
    )
