"""
app/scheduler/jobs.py

APScheduler-based batch scheduler for periodic analytics recomputation.

Company discovery
-----------------
Companies are resolved at job runtime from two sources, merged and
deduplicated in order:

  1. the ``companies`` table (every synced company);
  2. ``SCHEDULER_COMPANIES`` env var, comma-separated company ids, for
     companies that should run even before discovery picks them up.

Schedule (all times UTC)
------------------------
  member_analytics        : daily at SCHEDULER_ANALYTICS_HOUR:MINUTE (02:00)
  benchmark_contribution  : weekly, Monday one hour after member_analytics

Lifecycle
---------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on process boot; shut it down with ``shutdown(wait=True)``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.config import SchedulerSettings, get_metrics_settings, get_scheduler_settings
from app.domain.store import Store
from app.services.metrics_service import MetricsService
from benchmark.orchestrator import BenchmarkOrchestrator
from db.repositories.metrics_cache_repository import MetricsCacheRepository
from db.repositories.store import SqlAlchemyStore
from db.session import SessionLocal
from risk.orchestrator import MemberAnalyticsOrchestrator

logger = logging.getLogger(__name__)

CompanyAction = Callable[[Session, Store, str, datetime], object]


# ---------------------------------------------------------------------------
# Company discovery
# ---------------------------------------------------------------------------


def resolve_company_ids(store: Store, settings: SchedulerSettings) -> list[str]:
    """
    Merge store companies with ``SCHEDULER_COMPANIES``; first occurrence wins
    the position in the returned list.
    """
    merged: dict[str, None] = dict.fromkeys(store.list_company_ids())
    for company_id in settings.companies:
        merged.setdefault(company_id, None)
    return list(merged)


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _run_per_company(job_name: str, action: CompanyAction) -> None:
    """
    Run *action* for every resolved company, committing per company.

    A failing company is rolled back and logged; the run continues with
    the next one.
    """
    logger.info("Scheduler: %s starting", job_name)
    now = datetime.now(tz=timezone.utc)
    settings = get_scheduler_settings()

    with _session_scope() as db:
        store = SqlAlchemyStore(db)
        company_ids = resolve_company_ids(store, settings)
        if not company_ids:
            logger.warning("Scheduler: %s found no companies, skipping", job_name)
            return

        for company_id in company_ids:
            try:
                action(db, store, company_id, now)
                db.commit()
            except Exception as exc:  # noqa: BLE001
                db.rollback()
                logger.warning(
                    "Scheduler: %s failed company=%r: %s", job_name, company_id, exc
                )

    logger.info("Scheduler: %s complete", job_name)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def _recompute_member_analytics(db: Session, store: Store, company_id: str, now: datetime) -> int:
    snapshots = MemberAnalyticsOrchestrator(store).recompute(company_id, now)
    return len(snapshots)


def _contribute_benchmark(db: Session, store: Store, company_id: str, now: datetime) -> bool:
    cache = MetricsCacheRepository(db, ttl_seconds=get_metrics_settings().cache_ttl_seconds)
    result = BenchmarkOrchestrator(store, MetricsService(store, cache)).contribute(company_id, now)
    return result.contributed


def run_member_analytics() -> None:
    """Rescore every member of every company and refresh member_analytics."""
    _run_per_company("member_analytics", _recompute_member_analytics)


def run_benchmark_contribution() -> None:
    """Fold each company's headline metrics into its benchmark bucket (idempotent)."""
    _run_per_company("benchmark_contribution", _contribute_benchmark)


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    With ``SCHEDULER_ENABLED`` off the scheduler is returned without jobs.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")
    if not settings.enabled:
        logger.info("Scheduler disabled; no jobs registered")
        return scheduler

    scheduler.add_job(
        run_member_analytics,
        trigger="cron",
        hour=settings.analytics_hour,
        minute=settings.analytics_minute,
        id="member_analytics",
        name="Daily member analytics recompute",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.add_job(
        run_benchmark_contribution,
        trigger="cron",
        day_of_week="mon",
        hour=(settings.analytics_hour + 1) % 24,
        minute=settings.analytics_minute,
        id="benchmark_contribution",
        name="Weekly benchmark contribution",
        replace_existing=True,
        misfire_grace_time=7200,
    )

    return scheduler
