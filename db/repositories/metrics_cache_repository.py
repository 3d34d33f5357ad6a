"""
SQL-backed MetricsCache over the ``metrics_cache`` table.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.base import new_id
from db.models.metrics_cache import MetricsCacheEntry

logger = logging.getLogger(__name__)

_DAILY = "daily"


class MetricsCacheRepository:
    """
    Best-effort memoization of computed metrics.

    Entries older than ``ttl_seconds`` read as misses.  Writes upsert on
    ``(company_id, metric_type, period, period_start)`` so concurrent
    recomputes overwrite each other instead of duplicating rows.
    Operates inside the caller's transaction; never commits.  Reads and
    writes run in a savepoint so a failed cache statement leaves the
    enclosing transaction usable.
    """

    def __init__(self, session: Session, ttl_seconds: int = 3600) -> None:
        self._session = session
        self._ttl = timedelta(seconds=ttl_seconds)

    def get(self, company_id: str, metric_type: str, day: date) -> dict[str, Any] | None:
        stmt = select(MetricsCacheEntry).where(
            MetricsCacheEntry.company_id == company_id,
            MetricsCacheEntry.metric_type == metric_type,
            MetricsCacheEntry.period == _DAILY,
            MetricsCacheEntry.period_start == _day_start(day),
        )
        with self._session.begin_nested():
            entry = self._session.scalars(stmt).first()
        if entry is None:
            return None
        if entry.updated_at < datetime.now(timezone.utc) - self._ttl:
            logger.debug("Metrics cache expired company=%s metric=%s", company_id, metric_type)
            return None
        return entry.payload

    def set(
        self,
        company_id: str,
        metric_type: str,
        day: date,
        payload: dict[str, Any],
        value: float | None = None,
    ) -> None:
        stmt = insert(MetricsCacheEntry).values(
            id=new_id(),
            company_id=company_id,
            metric_type=metric_type,
            period=_DAILY,
            period_start=_day_start(day),
            value=Decimal(str(value)) if value is not None else Decimal("0"),
            payload=payload,
            updated_at=func.now(),
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_metrics_cache_company_metric_period",
            set_={
                "value": stmt.excluded.value,
                "payload": stmt.excluded.payload,
                "updated_at": func.now(),
            },
        )
        with self._session.begin_nested():
            self._session.execute(stmt)

    def invalidate(self, company_id: str, metric_type: str | None = None) -> int:
        stmt = delete(MetricsCacheEntry).where(MetricsCacheEntry.company_id == company_id)
        if metric_type is not None:
            stmt = stmt.where(MetricsCacheEntry.metric_type == metric_type)
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
