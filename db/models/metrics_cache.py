"""
db/models/metrics_cache.py

Best-effort memoization of computed dashboard metrics.
One row per company, metric type and day.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, new_id

_UPSERT_CONSTRAINT = "uq_metrics_cache_company_metric_period"


class MetricsCacheEntry(Base):
    """
    Cached metric payload.

    ``updated_at`` drives expiry: an entry older than the configured TTL is
    treated as a miss.  The unique constraint on ``(company_id, metric_type,
    period, period_start)`` drives upsert semantics so a recompute replaces
    the entry rather than adding a duplicate.
    """

    __tablename__ = "metrics_cache"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    company_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    metric_type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="overview, mrr, churn_rate, ...",
    )
    period: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="daily",
    )
    period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Start of the cached day (UTC)",
    )
    value: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "metric_type",
            "period",
            "period_start",
            name=_UPSERT_CONSTRAINT,
        ),
        Index("ix_metrics_cache_company_metric", "company_id", "metric_type"),
    )
