"""
benchmark/repository.py

SQLAlchemy ORM model and repository for cross-tenant benchmark buckets.
No classification or averaging logic lives here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, String, UniqueConstraint, func, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, Session, mapped_column

from app.domain.commerce import BenchmarkBucket
from db.base import Base, new_id

_BUCKET_CONSTRAINT = "uq_benchmark_data_niche_range"


# ---------------------------------------------------------------------------
# ORM model
# ---------------------------------------------------------------------------

class BenchmarkRecord(Base):
    """
    Running averages for one ``(niche, revenue_range)`` bucket.

    Columns
    -------
    avg_*                  – online means, stored with 2 fractional digits.
    sample_size            – number of contributions folded into the means.
    contributing_companies – JSON list of company ids; each company
                             contributes to a bucket at most once.
    """

    __tablename__ = "benchmark_data"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    niche: Mapped[str] = mapped_column(String(32), nullable=False)
    revenue_range: Mapped[str] = mapped_column(String(16), nullable=False)
    avg_mrr: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    avg_churn_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    avg_ltv: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    avg_arpu: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sample_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    contributing_companies: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("niche", "revenue_range", name=_BUCKET_CONSTRAINT),
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class BenchmarkRepository:
    """
    Data access for BenchmarkRecord rows.

    Operates inside the caller's transaction; never commits.
    """

    def get(self, session: Session, niche: str, revenue_range: str) -> Optional[BenchmarkRecord]:
        stmt = select(BenchmarkRecord).where(
            BenchmarkRecord.niche == niche,
            BenchmarkRecord.revenue_range == revenue_range,
        )
        return session.scalars(stmt).first()

    def lock(self, session: Session, niche: str, revenue_range: str) -> Optional[BenchmarkRecord]:
        """
        Fetch the bucket row with ``SELECT … FOR UPDATE`` so concurrent
        contributors to the same bucket queue behind this transaction.
        """
        stmt = (
            select(BenchmarkRecord)
            .where(
                BenchmarkRecord.niche == niche,
                BenchmarkRecord.revenue_range == revenue_range,
            )
            .with_for_update()
        )
        return session.scalars(stmt).first()

    def insert(self, session: Session, bucket: BenchmarkBucket) -> BenchmarkRecord:
        record = BenchmarkRecord(niche=bucket.niche, revenue_range=bucket.revenue_range)
        self.apply(record, bucket)
        session.add(record)
        return record

    def apply(self, record: BenchmarkRecord, bucket: BenchmarkBucket) -> None:
        record.avg_mrr = bucket.avg_mrr
        record.avg_churn_rate = bucket.avg_churn_rate
        record.avg_ltv = bucket.avg_ltv
        record.avg_arpu = bucket.avg_arpu
        record.sample_size = bucket.sample_size
        record.contributing_companies = list(bucket.contributing_companies)


def to_bucket(record: BenchmarkRecord) -> BenchmarkBucket:
    return BenchmarkBucket(
        niche=record.niche,
        revenue_range=record.revenue_range,
        avg_mrr=Decimal(record.avg_mrr),
        avg_churn_rate=Decimal(record.avg_churn_rate),
        avg_ltv=Decimal(record.avg_ltv),
        avg_arpu=Decimal(record.avg_arpu),
        sample_size=record.sample_size,
        contributing_companies=tuple(record.contributing_companies or ()),
    )
