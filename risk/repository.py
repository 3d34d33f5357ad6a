"""
risk/repository.py

SQLAlchemy model and repository for cached member analytics.
Alembic-ready declarative style. No scoring or business logic.

Base is imported from db.base (the project-wide shared declarative base).
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Mapped, Session, mapped_column

from app.domain.commerce import MemberAnalyticsSnapshot
from db.base import Base, new_id

_DEFAULT_BATCH_SIZE = 500


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

class MemberAnalyticsRecord(Base):
    """Persistent snapshot of one member's analytics and scores.

    A cache, not a source of truth: rows are rebuilt wholesale per
    company from members, memberships and payments.

    Indexes:
        - member_id (unique, upsert key)
        - company_id
        - churn_risk_score (risk filtering)
    """

    __tablename__ = "member_analytics"

    __table_args__ = (
        Index("ix_member_analytics_company_id", "company_id"),
        Index("ix_member_analytics_churn_risk", "churn_risk_score"),
    )

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )
    member_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    company_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_payments: Mapped[int] = mapped_column(Integer, nullable=False)
    average_payment: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    lifetime_months: Mapped[int] = mapped_column(Integer, nullable=False)
    last_payment_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    churn_risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    engagement_score: Mapped[int] = mapped_column(Integer, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class MemberAnalyticsRepository:
    """Data access layer for MemberAnalyticsRecord rows.

    All methods accept an active SQLAlchemy Session and operate within
    the caller's transaction boundary. No commits or rollbacks are
    issued internally; transaction control belongs to the caller.
    """

    def upsert_snapshots(
        self,
        session: Session,
        snapshots: Sequence[MemberAnalyticsSnapshot],
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """Insert or replace analytics rows keyed by member_id.

        Args:
            session: Active SQLAlchemy session.
            snapshots: Freshly computed snapshots.
            batch_size: Maximum rows per INSERT statement.

        Returns:
            Number of rows written (inserted + updated).
        """
        if not snapshots:
            return 0

        written = 0
        size = max(1, batch_size)
        for start in range(0, len(snapshots), size):
            chunk = snapshots[start : start + size]
            stmt = insert(MemberAnalyticsRecord).values(
                [_to_row(snapshot) for snapshot in chunk]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[MemberAnalyticsRecord.member_id],
                set_={
                    column: stmt.excluded[column]
                    for column in (
                        "company_id",
                        "total_revenue",
                        "total_payments",
                        "average_payment",
                        "lifetime_months",
                        "last_payment_at",
                        "churn_risk_score",
                        "engagement_score",
                        "calculated_at",
                    )
                },
            ).returning(MemberAnalyticsRecord.id)
            written += len(session.scalars(stmt).all())
        return written


def _to_row(snapshot: MemberAnalyticsSnapshot) -> dict:
    return {
        "id": new_id(),
        "member_id": snapshot.member_id,
        "company_id": snapshot.company_id,
        "total_revenue": snapshot.total_revenue,
        "total_payments": snapshot.total_payments,
        "average_payment": snapshot.average_payment,
        "lifetime_months": snapshot.lifetime_months,
        "last_payment_at": snapshot.last_payment_at,
        "churn_risk_score": snapshot.churn_risk_score,
        "engagement_score": snapshot.engagement_score,
        "calculated_at": snapshot.calculated_at,
    }
