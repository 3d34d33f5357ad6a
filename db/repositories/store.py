"""
SQLAlchemy-backed Store.

Maps ORM rows into the frozen domain records consumed by the metrics
engine.  Operates inside the caller's session; never commits.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.config import MetricsSettings, get_metrics_settings
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
from app.domain.store import BenchmarkUpdate
from app.logging_utils import log_event
from benchmark.repository import BenchmarkRepository, to_bucket
from db.models.catalog import PlanRecord, ProductRecord
from db.models.company import CompanyRecord
from db.models.member import MemberRecord, MembershipRecord, PaymentRecord
from db.repositories.errors import BenchmarkWriteConflictError
from risk.repository import MemberAnalyticsRepository

logger = logging.getLogger(__name__)


class SqlAlchemyStore:
    """
    Store implementation over the synced tables.

    Benchmark updates lock the bucket row with ``SELECT … FOR UPDATE``
    inside a savepoint.  A unique violation (two first contributions racing
    to insert the same bucket) or a serialization / deadlock failure rolls
    back only the savepoint and the read-modify-write is retried.
    """

    def __init__(self, session: Session, settings: MetricsSettings | None = None) -> None:
        self._session = session
        self._settings = settings or get_metrics_settings()
        self._analytics = MemberAnalyticsRepository()
        self._benchmarks = BenchmarkRepository()

    # -- synced records ------------------------------------------------------

    def get_company(self, company_id: str) -> Company | None:
        record = self._session.get(CompanyRecord, company_id)
        if record is None:
            return None
        return Company(
            id=record.id,
            name=record.name,
            external_company_id=record.external_company_id,
        )

    def list_company_ids(self) -> list[str]:
        stmt = select(CompanyRecord.id).order_by(CompanyRecord.id)
        return list(self._session.scalars(stmt).all())

    def get_members(self, company_id: str) -> list[Member]:
        stmt = (
            select(MemberRecord)
            .where(MemberRecord.company_id == company_id)
            .order_by(MemberRecord.joined_at, MemberRecord.id)
        )
        return [_to_member(row) for row in self._session.scalars(stmt)]

    def get_memberships(
        self,
        company_id: str,
        *,
        member_id: str | None = None,
        statuses: Collection[str] | None = None,
    ) -> list[Membership]:
        stmt = select(MembershipRecord).where(MembershipRecord.company_id == company_id)
        if member_id is not None:
            stmt = stmt.where(MembershipRecord.member_id == member_id)
        if statuses is not None:
            stmt = stmt.where(MembershipRecord.status.in_(list(statuses)))
        stmt = stmt.order_by(MembershipRecord.start_date, MembershipRecord.id)
        return [_to_membership(row) for row in self._session.scalars(stmt)]

    def get_payments(
        self,
        company_id: str,
        *,
        member_id: str | None = None,
        statuses: Collection[str] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Payment]:
        stmt = select(PaymentRecord).where(PaymentRecord.company_id == company_id)
        if member_id is not None:
            stmt = stmt.where(PaymentRecord.member_id == member_id)
        if statuses is not None:
            stmt = stmt.where(PaymentRecord.status.in_(list(statuses)))
        if start is not None:
            stmt = stmt.where(PaymentRecord.payment_date >= start)
        if end is not None:
            stmt = stmt.where(PaymentRecord.payment_date <= end)
        stmt = stmt.order_by(PaymentRecord.payment_date, PaymentRecord.id)
        return [_to_payment(row) for row in self._session.scalars(stmt)]

    def get_products(self, company_id: str) -> list[Product]:
        stmt = (
            select(ProductRecord)
            .where(ProductRecord.company_id == company_id)
            .order_by(ProductRecord.created_at, ProductRecord.id)
        )
        return [
            Product(
                id=row.id,
                company_id=row.company_id,
                name=row.name,
                is_app=row.is_app,
                is_active=row.is_active,
            )
            for row in self._session.scalars(stmt)
        ]

    def get_plans(self, product_id: str) -> list[Plan]:
        stmt = select(PlanRecord).where(PlanRecord.product_id == product_id).order_by(PlanRecord.id)
        return [
            Plan(
                id=row.id,
                product_id=row.product_id,
                price=row.price,
                billing_period=row.billing_period,
                currency=row.currency,
                name=row.name,
            )
            for row in self._session.scalars(stmt)
        ]

    # -- derived records -----------------------------------------------------

    def upsert_member_analytics(self, snapshots: Sequence[MemberAnalyticsSnapshot]) -> int:
        return self._analytics.upsert_snapshots(self._session, snapshots)

    def get_benchmark(self, niche: str, revenue_range: str) -> BenchmarkBucket | None:
        record = self._benchmarks.get(self._session, niche, revenue_range)
        return to_bucket(record) if record is not None else None

    def update_benchmark(
        self,
        niche: str,
        revenue_range: str,
        update: BenchmarkUpdate,
    ) -> BenchmarkBucket | None:
        attempts = self._settings.benchmark_max_retries
        for attempt in range(1, attempts + 1):
            try:
                with self._session.begin_nested():
                    record = self._benchmarks.lock(self._session, niche, revenue_range)
                    current = to_bucket(record) if record is not None else None
                    updated = update(current)
                    if updated is None:
                        return current
                    if record is None:
                        record = self._benchmarks.insert(self._session, updated)
                    else:
                        self._benchmarks.apply(record, updated)
                    self._session.flush()
                    return to_bucket(record)
            except (IntegrityError, OperationalError) as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "benchmark_update_conflict",
                    niche=niche,
                    revenue_range=revenue_range,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=type(exc).__name__,
                )

        raise BenchmarkWriteConflictError(
            f"Benchmark bucket ({niche!r}, {revenue_range!r}) update conflicted "
            f"{attempts} time(s); retry later."
        )


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _to_member(row: MemberRecord) -> Member:
    return Member(
        id=row.id,
        company_id=row.company_id,
        external_user_id=row.external_user_id,
        created_at=row.joined_at,
        email=row.email,
        username=row.username,
    )


def _to_membership(row: MembershipRecord) -> Membership:
    return Membership(
        id=row.id,
        company_id=row.company_id,
        member_id=row.member_id,
        plan_id=row.plan_id,
        status=row.status,
        start_date=row.start_date,
        end_date=row.end_date,
        product_id=row.product_id,
        cancel_at_period_end=row.cancel_at_period_end,
    )


def _to_payment(row: PaymentRecord) -> Payment:
    return Payment(
        id=row.id,
        company_id=row.company_id,
        member_id=row.member_id,
        amount=row.amount,
        status=row.status,
        payment_date=row.payment_date,
        membership_id=row.membership_id,
        currency=row.currency,
        refunded_amount=row.refunded_amount if row.refunded_amount is not None else Decimal("0"),
        metadata=row.metadata_json,
    )
