"""
tests/conftest.py

Shared fixtures: an in-memory Store, an in-memory MetricsCache and small
record builders.  No database, no network.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count
from typing import Any

import pytest

from app.config import MetricsSettings
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

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory Store
# ---------------------------------------------------------------------------


class InMemoryStore:
    """Store protocol over plain lists; benchmark updates lock per bucket."""

    def __init__(self) -> None:
        self.companies: dict[str, Company] = {}
        self.members: list[Member] = []
        self.products: list[Product] = []
        self.plans: list[Plan] = []
        self.memberships: list[Membership] = []
        self.payments: list[Payment] = []
        self.analytics: dict[str, MemberAnalyticsSnapshot] = {}
        self.benchmarks: dict[tuple[str, str], BenchmarkBucket] = {}
        self.benchmark_writes = 0
        self._registry_lock = threading.Lock()
        self._bucket_locks: dict[tuple[str, str], threading.Lock] = defaultdict(threading.Lock)
        self._ids = count(1)

    def next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    # -- builders -------------------------------------------------------------

    def add_company(self, company_id: str = "co_1", name: str = "Acme") -> Company:
        company = Company(id=company_id, name=name)
        self.companies[company_id] = company
        return company

    def add_product(
        self,
        company_id: str = "co_1",
        name: str = "Community",
        is_app: bool = False,
    ) -> Product:
        product = Product(id=self.next_id("prod"), company_id=company_id, name=name, is_app=is_app)
        self.products.append(product)
        return product

    def add_plan(
        self,
        product: Product,
        price: Decimal | str = Decimal("49"),
        billing_period: str = "monthly",
    ) -> Plan:
        plan = Plan(
            id=self.next_id("plan"),
            product_id=product.id,
            price=price,
            billing_period=billing_period,
        )
        self.plans.append(plan)
        return plan

    def add_member(
        self,
        company_id: str = "co_1",
        created_at: datetime = utc(2024, 1, 1),
        member_id: str | None = None,
    ) -> Member:
        member_id = member_id or self.next_id("mem")
        member = Member(
            id=member_id,
            company_id=company_id,
            external_user_id=f"user_{member_id}",
            created_at=created_at,
        )
        self.members.append(member)
        return member

    def add_membership(
        self,
        member: Member,
        plan: Plan,
        start: datetime,
        end: datetime | None = None,
        status: str = "active",
        cancel_at_period_end: bool = False,
    ) -> Membership:
        membership = Membership(
            id=self.next_id("ms"),
            company_id=member.company_id,
            member_id=member.id,
            plan_id=plan.id,
            status=status,
            start_date=start,
            end_date=end,
            product_id=plan.product_id,
            cancel_at_period_end=cancel_at_period_end,
        )
        self.memberships.append(membership)
        return membership

    def add_payment(
        self,
        member: Member,
        amount: Decimal | str,
        paid_at: datetime,
        status: str = "succeeded",
        membership: Membership | None = None,
        refunded: Decimal | str = "0",
        metadata: dict[str, Any] | None = None,
    ) -> Payment:
        payment = Payment(
            id=self.next_id("pay"),
            company_id=member.company_id,
            member_id=member.id,
            amount=Decimal(str(amount)),
            status=status,
            payment_date=paid_at,
            membership_id=membership.id if membership is not None else None,
            refunded_amount=Decimal(str(refunded)),
            metadata=metadata,
        )
        self.payments.append(payment)
        return payment

    # -- Store protocol -------------------------------------------------------

    def get_company(self, company_id: str) -> Company | None:
        return self.companies.get(company_id)

    def list_company_ids(self) -> list[str]:
        return sorted(self.companies)

    def get_members(self, company_id: str) -> list[Member]:
        return [m for m in self.members if m.company_id == company_id]

    def get_memberships(
        self,
        company_id: str,
        *,
        member_id: str | None = None,
        statuses: Collection[str] | None = None,
    ) -> list[Membership]:
        return [
            m
            for m in self.memberships
            if m.company_id == company_id
            and (member_id is None or m.member_id == member_id)
            and (statuses is None or m.status in statuses)
        ]

    def get_payments(
        self,
        company_id: str,
        *,
        member_id: str | None = None,
        statuses: Collection[str] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Payment]:
        return [
            p
            for p in self.payments
            if p.company_id == company_id
            and (member_id is None or p.member_id == member_id)
            and (statuses is None or p.status in statuses)
            and (start is None or p.payment_date >= start)
            and (end is None or p.payment_date <= end)
        ]

    def get_products(self, company_id: str) -> list[Product]:
        return [p for p in self.products if p.company_id == company_id]

    def get_plans(self, product_id: str) -> list[Plan]:
        return [p for p in self.plans if p.product_id == product_id]

    def upsert_member_analytics(self, snapshots: Sequence[MemberAnalyticsSnapshot]) -> int:
        for snapshot in snapshots:
            self.analytics[snapshot.member_id] = snapshot
        return len(snapshots)

    def get_benchmark(self, niche: str, revenue_range: str) -> BenchmarkBucket | None:
        return self.benchmarks.get((niche, revenue_range))

    def update_benchmark(
        self,
        niche: str,
        revenue_range: str,
        update: BenchmarkUpdate,
    ) -> BenchmarkBucket | None:
        key = (niche, revenue_range)
        with self._registry_lock:
            lock = self._bucket_locks[key]
        with lock:
            current = self.benchmarks.get(key)
            updated = update(current)
            if updated is None:
                return current
            self.benchmarks[key] = updated
            self.benchmark_writes += 1
            return updated


# ---------------------------------------------------------------------------
# In-memory MetricsCache
# ---------------------------------------------------------------------------


@dataclass
class InMemoryMetricsCache:
    entries: dict[tuple[str, str, date], dict[str, Any]] = field(default_factory=dict)
    gets: int = 0
    sets: int = 0

    def get(self, company_id: str, metric_type: str, day: date) -> dict[str, Any] | None:
        self.gets += 1
        return self.entries.get((company_id, metric_type, day))

    def set(
        self,
        company_id: str,
        metric_type: str,
        day: date,
        payload: dict[str, Any],
        value: float | None = None,
    ) -> None:
        self.sets += 1
        self.entries[(company_id, metric_type, day)] = dict(payload)

    def invalidate(self, company_id: str, metric_type: str | None = None) -> int:
        doomed = [
            key
            for key in self.entries
            if key[0] == company_id and (metric_type is None or key[1] == metric_type)
        ]
        for key in doomed:
            del self.entries[key]
        return len(doomed)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryStore:
    """Fresh store with one company ``co_1``."""
    fake = InMemoryStore()
    fake.add_company("co_1")
    return fake


@pytest.fixture()
def cache() -> InMemoryMetricsCache:
    return InMemoryMetricsCache()


@pytest.fixture()
def settings() -> MetricsSettings:
    return MetricsSettings()


@pytest.fixture()
def monthly_plan(store: InMemoryStore) -> Plan:
    return store.add_plan(store.add_product(), price="49", billing_period="monthly")
