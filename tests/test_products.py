"""
tests/test_products.py

Unit tests for the per-product performance table.
"""

from __future__ import annotations

from decimal import Decimal

from kpi.products import product_performance
from conftest import InMemoryStore, utc


class TestProductPerformance:
    def test_rows_sorted_by_revenue(self, store: InMemoryStore) -> None:
        community = store.add_product(name="Community")
        course = store.add_product(name="Course")
        monthly = store.add_plan(community, price="49", billing_period="monthly")
        yearly = store.add_plan(course, price="120", billing_period="yearly")

        staying, leaving, learner = store.add_member(), store.add_member(), store.add_member()
        kept = store.add_membership(staying, monthly, utc(2024, 1, 1))
        store.add_membership(leaving, monthly, utc(2024, 1, 1), utc(2024, 2, 1), "cancelled")
        enrolled = store.add_membership(learner, yearly, utc(2024, 1, 1))
        store.add_payment(staying, "49", utc(2024, 1, 1), membership=kept)
        store.add_payment(learner, "120", utc(2024, 1, 1), membership=enrolled)
        store.add_payment(leaving, "15", utc(2024, 1, 3))

        rows = product_performance(store, "co_1")
        assert [row.name for row in rows] == ["Course", "Community"]

        course_row, community_row = rows
        assert course_row.revenue == Decimal("120.00")
        assert course_row.mrr == Decimal("10.00")
        assert course_row.active_members == 1
        assert course_row.churn_rate == 0.0

        assert community_row.plans == 1
        assert community_row.revenue == Decimal("49.00")
        assert community_row.mrr == Decimal("49.00")
        assert community_row.active_members == 1
        assert community_row.total_members == 2
        assert community_row.churned_members == 1
        assert community_row.churn_rate == 50.0

    def test_failed_payments_not_attributed(self, store: InMemoryStore, monthly_plan) -> None:
        member = store.add_member()
        membership = store.add_membership(member, monthly_plan, utc(2024, 1, 1))
        store.add_payment(member, "49", utc(2024, 1, 1), status="failed", membership=membership)

        (row,) = product_performance(store, "co_1")
        assert row.revenue == Decimal("0.00")

    def test_product_without_memberships(self, store: InMemoryStore) -> None:
        store.add_plan(store.add_product(name="Empty"))

        (row,) = product_performance(store, "co_1")
        assert row.total_members == 0
        assert row.churn_rate == 0.0
        assert row.mrr == Decimal("0.00")
