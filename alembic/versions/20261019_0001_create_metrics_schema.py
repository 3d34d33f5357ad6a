"""create synced commerce tables, member_analytics, benchmark_data, metrics_cache

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    # ---------------------------------------------------------------------------
    # companies
    # No foreign keys. Created first; every synced table references it.
    # ---------------------------------------------------------------------------
    op.create_table(
        "companies",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column(
            "external_company_id",
            sa.String(length=64),
            nullable=False,
            comment="Company id on the commerce platform",
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("external_company_id", name="uq_companies_external_company_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_companies_external_company_id", "companies", ["external_company_id"])

    # ---------------------------------------------------------------------------
    # products / plans
    # ---------------------------------------------------------------------------
    op.create_table(
        "products",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("external_product_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_app", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("external_product_id", name="uq_products_external_product_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_products_company_id", "products", ["company_id"])
    op.create_index("ix_products_is_app", "products", ["is_app"])

    op.create_table(
        "plans",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("external_plan_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("billing_period", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("external_plan_id", name="uq_plans_external_plan_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_plans_product_id", "plans", ["product_id"])

    # ---------------------------------------------------------------------------
    # members / memberships / payments
    # ---------------------------------------------------------------------------
    op.create_table(
        "members",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("external_user_id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("external_user_id", name="uq_members_external_user_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_members_company_id", "members", ["company_id"])
    op.create_index("ix_members_email", "members", ["email"])

    op.create_table(
        "memberships",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.String(length=64), nullable=False),
        sa.Column("plan_id", sa.String(length=64), nullable=False),
        sa.Column("external_membership_id", sa.String(length=64), nullable=False),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            comment="active, trialing, past_due, completed, cancelled, expired, ...",
        ),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["plan_id"], ["plans.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "external_membership_id", name="uq_memberships_external_membership_id"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_memberships_company_id", "memberships", ["company_id"])
    op.create_index("ix_memberships_member_id", "memberships", ["member_id"])
    op.create_index("ix_memberships_plan_id", "memberships", ["plan_id"])
    op.create_index("ix_memberships_status", "memberships", ["status"])
    op.create_index(
        "ix_memberships_company_start", "memberships", ["company_id", "start_date"]
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("membership_id", sa.String(length=64), nullable=True),
        sa.Column("external_payment_id", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refunded_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["membership_id"], ["memberships.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("external_payment_id", name="uq_payments_external_payment_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payments_company_id", "payments", ["company_id"])
    op.create_index("ix_payments_member_id", "payments", ["member_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_company_date", "payments", ["company_id", "payment_date"])

    # ---------------------------------------------------------------------------
    # member_analytics
    # One row per member; rebuilt by the recompute job.
    # ---------------------------------------------------------------------------
    op.create_table(
        "member_analytics",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("total_revenue", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total_payments", sa.Integer(), nullable=False),
        sa.Column("average_payment", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("lifetime_months", sa.Integer(), nullable=False),
        sa.Column("last_payment_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("churn_risk_score", sa.Integer(), nullable=False),
        sa.Column("engagement_score", sa.Integer(), nullable=False),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("member_id", name="uq_member_analytics_member_id"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_member_analytics_company_id", "member_analytics", ["company_id"])
    op.create_index("ix_member_analytics_churn_risk", "member_analytics", ["churn_risk_score"])

    # ---------------------------------------------------------------------------
    # benchmark_data
    # Cross-tenant; no company FK.  Unique bucket key drives row locking.
    # ---------------------------------------------------------------------------
    op.create_table(
        "benchmark_data",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("niche", sa.String(length=32), nullable=False),
        sa.Column("revenue_range", sa.String(length=16), nullable=False),
        sa.Column("avg_mrr", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("avg_churn_rate", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("avg_ltv", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("avg_arpu", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("sample_size", sa.Integer(), nullable=False),
        sa.Column(
            "contributing_companies",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        *_timestamps(),
        sa.UniqueConstraint("niche", "revenue_range", name="uq_benchmark_data_niche_range"),
        sa.PrimaryKeyConstraint("id"),
    )

    # ---------------------------------------------------------------------------
    # metrics_cache
    # ---------------------------------------------------------------------------
    op.create_table(
        "metrics_cache",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column(
            "metric_type",
            sa.String(length=64),
            nullable=False,
            comment="overview, mrr, churn_rate, ...",
        ),
        sa.Column("period", sa.String(length=16), nullable=False),
        sa.Column(
            "period_start",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Start of the cached day (UTC)",
        ),
        sa.Column("value", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "company_id",
            "metric_type",
            "period",
            "period_start",
            name="uq_metrics_cache_company_metric_period",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_metrics_cache_company_metric", "metrics_cache", ["company_id", "metric_type"]
    )


def downgrade() -> None:
    op.drop_index("ix_metrics_cache_company_metric", table_name="metrics_cache")
    op.drop_table("metrics_cache")

    op.drop_table("benchmark_data")

    op.drop_index("ix_member_analytics_churn_risk", table_name="member_analytics")
    op.drop_index("ix_member_analytics_company_id", table_name="member_analytics")
    op.drop_table("member_analytics")

    op.drop_index("ix_payments_company_date", table_name="payments")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_member_id", table_name="payments")
    op.drop_index("ix_payments_company_id", table_name="payments")
    op.drop_table("payments")

    op.drop_index("ix_memberships_company_start", table_name="memberships")
    op.drop_index("ix_memberships_status", table_name="memberships")
    op.drop_index("ix_memberships_plan_id", table_name="memberships")
    op.drop_index("ix_memberships_member_id", table_name="memberships")
    op.drop_index("ix_memberships_company_id", table_name="memberships")
    op.drop_table("memberships")

    op.drop_index("ix_members_email", table_name="members")
    op.drop_index("ix_members_company_id", table_name="members")
    op.drop_table("members")

    op.drop_index("ix_plans_product_id", table_name="plans")
    op.drop_table("plans")

    op.drop_index("ix_products_is_app", table_name="products")
    op.drop_index("ix_products_company_id", table_name="products")
    op.drop_table("products")

    op.drop_index("ix_companies_external_company_id", table_name="companies")
    op.drop_table("companies")
