"""
db/models/catalog.py

Product and plan models: what a company sells and at which price.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from db.models.company import CompanyRecord


class ProductRecord(Base, TimestampMixin):
    """
    A sellable offering.  ``is_app`` marks platform apps, which are ignored
    when classifying a company's niche.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)

    company_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    external_product_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    is_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ── Relationships ──────────────────────────────────────────────────────────

    company: Mapped["CompanyRecord"] = relationship("CompanyRecord", back_populates="products")

    plans: Mapped[list["PlanRecord"]] = relationship(
        "PlanRecord",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_products_company_id", "company_id"),
        Index("ix_products_is_app", "is_app"),
    )


class PlanRecord(Base, TimestampMixin):
    """
    Pricing policy.  ``billing_period`` is stored exactly as synced
    ("monthly", "year", "30", ...) and interpreted by the MRR normalizer.
    """

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)

    product_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )

    external_plan_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")

    billing_period: Mapped[str] = mapped_column(String(32), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)

    product: Mapped["ProductRecord"] = relationship("ProductRecord", back_populates="plans")

    __table_args__ = (Index("ix_plans_product_id", "product_id"),)
