"""
db/models/member.py

Member, membership and payment models: the time-stamped records the
metrics engine derives everything from.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from db.models.company import CompanyRecord


class MemberRecord(Base, TimestampMixin):
    """
    Customer identity.  ``joined_at`` is the member's join date on the
    platform; ``created_at`` from the mixin is the local insert time.
    """

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)

    company_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    external_user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    username: Mapped[str | None] = mapped_column(String(255), nullable=True)

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    company: Mapped["CompanyRecord"] = relationship("CompanyRecord", back_populates="members")

    memberships: Mapped[list["MembershipRecord"]] = relationship(
        "MembershipRecord",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_members_company_id", "company_id"),
        Index("ix_members_email", "email"),
    )


class MembershipRecord(Base, TimestampMixin):
    """
    Time-bounded member ↔ plan relationship.

    ``end_date`` NULL means still open.  Status and end date are the only
    fields the sync collaborator changes after insert.
    """

    __tablename__ = "memberships"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)

    company_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    member_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )

    product_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )

    plan_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
    )

    external_membership_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="active, trialing, past_due, completed, cancelled, expired, ...",
    )

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    member: Mapped["MemberRecord"] = relationship("MemberRecord", back_populates="memberships")

    __table_args__ = (
        Index("ix_memberships_company_id", "company_id"),
        Index("ix_memberships_member_id", "member_id"),
        Index("ix_memberships_plan_id", "plan_id"),
        Index("ix_memberships_status", "status"),
        Index("ix_memberships_company_start", "company_id", "start_date"),
    )


class PaymentRecord(Base, TimestampMixin):
    """
    One transaction, amounts in the platform's native currency units.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)

    company_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    member_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )

    membership_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("memberships.id", ondelete="CASCADE"),
        nullable=True,
    )

    external_payment_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")

    status: Mapped[str] = mapped_column(String(32), nullable=False)

    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    refunded_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )

    metadata_json: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)

    __table_args__ = (
        Index("ix_payments_company_id", "company_id"),
        Index("ix_payments_member_id", "member_id"),
        Index("ix_payments_status", "status"),
        Index("ix_payments_company_date", "company_id", "payment_date"),
    )
