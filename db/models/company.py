"""
db/models/company.py

Company model, the root tenant entity.
All products, members, memberships and payments are scoped to a company.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from db.models.catalog import ProductRecord
    from db.models.member import MemberRecord


class CompanyRecord(Base, TimestampMixin):
    """
    A creator business on the commerce platform.

    ``external_company_id`` is the platform's identifier and the upsert key
    used by the sync collaborator.
    """

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )

    external_company_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="Company id on the commerce platform",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    products: Mapped[list["ProductRecord"]] = relationship(
        "ProductRecord",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    members: Mapped[list["MemberRecord"]] = relationship(
        "MemberRecord",
        back_populates="company",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("ix_companies_external_company_id", "external_company_id"),
    )

    def __repr__(self) -> str:
        return f"<CompanyRecord id={self.id} name={self.name!r}>"
