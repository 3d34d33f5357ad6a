"""
db/base.py

Declarative base, id generator and the timestamp mixin shared by the
synced-entity models and the derived analytics tables.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, MetaData, Numeric, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Constraint names follow the migration; unnamed unique=True columns
# resolve to uq_<table>_<column>.
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
}


def new_id() -> str:
    """Text primary key for rows created locally (synced rows keep their own ids)."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """
    Shared declarative base for every table of the metrics schema.

    Money annotated as ``Decimal`` maps to ``Numeric(12, 2)`` and free-form
    ``dict`` payloads to ``JSONB`` unless a column says otherwise.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: dict[Any, Any] = {
        Decimal: Numeric(12, 2),
        dict[str, Any]: JSONB,
    }


class TimestampMixin:
    """
    ``created_at`` / ``updated_at`` for synced rows.
    ``updated_at`` is refreshed on every ORM UPDATE.
    """

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
