"""Declarative base and column mixins shared by the flow tables.

The same metadata backs ``create_schema`` (SQLite, tests) and the Alembic
migration (PostgreSQL), so constraint names come from one convention.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, MetaData, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Must match the constraint names used in alembic/versions
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Step configs and event payloads: JSONB on PostgreSQL, JSON text on SQLite
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base for flows, flow_steps and analytics_events."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDMixin:
    """String UUID primary key, generated client-side."""

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
        doc="UUID v4",
    )


class TimestampMixin:
    """Server-side ``created_at`` and ``updated_at``.

    Both are filled by the database; ``updated_at`` is refreshed on every
    UPDATE the ORM emits. Rows must be refreshed after a flush before these
    attributes are read under an async session.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


__all__ = [
    "Base",
    "JSONType",
    "NAMING_CONVENTION",
    "TimestampMixin",
    "UUIDMixin",
]
