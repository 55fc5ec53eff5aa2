# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base and shared column mixins.

Primary keys are string UUIDs and every timestamp is timezone-aware UTC.
Embedded documents (course modules, quiz answers, event properties) are
stored as JSON, which maps to JSONB on PostgreSQL.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from upskill.utils.datetime import utc_now

JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    """Generate a new string UUID primary key."""
    return str(uuid4())


def is_valid_id(value: str | None) -> bool:
    """Check whether a value can be compared against a UUID column."""
    if not value:
        return False
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class UUIDMixin:
    """String UUID primary key."""

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=new_id,
    )


class TimestampMixin:
    """Created/updated timestamps maintained by the ORM."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )
