# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course model.

Modules and their lessons are embedded in the course row as JSON:

    [{"id": ..., "title": ..., "order": 0,
      "lessons": [{"id": ..., "title": ..., "content_type": "video",
                   "order": 0, "duration": 10, ...}]}]
"""

from typing import Any

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from upskill.infrastructure.database.models.base import (
    Base,
    JSONType,
    TimestampMixin,
    UUIDMixin,
)


class Course(Base, UUIDMixin, TimestampMixin):
    """Course authored by an organization."""

    __tablename__ = "courses"

    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False, default="other")
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    estimated_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    modules: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    created_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
