# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course completion certificate model.

A certificate snapshots the learner, course and organization names at
issue time so it can be shown publicly by certificate_id. It also keeps
the course structure it was earned against; a certificate whose course
has since gained or lost modules or lessons is no longer valid.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from upskill.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin
from upskill.utils.datetime import utc_now


def new_certificate_id() -> str:
    """Short, URL-friendly public certificate id."""
    return uuid4().hex[:12]


class Certificate(Base, UUIDMixin, TimestampMixin):
    """Certificate issued for a completed enrollment.

    Course and enrollment references are cleared rather than cascaded so
    a certificate outlives the course it was issued for.
    """

    __tablename__ = "certificates"
    __table_args__ = (
        Index("ix_certificates_user_course", "user_id", "course_id"),
        Index("ix_certificates_org_issued", "organization_id", "issued_at"),
    )

    certificate_id: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, default=new_certificate_id
    )
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("courses.id", ondelete="SET NULL"),
        nullable=True,
    )
    enrollment_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("enrollments.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )
    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    course_title: Mapped[str] = mapped_column(String(200), nullable=False)
    organization_name: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_lessons_at_issue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_modules_at_issue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    invalidated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    invalidation_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Certificate {self.certificate_id}>"
