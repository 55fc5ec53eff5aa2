# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization, membership and department models."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from upskill.infrastructure.database.models.base import (
    Base,
    JSONType,
    TimestampMixin,
    UUIDMixin,
)

DEFAULT_ORGANIZATION_SETTINGS: dict[str, Any] = {
    "allow_employee_self_enrollment": False,
    "require_quiz_passing": True,
    "passing_score": 70,
}


class Organization(Base, UUIDMixin, TimestampMixin):
    """Tenant organization owning members, departments and courses."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("users.id"),
        nullable=False,
    )
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=lambda: dict(DEFAULT_ORGANIZATION_SETTINGS),
    )
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class Department(Base, UUIDMixin, TimestampMixin):
    """Group of members with optional default courses."""

    __tablename__ = "departments"
    __table_args__ = (
        Index(
            "uq_departments_organization_name",
            "organization_id",
            text("lower(name)"),
            unique=True,
        ),
    )

    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_course_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    auto_enroll: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)


class OrganizationMember(Base, UUIDMixin, TimestampMixin):
    """Membership of a (possibly not yet registered) person in an organization.

    Invited members have no user_id until the invited email signs in.
    """

    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "email", name="uq_members_organization_email"),
    )

    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="employee")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="invited")
    department_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_course_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    invited_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    invited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    joined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
