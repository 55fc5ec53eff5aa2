# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics event log and periodic rollup models."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from upskill.infrastructure.database.models.base import (
    Base,
    JSONType,
    TimestampMixin,
    UUIDMixin,
    new_id,
)
from upskill.utils.datetime import utc_now


class AnalyticsEvent(Base, UUIDMixin):
    """Append-only learning event.

    Event types and their properties:
        time_spent_updated: time_spent (minutes), course_id, lesson_id
        quiz_completed: score, attempt_number, course_id, lesson_id
        course_enrolled / course_completed: course_id
        lesson_started / lesson_completed / lesson_abandoned:
            lesson_id, lesson_title, course_id
    """

    __tablename__ = "analytics_events"
    __table_args__ = (
        Index("ix_analytics_events_org_timestamp", "organization_id", "timestamp"),
        Index("ix_analytics_events_user_timestamp", "user_id", "timestamp"),
        Index("ix_analytics_events_type", "event_type"),
    )

    event_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    event_name: Mapped[str] = mapped_column(String(200), nullable=False)
    properties: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)


class OrganizationAnalytics(Base, UUIDMixin, TimestampMixin):
    """Organization engagement rollup for one period window."""

    __tablename__ = "organization_analytics"
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "period",
            "start_date",
            "end_date",
            name="uq_organization_analytics_window",
        ),
    )

    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    period: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_engagements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_learning_progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_quiz_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    courses_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    course_aggregations: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    user_aggregations: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )


class CourseAnalytics(Base, UUIDMixin, TimestampMixin):
    """Course performance rollup for one period window."""

    __tablename__ = "course_analytics"
    __table_args__ = (
        UniqueConstraint(
            "course_id",
            "period",
            "start_date",
            "end_date",
            name="uq_course_analytics_window",
        ),
    )

    course_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    period: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    enrollment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_attempts_to_pass: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    avg_completion_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dropoff_points: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )


class UserAnalytics(Base, UUIDMixin, TimestampMixin):
    """Learner engagement rollup for one period window."""

    __tablename__ = "user_analytics"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "organization_id",
            "period",
            "start_date",
            "end_date",
            name="uq_user_analytics_window",
        ),
    )

    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    period: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    courses_enrolled: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    courses_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_quiz_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    engagement_level: Mapped[str] = mapped_column(String(10), nullable=False, default="low")
    knowledge_gaps: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    activity_heatmap: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    last_accessed_courses: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
