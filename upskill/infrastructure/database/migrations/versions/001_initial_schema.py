# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-06-02
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _uuid_fk(name: str, target: str, ondelete: str | None = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create all tables."""
    # =========================================================================
    # IDENTITY
    # =========================================================================

    op.create_table(
        "users",
        _id_column(),
        sa.Column("external_id", sa.String(255), unique=True, nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.Text, nullable=True),
        sa.Column("api_key", sa.String(64), unique=True, nullable=False),
        sa.Column("credits", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_accessed_organization_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("schema_version", sa.Integer, nullable=False, server_default="1"),
        *_timestamp_columns(),
    )

    op.create_table(
        "organizations",
        _id_column(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(100), unique=True, nullable=False),
        sa.Column("icon_url", sa.Text, nullable=True),
        _uuid_fk("owner_id", "users.id", ondelete=None),
        sa.Column("settings", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("schema_version", sa.Integer, nullable=False, server_default="1"),
        *_timestamp_columns(),
    )

    op.create_table(
        "departments",
        _id_column(),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("default_course_ids", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("auto_enroll", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamp_columns(),
    )
    op.create_index("ix_departments_organization_id", "departments", ["organization_id"])
    op.create_index(
        "uq_departments_organization_name",
        "departments",
        ["organization_id", sa.text("lower(name)")],
        unique=True,
    )

    op.create_table(
        "organization_members",
        _id_column(),
        _uuid_fk("organization_id", "organizations.id"),
        _uuid_fk("user_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="'employee'"),
        sa.Column("status", sa.String(20), nullable=False, server_default="'invited'"),
        _uuid_fk("department_id", "departments.id", ondelete="SET NULL", nullable=True),
        sa.Column("assigned_course_ids", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("invited_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint("organization_id", "email", name="uq_members_organization_email"),
    )
    op.create_index("ix_organization_members_organization_id", "organization_members", ["organization_id"])
    op.create_index("ix_organization_members_user_id", "organization_members", ["user_id"])

    # =========================================================================
    # LEARNING
    # =========================================================================

    op.create_table(
        "courses",
        _id_column(),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String(30), nullable=False, server_default="'other'"),
        sa.Column("thumbnail_url", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="'draft'"),
        sa.Column("estimated_duration", sa.Integer, nullable=False, server_default="0"),
        sa.Column("modules", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("schema_version", sa.Integer, nullable=False, server_default="1"),
        *_timestamp_columns(),
    )
    op.create_index("ix_courses_organization_id", "courses", ["organization_id"])

    op.create_table(
        "enrollments",
        _id_column(),
        _uuid_fk("user_id", "users.id"),
        _uuid_fk("course_id", "courses.id"),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="'not-started'"),
        sa.Column("progress_percentage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_lesson_ids", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("current_lesson_id", sa.String(64), nullable=True),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_organization_id", "enrollments", ["organization_id"])

    op.create_table(
        "lesson_progress",
        _id_column(),
        _uuid_fk("user_id", "users.id"),
        sa.Column("lesson_id", sa.String(64), nullable=False),
        _uuid_fk("course_id", "courses.id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="'in-progress'"),
        sa.Column("watch_time", sa.Integer, nullable=False, server_default="0"),
        sa.Column("scroll_depth", sa.Integer, nullable=False, server_default="0"),
        sa.Column("time_spent", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "last_accessed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamp_columns(),
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_user_lesson"),
    )
    op.create_index("ix_lesson_progress_user_id", "lesson_progress", ["user_id"])
    op.create_index("ix_lesson_progress_course_id", "lesson_progress", ["course_id"])

    op.create_table(
        "quiz_attempts",
        _id_column(),
        _uuid_fk("user_id", "users.id"),
        sa.Column("lesson_id", sa.String(64), nullable=False),
        _uuid_fk("course_id", "courses.id"),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("attempt_number", sa.Integer, nullable=False),
        sa.Column("answers", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("passed", sa.Boolean, nullable=False),
        sa.Column("time_spent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "user_id", "lesson_id", "attempt_number", name="uq_quiz_attempts_user_lesson_number"
        ),
    )
    op.create_index("ix_quiz_attempts_user_id", "quiz_attempts", ["user_id"])
    op.create_index("ix_quiz_attempts_course_id", "quiz_attempts", ["course_id"])

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    op.create_table(
        "analytics_events",
        _id_column(),
        sa.Column("event_id", sa.String(64), unique=True, nullable=False),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("event_name", sa.String(200), nullable=False),
        sa.Column("properties", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("session_id", sa.String(100), nullable=True),
    )
    op.create_index(
        "ix_analytics_events_org_timestamp", "analytics_events", ["organization_id", "timestamp"]
    )
    op.create_index(
        "ix_analytics_events_user_timestamp", "analytics_events", ["user_id", "timestamp"]
    )
    op.create_index("ix_analytics_events_type", "analytics_events", ["event_type"])

    op.create_table(
        "organization_analytics",
        _id_column(),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("period", sa.String(10), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_time_spent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("avg_time_spent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("active_users", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_engagements", sa.Integer, nullable=False, server_default="0"),
        sa.Column("avg_learning_progress", sa.Float, nullable=False, server_default="0"),
        sa.Column("avg_quiz_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("courses_completed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("course_aggregations", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("user_aggregations", postgresql.JSONB, nullable=False, server_default="[]"),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "organization_id",
            "period",
            "start_date",
            "end_date",
            name="uq_organization_analytics_window",
        ),
    )

    op.create_table(
        "course_analytics",
        _id_column(),
        _uuid_fk("course_id", "courses.id"),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("period", sa.String(10), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("enrollment_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completion_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completion_rate", sa.Float, nullable=False, server_default="0"),
        sa.Column("avg_time_spent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("avg_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("avg_attempts_to_pass", sa.Float, nullable=False, server_default="0"),
        sa.Column("avg_completion_time", sa.Integer, nullable=False, server_default="0"),
        sa.Column("dropoff_points", postgresql.JSONB, nullable=False, server_default="[]"),
        *_timestamp_columns(),
    )
    op.create_index("ix_course_analytics_course_id", "course_analytics", ["course_id"])

    op.create_table(
        "user_analytics",
        _id_column(),
        _uuid_fk("user_id", "users.id"),
        _uuid_fk("organization_id", "organizations.id"),
        sa.Column("period", sa.String(10), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_time_spent", sa.Integer, nullable=False, server_default="0"),
        sa.Column("courses_enrolled", sa.Integer, nullable=False, server_default="0"),
        sa.Column("courses_completed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("avg_quiz_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("engagement_level", sa.String(10), nullable=False, server_default="'low'"),
        sa.Column("knowledge_gaps", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("activity_heatmap", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("last_accessed_courses", postgresql.JSONB, nullable=False, server_default="[]"),
        *_timestamp_columns(),
    )
    op.create_index("ix_user_analytics_user_id", "user_analytics", ["user_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("user_analytics")
    op.drop_table("course_analytics")
    op.drop_table("organization_analytics")
    op.drop_table("analytics_events")
    op.drop_table("quiz_attempts")
    op.drop_table("lesson_progress")
    op.drop_table("enrollments")
    op.drop_table("courses")
    op.drop_table("organization_members")
    op.drop_table("departments")
    op.drop_table("organizations")
    op.drop_table("users")
