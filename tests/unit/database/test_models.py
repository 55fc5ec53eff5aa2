# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests table registration, uniqueness constraints and id helpers.
"""

from uuid import uuid4

import pytest
from sqlalchemy import UniqueConstraint

from upskill.infrastructure.database.models import (
    AnalyticsEvent,
    Base,
    Certificate,
    CourseAnalytics,
    Enrollment,
    LessonProgress,
    OrganizationAnalytics,
    OrganizationMember,
    QuizAttempt,
    TimestampMixin,
    UserAnalytics,
    is_valid_id,
    new_id,
)


def _unique_columns(model) -> list[tuple[str, ...]]:
    return [
        tuple(column.name for column in constraint.columns)
        for constraint in model.__table__.constraints
        if isinstance(constraint, UniqueConstraint)
    ]


class TestIdHelpers:
    def test_new_id_is_valid(self) -> None:
        assert is_valid_id(new_id())

    def test_new_id_unique(self) -> None:
        assert new_id() != new_id()

    @pytest.mark.parametrize("value", [None, "", "course-1", "user_2abc", "1234"])
    def test_rejects_non_uuid(self, value) -> None:
        assert is_valid_id(value) is False

    def test_accepts_uppercase_uuid(self) -> None:
        assert is_valid_id(str(uuid4()).upper())


class TestBase:
    """Test base model functionality."""

    def test_tables_registered(self) -> None:
        assert set(Base.metadata.tables) >= {
            "users",
            "organizations",
            "organization_members",
            "departments",
            "courses",
            "enrollments",
            "lesson_progress",
            "quiz_attempts",
            "analytics_events",
            "organization_analytics",
            "course_analytics",
            "user_analytics",
            "certificates",
        }

    def test_timestamp_mixin_has_fields(self) -> None:
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")


class TestConstraints:
    """Tests for uniqueness rules enforced by the schema."""

    def test_one_enrollment_per_user_course(self) -> None:
        assert ("user_id", "course_id") in _unique_columns(Enrollment)

    def test_one_progress_row_per_user_lesson(self) -> None:
        assert ("user_id", "lesson_id") in _unique_columns(LessonProgress)

    def test_attempt_numbers_unique(self) -> None:
        assert ("user_id", "lesson_id", "attempt_number") in _unique_columns(QuizAttempt)

    def test_member_email_unique_per_organization(self) -> None:
        assert ("organization_id", "email") in _unique_columns(OrganizationMember)

    def test_one_rollup_per_window(self) -> None:
        assert ("organization_id", "period", "start_date", "end_date") in _unique_columns(
            OrganizationAnalytics
        )

    def test_event_id_unique(self) -> None:
        assert AnalyticsEvent.__table__.c.event_id.unique

    def test_one_course_rollup_per_window(self) -> None:
        assert ("course_id", "period", "start_date", "end_date") in _unique_columns(
            CourseAnalytics
        )

    def test_one_user_rollup_per_window(self) -> None:
        assert (
            "user_id",
            "organization_id",
            "period",
            "start_date",
            "end_date",
        ) in _unique_columns(UserAnalytics)

    def test_one_certificate_per_enrollment(self) -> None:
        assert Certificate.__table__.c.enrollment_id.unique
        assert Certificate.__table__.c.certificate_id.unique
