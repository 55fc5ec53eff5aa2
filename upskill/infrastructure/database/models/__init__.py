# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for Upskill.

Importing this package registers every table on Base.metadata.
"""

from upskill.infrastructure.database.models.analytics import (
    AnalyticsEvent,
    CourseAnalytics,
    OrganizationAnalytics,
    UserAnalytics,
)
from upskill.infrastructure.database.models.base import (
    Base,
    JSONType,
    TimestampMixin,
    UUIDMixin,
    is_valid_id,
    new_id,
)
from upskill.infrastructure.database.models.certificate import Certificate, new_certificate_id
from upskill.infrastructure.database.models.course import Course
from upskill.infrastructure.database.models.enrollment import (
    Enrollment,
    LessonProgress,
    QuizAttempt,
)
from upskill.infrastructure.database.models.organization import (
    DEFAULT_ORGANIZATION_SETTINGS,
    Department,
    Organization,
    OrganizationMember,
)
from upskill.infrastructure.database.models.user import User

__all__ = [
    # Base
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDMixin",
    "is_valid_id",
    "new_id",
    # Identity
    "User",
    "Organization",
    "OrganizationMember",
    "Department",
    "DEFAULT_ORGANIZATION_SETTINGS",
    # Learning
    "Course",
    "Enrollment",
    "LessonProgress",
    "QuizAttempt",
    "Certificate",
    "new_certificate_id",
    # Analytics
    "AnalyticsEvent",
    "OrganizationAnalytics",
    "CourseAnalytics",
    "UserAnalytics",
]
