# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enumerations and base schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class EnrollmentStatus(str, Enum):
    """Lifecycle of a course enrollment."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class LessonStatus(str, Enum):
    """Lifecycle of a single lesson for a user."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class MemberRole(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


class MemberStatus(str, Enum):
    ACTIVE = "active"
    INVITED = "invited"
    INACTIVE = "inactive"


class CourseCategory(str, Enum):
    ONBOARDING = "onboarding"
    TECHNICAL = "technical"
    SALES = "sales"
    SOFT_SKILLS = "soft-skills"
    COMPLIANCE = "compliance"
    OTHER = "other"


class CourseStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentType(str, Enum):
    VIDEO = "video"
    ARTICLE = "article"
    QUIZ = "quiz"


class AnalyticsPeriod(str, Enum):
    """Rollup window sizes."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EngagementLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EventType(str, Enum):
    """Analytics event types produced by the platform and clients."""

    TIME_SPENT_UPDATED = "time_spent_updated"
    QUIZ_COMPLETED = "quiz_completed"
    COURSE_ENROLLED = "course_enrolled"
    COURSE_COMPLETED = "course_completed"
    LESSON_STARTED = "lesson_started"
    LESSON_COMPLETED = "lesson_completed"
    LESSON_ABANDONED = "lesson_abandoned"


class ORMModel(BaseModel):
    """Base for responses built from ORM rows."""

    model_config = ConfigDict(from_attributes=True)
