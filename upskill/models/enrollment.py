# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from upskill.models.common import EnrollmentStatus, ORMModel
from upskill.models.progress import LessonProgressResponse


class EnrollmentCreateRequest(BaseModel):
    """Request to enroll a user in a course."""

    user_id: str = Field(..., min_length=1, description="User to enroll")
    course_id: str = Field(..., min_length=1, description="Course to enroll in")
    organization_id: str = Field(..., min_length=1, description="Organization the enrollment belongs to")


class EnrollmentUpdateRequest(BaseModel):
    """Manual enrollment status or position change.

    Progress percentage is always derived from lesson progress and cannot
    be written directly.
    """

    status: EnrollmentStatus | None = Field(None, description="New enrollment status")
    current_lesson_id: str | None = Field(None, description="Lesson the user is on")


class EnrollmentCourseSummary(BaseModel):
    """Course details shown with an enrollment."""

    id: str = Field(description="Course ID")
    title: str = Field(description="Course title")
    description: str | None = Field(None, description="Course description")
    category: str = Field(description="Course category")
    thumbnail_url: str | None = Field(None, description="Thumbnail image URL")
    estimated_duration: int = Field(description="Estimated duration in minutes")
    total_lessons: int = Field(description="Number of lessons in the course")


class EnrollmentResponse(ORMModel):
    """Enrollment with derived progress."""

    id: str = Field(description="Enrollment ID")
    user_id: str = Field(description="Enrolled user")
    course_id: str = Field(description="Course ID")
    organization_id: str = Field(description="Organization ID")
    status: EnrollmentStatus = Field(description="Enrollment status")
    progress_percentage: int = Field(description="Completed lessons as a percentage")
    completed_lesson_ids: list[str] = Field(default_factory=list, description="Completed lessons")
    current_lesson_id: str | None = Field(None, description="Next lesson to take")
    enrolled_at: datetime = Field(description="Enrollment time")
    started_at: datetime | None = Field(None, description="First activity time")
    completed_at: datetime | None = Field(None, description="Completion time")
    course: EnrollmentCourseSummary | None = Field(
        None, description="Course summary, null when the course no longer exists"
    )


class EnrollmentDetailResponse(EnrollmentResponse):
    """Enrollment with the user's lesson progress for the course."""

    lesson_progress: list[LessonProgressResponse] = Field(
        default_factory=list, description="Lesson progress records"
    )


class EnrollmentListResponse(BaseModel):
    """Enrollments of a user."""

    items: list[EnrollmentResponse] = Field(description="Enrollments, newest first")
    total: int = Field(description="Number of enrollments")


class ProgressChanges(BaseModel):
    """Before/after view of a progress recalculation."""

    completed_lessons_before: int = Field(description="Completed lessons before")
    completed_lessons_after: int = Field(description="Completed lessons after")
    percentage_before: int = Field(description="Percentage before")
    percentage_after: int = Field(description="Percentage after")
    total_lessons: int = Field(description="Lessons in the course")


class RecalculateResponse(BaseModel):
    """Result of a progress recalculation."""

    enrollment: EnrollmentResponse = Field(description="Updated enrollment")
    changes: ProgressChanges = Field(description="What changed")
