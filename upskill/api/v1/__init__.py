# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    users: Current user profile and per-user analytics.
    organizations: Organizations and their courses.
    members: Organization members and bulk import.
    departments: Departments and auto-enrollment.
    courses: Course details, updates and deletion.
    enrollments: Course enrollments and progress recalculation.
    lesson_progress: Per-lesson progress reports.
    quiz_attempts: Quiz submissions.
    analytics: Event log, rollups and course reports.
    certificates: Course completion certificates.
"""

from fastapi import APIRouter

from upskill.api.v1 import (
    analytics,
    certificates,
    courses,
    departments,
    enrollments,
    lesson_progress,
    members,
    organizations,
    quiz_attempts,
    users,
)

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])
router.include_router(members.router, prefix="/organizations", tags=["Members"])
router.include_router(departments.router, prefix="/organizations", tags=["Departments"])
router.include_router(courses.router, prefix="/courses", tags=["Courses"])
router.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
router.include_router(lesson_progress.router, prefix="/lesson-progress", tags=["Lesson Progress"])
router.include_router(quiz_attempts.router, prefix="/quiz-attempts", tags=["Quiz Attempts"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
router.include_router(certificates.router, prefix="/certificates", tags=["Certificates"])

__all__ = ["router"]
