# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course service for managing organization courses.

This module provides the CourseService class for:
- Course creation with generated module and lesson ids
- Listing courses with module and lesson counts
- Course updates that keep the estimated duration in sync
- Course deletion together with its learner records
"""

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.domains.course.structure import (
    assign_ids,
    count_lessons,
    estimated_duration,
)
from upskill.infrastructure.database.models import (
    Course,
    Enrollment,
    LessonProgress,
    Organization,
    QuizAttempt,
    is_valid_id,
)
from upskill.models.common import CourseCategory, CourseStatus
from upskill.models.course import (
    CourseCreateRequest,
    CourseListItem,
    CourseListResponse,
    CourseResponse,
    CourseUpdateRequest,
    ModuleData,
)

logger = logging.getLogger(__name__)


class CourseServiceError(Exception):
    """Base exception for course service errors."""

    pass


class CourseNotFoundError(CourseServiceError):
    """Raised when a course is not found."""

    pass


class CourseOrganizationNotFoundError(CourseServiceError):
    """Raised when the owning organization is not found."""

    pass


def _dump_modules(modules: list[ModuleData]) -> list[dict[str, Any]]:
    return assign_ids(module.model_dump(mode="json") for module in modules)


class CourseService:
    """Service for managing courses.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize course service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def create(
        self,
        organization_id: str,
        data: CourseCreateRequest,
        created_by: str | None = None,
    ) -> CourseResponse:
        """Create a course in an organization.

        Args:
            organization_id: Owning organization.
            data: Course fields and modules.
            created_by: Authoring user ID.

        Returns:
            Created course.

        Raises:
            CourseOrganizationNotFoundError: If the organization does not exist.
        """
        await self._ensure_organization(organization_id)

        modules = _dump_modules(data.modules)
        course = Course(
            organization_id=organization_id,
            title=data.title,
            description=data.description,
            category=data.category.value,
            thumbnail_url=data.thumbnail_url,
            status=data.status.value,
            modules=modules,
            estimated_duration=estimated_duration(modules),
            created_by=created_by,
        )
        self.db.add(course)
        await self.db.commit()
        await self.db.refresh(course)

        logger.info(
            "Created course: id=%s, org=%s, lessons=%d",
            course.id,
            organization_id,
            count_lessons(modules),
        )
        return CourseResponse.model_validate(course)

    async def list_courses(
        self,
        organization_id: str,
        status: CourseStatus | None = None,
        category: CourseCategory | None = None,
    ) -> CourseListResponse:
        """List an organization's courses, newest first.

        Args:
            organization_id: Organization ID.
            status: Optional status filter.
            category: Optional category filter.

        Returns:
            Courses with module and lesson counts.
        """
        if not is_valid_id(organization_id):
            return CourseListResponse(items=[], total=0)

        query = select(Course).where(Course.organization_id == organization_id)
        if status:
            query = query.where(Course.status == status.value)
        if category:
            query = query.where(Course.category == category.value)
        query = query.order_by(Course.created_at.desc())

        result = await self.db.execute(query)
        courses = result.scalars().all()

        items = [
            CourseListItem(
                id=course.id,
                title=course.title,
                description=course.description,
                category=course.category,
                thumbnail_url=course.thumbnail_url,
                status=course.status,
                estimated_duration=course.estimated_duration,
                total_modules=len(course.modules or []),
                total_lessons=count_lessons(course.modules),
                created_at=course.created_at,
            )
            for course in courses
        ]
        return CourseListResponse(items=items, total=len(items))

    async def get(self, course_id: str) -> CourseResponse:
        """Get a course with its modules and lessons.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        course = await self.get_course(course_id)
        return CourseResponse.model_validate(course)

    async def update(self, course_id: str, data: CourseUpdateRequest) -> CourseResponse:
        """Update a course.

        Replacing the modules regenerates missing ids and recomputes the
        estimated duration. Enrollment progress is re-derived against
        the new lessons and certificates earned on a different structure
        are invalidated.

        Args:
            course_id: Course ID.
            data: Fields to change.

        Returns:
            Updated course.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        course = await self.get_course(course_id)

        if data.title is not None:
            course.title = data.title.strip()
        if data.description is not None:
            course.description = data.description
        if data.category is not None:
            course.category = data.category.value
        if data.thumbnail_url is not None:
            course.thumbnail_url = data.thumbnail_url
        if data.status is not None:
            course.status = data.status.value
        if data.modules is not None:
            course.modules = _dump_modules(data.modules)
        course.estimated_duration = estimated_duration(course.modules)

        if data.modules is not None:
            from upskill.domains.certificate.service import CertificateService
            from upskill.domains.enrollment.service import EnrollmentService

            await EnrollmentService(self.db).sync_course(course)
            await CertificateService(self.db).invalidate_for_course(course)

        await self.db.commit()
        await self.db.refresh(course)

        logger.info("Updated course: id=%s", course_id)
        return CourseResponse.model_validate(course)

    async def delete(self, course_id: str) -> None:
        """Delete a course with its enrollments, lesson progress and quiz attempts.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        course = await self.get_course(course_id)

        await self.db.execute(delete(QuizAttempt).where(QuizAttempt.course_id == course_id))
        await self.db.execute(delete(LessonProgress).where(LessonProgress.course_id == course_id))
        await self.db.execute(delete(Enrollment).where(Enrollment.course_id == course_id))
        await self.db.delete(course)
        await self.db.commit()

        logger.info("Deleted course: id=%s", course_id)

    async def get_course(self, course_id: str) -> Course:
        """Get the Course row.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        if not is_valid_id(course_id):
            raise CourseNotFoundError(f"Course {course_id} not found")

        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()
        if not course:
            raise CourseNotFoundError(f"Course {course_id} not found")
        return course

    async def _ensure_organization(self, organization_id: str) -> None:
        if not is_valid_id(organization_id):
            raise CourseOrganizationNotFoundError(f"Organization {organization_id} not found")

        result = await self.db.execute(
            select(Organization.id).where(Organization.id == organization_id)
        )
        if result.scalar_one_or_none() is None:
            raise CourseOrganizationNotFoundError(f"Organization {organization_id} not found")
