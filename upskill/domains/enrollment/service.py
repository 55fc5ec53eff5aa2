# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for managing course enrollments.

This module provides the EnrollmentService class for:
- Enrolling users in courses
- Listing and reading enrollments with course summaries
- Manual status changes
- Re-deriving progress from completed lesson progress
- Bulk enrollment used by member and department management

Progress is never written from request data. sync_progress() derives it
from the user's completed LessonProgress rows inside the caller's
transaction, so the stored percentage always matches those rows.
"""

import logging
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.domains.analytics.events import EventTracker
from upskill.domains.course.structure import count_lessons
from upskill.domains.enrollment.progress import (
    ProgressSnapshot,
    apply_progress,
    compute_progress,
)
from upskill.infrastructure.database.models import (
    Course,
    Enrollment,
    LessonProgress,
    QuizAttempt,
    User,
    is_valid_id,
)
from upskill.models.common import EnrollmentStatus, EventType, LessonStatus
from upskill.models.enrollment import (
    EnrollmentCourseSummary,
    EnrollmentCreateRequest,
    EnrollmentDetailResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentUpdateRequest,
    ProgressChanges,
    RecalculateResponse,
)
from upskill.models.progress import LessonProgressResponse
from upskill.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EnrollmentServiceError(Exception):
    """Base exception for enrollment service errors."""

    pass


class EnrollmentNotFoundError(EnrollmentServiceError):
    """Raised when enrollment is not found."""

    pass


class CourseNotFoundError(EnrollmentServiceError):
    """Raised when course is not found."""

    pass


class UserNotFoundError(EnrollmentServiceError):
    """Raised when user is not found."""

    pass


class AlreadyEnrolledError(EnrollmentServiceError):
    """Raised when user is already enrolled in the course."""

    pass


class ProgressSync:
    """Outcome of re-deriving one enrollment's progress.

    Attributes:
        enrollment: Updated enrollment row.
        course: Course the enrollment belongs to.
        snapshot: Derived progress.
        newly_completed: True if this sync completed the enrollment.
    """

    def __init__(
        self,
        enrollment: Enrollment,
        course: Course,
        snapshot: ProgressSnapshot,
        newly_completed: bool,
    ) -> None:
        self.enrollment = enrollment
        self.course = course
        self.snapshot = snapshot
        self.newly_completed = newly_completed


class EnrollmentService:
    """Service for managing course enrollments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def enroll(self, data: EnrollmentCreateRequest) -> EnrollmentResponse:
        """Enroll a user in a course.

        Args:
            data: User, course and organization.

        Returns:
            The new enrollment, not started at 0%.

        Raises:
            UserNotFoundError: If the user does not exist.
            CourseNotFoundError: If the course does not exist.
            AlreadyEnrolledError: If the user is already enrolled.
        """
        await self._get_user(data.user_id)
        course = await self._get_course(data.course_id)

        existing = await self._find_enrollment(data.user_id, data.course_id)
        if existing:
            raise AlreadyEnrolledError("Already enrolled in this course")

        enrollment = Enrollment(
            user_id=data.user_id,
            course_id=data.course_id,
            organization_id=data.organization_id,
            status=EnrollmentStatus.NOT_STARTED.value,
            progress_percentage=0,
            completed_lesson_ids=[],
            enrolled_at=utc_now(),
        )
        self.db.add(enrollment)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyEnrolledError("Already enrolled in this course") from e

        await EventTracker(self.db).track_safely(
            organization_id=data.organization_id,
            user_id=data.user_id,
            event_type=EventType.COURSE_ENROLLED.value,
            event_name="Course Enrolled",
            properties={
                "course_id": course.id,
                "course_title": course.title,
                "category": course.category,
            },
        )

        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info(
            "Enrolled user: user=%s, course=%s, org=%s",
            data.user_id,
            data.course_id,
            data.organization_id,
        )
        return self._to_response(enrollment, course)

    async def enroll_many(
        self,
        user_id: str,
        organization_id: str,
        course_ids: Iterable[str],
    ) -> int:
        """Enroll a user in several courses, skipping existing enrollments.

        Unknown course ids and courses of other organizations are skipped.
        Changes are flushed, not committed.

        Args:
            user_id: User to enroll.
            organization_id: Organization the courses belong to.
            course_ids: Courses to enroll in.

        Returns:
            Number of enrollments created.
        """
        wanted = [course_id for course_id in dict.fromkeys(course_ids) if is_valid_id(course_id)]
        if not wanted:
            return 0

        result = await self.db.execute(
            select(Course.id).where(
                Course.id.in_(wanted),
                Course.organization_id == organization_id,
            )
        )
        known = set(result.scalars().all())

        result = await self.db.execute(
            select(Enrollment.course_id).where(
                Enrollment.user_id == user_id,
                Enrollment.course_id.in_(wanted),
            )
        )
        enrolled = set(result.scalars().all())

        now = utc_now()
        created = 0
        for course_id in wanted:
            if course_id not in known or course_id in enrolled:
                continue
            self.db.add(
                Enrollment(
                    user_id=user_id,
                    course_id=course_id,
                    organization_id=organization_id,
                    status=EnrollmentStatus.NOT_STARTED.value,
                    progress_percentage=0,
                    completed_lesson_ids=[],
                    enrolled_at=now,
                )
            )
            created += 1

        if created:
            await self.db.flush()
            logger.info("Auto-enrolled user %s in %d courses", user_id, created)
        return created

    async def list_enrollments(
        self,
        user_id: str | None = None,
        organization_id: str | None = None,
    ) -> EnrollmentListResponse:
        """List enrollments, newest first.

        Enrollments whose course no longer exists are returned with
        course set to None.

        Args:
            user_id: Filter by user.
            organization_id: Filter by organization.

        Returns:
            Enrollments with course summaries.
        """
        for value in (user_id, organization_id):
            if value is not None and not is_valid_id(value):
                return EnrollmentListResponse(items=[], total=0)

        query = select(Enrollment)
        if user_id:
            query = query.where(Enrollment.user_id == user_id)
        if organization_id:
            query = query.where(Enrollment.organization_id == organization_id)
        query = query.order_by(Enrollment.enrolled_at.desc())

        result = await self.db.execute(query)
        enrollments = result.scalars().all()

        courses = await self._load_courses({e.course_id for e in enrollments})
        items = [self._to_response(e, courses.get(e.course_id)) for e in enrollments]
        return EnrollmentListResponse(items=items, total=len(items))

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentDetailResponse:
        """Get an enrollment with the user's lesson progress for the course.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        courses = await self._load_courses({enrollment.course_id})

        result = await self.db.execute(
            select(LessonProgress).where(
                LessonProgress.user_id == enrollment.user_id,
                LessonProgress.course_id == enrollment.course_id,
            )
        )
        progress = result.scalars().all()

        base = self._to_response(enrollment, courses.get(enrollment.course_id))
        return EnrollmentDetailResponse(
            **base.model_dump(),
            lesson_progress=[LessonProgressResponse.model_validate(p) for p in progress],
        )

    async def update(
        self,
        enrollment_id: str,
        data: EnrollmentUpdateRequest,
    ) -> EnrollmentResponse:
        """Change enrollment status or current lesson.

        in-progress sets started_at if unset. completed sets completed_at
        and 100%.

        Args:
            enrollment_id: Enrollment ID.
            data: New status and/or current lesson.

        Returns:
            Updated enrollment.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        now = utc_now()

        if data.status is not None:
            enrollment.status = data.status.value
            if data.status == EnrollmentStatus.IN_PROGRESS and enrollment.started_at is None:
                enrollment.started_at = now
            elif data.status == EnrollmentStatus.COMPLETED:
                enrollment.completed_at = enrollment.completed_at or now
                enrollment.started_at = enrollment.started_at or now
                enrollment.progress_percentage = 100

        if data.current_lesson_id is not None:
            enrollment.current_lesson_id = data.current_lesson_id

        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info(
            "Updated enrollment: id=%s, status=%s",
            enrollment_id,
            enrollment.status,
        )
        courses = await self._load_courses({enrollment.course_id})
        return self._to_response(enrollment, courses.get(enrollment.course_id))

    async def recalculate(self, enrollment_id: str) -> RecalculateResponse:
        """Re-derive an enrollment's progress from lesson progress.

        Args:
            enrollment_id: Enrollment ID.

        Returns:
            Updated enrollment and the before/after figures.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
            CourseNotFoundError: If the course no longer exists.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        completed_before = len(enrollment.completed_lesson_ids or [])
        percentage_before = enrollment.progress_percentage

        sync = await self.sync_progress(enrollment.user_id, enrollment.course_id, enrollment)

        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info(
            "Recalculated enrollment: id=%s, %d%% -> %d%%",
            enrollment_id,
            percentage_before,
            sync.snapshot.percentage,
        )
        return RecalculateResponse(
            enrollment=self._to_response(enrollment, sync.course),
            changes=ProgressChanges(
                completed_lessons_before=completed_before,
                completed_lessons_after=sync.snapshot.completed_count,
                percentage_before=percentage_before,
                percentage_after=sync.snapshot.percentage,
                total_lessons=sync.snapshot.total_lessons,
            ),
        )

    async def delete(self, enrollment_id: str) -> None:
        """Delete an enrollment with the user's progress and quiz attempts for the course.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
        """
        enrollment = await self._get_enrollment(enrollment_id)

        await self.db.execute(
            delete(LessonProgress).where(
                LessonProgress.user_id == enrollment.user_id,
                LessonProgress.course_id == enrollment.course_id,
            )
        )
        await self.db.execute(
            delete(QuizAttempt).where(
                QuizAttempt.user_id == enrollment.user_id,
                QuizAttempt.course_id == enrollment.course_id,
            )
        )
        await self.db.delete(enrollment)
        await self.db.commit()

        logger.info("Deleted enrollment: id=%s", enrollment_id)

    async def sync_progress(
        self,
        user_id: str,
        course_id: str,
        enrollment: Enrollment | None = None,
    ) -> ProgressSync | None:
        """Derive enrollment progress from completed lesson progress.

        Runs inside the caller's transaction: changes are flushed, and the
        caller commits them together with its own writes.

        Args:
            user_id: User ID.
            course_id: Course ID.
            enrollment: Enrollment row if already loaded.

        Returns:
            The sync outcome, or None if the user is not enrolled.

        Raises:
            CourseNotFoundError: If the course does not exist.
        """
        if enrollment is None:
            enrollment = await self._find_enrollment(user_id, course_id)
            if enrollment is None:
                return None

        course = await self._get_course(course_id)

        result = await self.db.execute(
            select(LessonProgress.lesson_id).where(
                LessonProgress.user_id == user_id,
                LessonProgress.course_id == course_id,
                LessonProgress.status == LessonStatus.COMPLETED.value,
            )
        )
        completed_ids = result.scalars().all()

        snapshot = compute_progress(course.modules, completed_ids)
        newly_completed = apply_progress(enrollment, snapshot, utc_now())
        await self.db.flush()

        return ProgressSync(enrollment, course, snapshot, newly_completed)

    async def sync_course(self, course: Course) -> int:
        """Re-derive progress for every enrollment in a course.

        Used after the course's lesson structure changes. Runs inside the
        caller's transaction.

        Returns:
            Number of enrollments whose progress changed.
        """
        result = await self.db.execute(select(Enrollment).where(Enrollment.course_id == course.id))
        enrollments = result.scalars().all()
        if not enrollments:
            return 0

        result = await self.db.execute(
            select(LessonProgress.user_id, LessonProgress.lesson_id).where(
                LessonProgress.course_id == course.id,
                LessonProgress.status == LessonStatus.COMPLETED.value,
            )
        )
        completed: dict[str, list[str]] = {}
        for user_id, lesson_id in result.all():
            completed.setdefault(user_id, []).append(lesson_id)

        now = utc_now()
        changed = 0
        for enrollment in enrollments:
            before = (enrollment.progress_percentage, enrollment.status)
            snapshot = compute_progress(course.modules, completed.get(enrollment.user_id, []))
            apply_progress(enrollment, snapshot, now)
            if (enrollment.progress_percentage, enrollment.status) != before:
                changed += 1

        await self.db.flush()
        logger.info(
            "Synced course enrollments: course=%s, enrollments=%d, changed=%d",
            course.id,
            len(enrollments),
            changed,
        )
        return changed

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_enrollment(self, enrollment_id: str) -> Enrollment:
        if not is_valid_id(enrollment_id):
            raise EnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")

        result = await self.db.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")
        return enrollment

    async def _find_enrollment(self, user_id: str, course_id: str) -> Enrollment | None:
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
            )
        )
        return result.scalar_one_or_none()

    async def _get_user(self, user_id: str) -> User:
        if not is_valid_id(user_id):
            raise UserNotFoundError(f"User {user_id} not found")

        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _get_course(self, course_id: str) -> Course:
        if not is_valid_id(course_id):
            raise CourseNotFoundError(f"Course {course_id} not found")

        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()
        if not course:
            raise CourseNotFoundError(f"Course {course_id} not found")
        return course

    async def _load_courses(self, course_ids: set[str]) -> dict[str, Course]:
        if not course_ids:
            return {}
        result = await self.db.execute(select(Course).where(Course.id.in_(course_ids)))
        return {course.id: course for course in result.scalars().all()}

    def _to_response(self, enrollment: Enrollment, course: Course | None) -> EnrollmentResponse:
        summary = None
        if course is not None:
            summary = EnrollmentCourseSummary(
                id=course.id,
                title=course.title,
                description=course.description,
                category=course.category,
                thumbnail_url=course.thumbnail_url,
                estimated_duration=course.estimated_duration or 0,
                total_lessons=count_lessons(course.modules),
            )

        return EnrollmentResponse(
            id=enrollment.id,
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            organization_id=enrollment.organization_id,
            status=EnrollmentStatus(enrollment.status),
            progress_percentage=enrollment.progress_percentage or 0,
            completed_lesson_ids=list(enrollment.completed_lesson_ids or []),
            current_lesson_id=enrollment.current_lesson_id,
            enrolled_at=enrollment.enrolled_at,
            started_at=enrollment.started_at,
            completed_at=enrollment.completed_at,
            course=summary,
        )
