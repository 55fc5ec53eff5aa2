# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lesson progress and quiz attempt service.

This module provides the ProgressService class for:
- Recording lesson progress (watch time, scroll depth, time spent)
- Recording quiz attempts
- Completing lessons and re-deriving enrollment progress

A lesson completion and the enrollment update it causes are written in
the same transaction: the LessonProgress row is flushed, the enrollment
is re-derived from the completed rows, and both are committed together.
"""

import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.domains.analytics.events import EventTracker
from upskill.domains.enrollment.service import EnrollmentService, ProgressSync
from upskill.infrastructure.database.models import (
    Course,
    LessonProgress,
    QuizAttempt,
    is_valid_id,
)
from upskill.models.common import EventType, LessonStatus
from upskill.models.progress import (
    LessonProgressListResponse,
    LessonProgressRequest,
    LessonProgressResponse,
    QuizAttemptListResponse,
    QuizAttemptRequest,
    QuizAttemptResponse,
)
from upskill.utils.datetime import days_between, utc_now

logger = logging.getLogger(__name__)


class ProgressServiceError(Exception):
    """Base exception for progress service errors."""

    pass


class ProgressCourseNotFoundError(ProgressServiceError):
    """Raised when the course of a progress report does not exist."""

    pass


class ProgressService:
    """Service for lesson progress and quiz attempts.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize progress service.

        Args:
            db: Async database session.
        """
        self.db = db
        self._enrollments = EnrollmentService(db)

    async def record_lesson_progress(self, data: LessonProgressRequest) -> LessonProgressResponse:
        """Create or update a user's progress on a lesson.

        Watch time and scroll depth keep their maximum, time spent
        accumulates and status is overwritten. Completing the lesson, or
        moving a completed lesson back to another status, re-derives the
        enrollment in the same transaction.

        Args:
            data: Progress report.

        Returns:
            Stored lesson progress.

        Raises:
            ProgressCourseNotFoundError: If the course does not exist.
        """
        await self._ensure_course(data.course_id)

        progress, was_completed = await self._upsert_progress(
            user_id=data.user_id,
            lesson_id=data.lesson_id,
            course_id=data.course_id,
            status=data.status,
            watch_time=data.watch_time,
            scroll_depth=data.scroll_depth,
            time_spent=data.time_spent,
        )

        if was_completed or progress.status == LessonStatus.COMPLETED.value:
            await self._complete_lesson(data.user_id, data.course_id)

        await self.db.commit()
        await self.db.refresh(progress)

        logger.info(
            "Recorded lesson progress: user=%s, lesson=%s, status=%s",
            data.user_id,
            data.lesson_id,
            progress.status,
        )
        return LessonProgressResponse.model_validate(progress)

    async def list_lesson_progress(
        self,
        user_id: str,
        lesson_id: str | None = None,
        course_id: str | None = None,
    ) -> LessonProgressListResponse:
        """List a user's lesson progress, optionally for one lesson or course."""
        if not is_valid_id(user_id) or (course_id and not is_valid_id(course_id)):
            return LessonProgressListResponse(progress=[])

        query = select(LessonProgress).where(LessonProgress.user_id == user_id)
        if lesson_id:
            query = query.where(LessonProgress.lesson_id == lesson_id)
        if course_id:
            query = query.where(LessonProgress.course_id == course_id)
        query = query.order_by(LessonProgress.last_accessed_at.desc())

        result = await self.db.execute(query)
        return LessonProgressListResponse(
            progress=[LessonProgressResponse.model_validate(p) for p in result.scalars().all()]
        )

    async def record_quiz_attempt(self, data: QuizAttemptRequest) -> QuizAttemptResponse:
        """Store a quiz attempt.

        The attempt number follows the user's previous attempts on the
        lesson. A passing attempt completes the lesson and re-derives the
        enrollment in the same transaction.

        Args:
            data: Attempt details.

        Returns:
            Stored attempt.

        Raises:
            ProgressCourseNotFoundError: If the course does not exist.
        """
        await self._ensure_course(data.course_id)

        result = await self.db.execute(
            select(func.count())
            .select_from(QuizAttempt)
            .where(
                QuizAttempt.user_id == data.user_id,
                QuizAttempt.lesson_id == data.lesson_id,
            )
        )
        previous = result.scalar() or 0

        now = utc_now()
        attempt = QuizAttempt(
            user_id=data.user_id,
            lesson_id=data.lesson_id,
            course_id=data.course_id,
            organization_id=data.organization_id,
            attempt_number=previous + 1,
            answers=[answer.model_dump() for answer in data.answers],
            score=data.score,
            passed=data.passed,
            time_spent=data.time_spent,
            started_at=now - timedelta(seconds=data.time_spent),
            completed_at=now,
        )
        self.db.add(attempt)
        await self.db.flush()

        if data.passed:
            await self._upsert_progress(
                user_id=data.user_id,
                lesson_id=data.lesson_id,
                course_id=data.course_id,
                status=LessonStatus.COMPLETED,
            )
            await self._complete_lesson(data.user_id, data.course_id)

        await EventTracker(self.db).track_safely(
            organization_id=data.organization_id,
            user_id=data.user_id,
            event_type=EventType.QUIZ_COMPLETED.value,
            event_name="Quiz Completed",
            properties={
                "course_id": data.course_id,
                "lesson_id": data.lesson_id,
                "score": data.score,
                "passed": data.passed,
                "attempt_number": attempt.attempt_number,
            },
        )

        await self.db.commit()
        await self.db.refresh(attempt)

        logger.info(
            "Recorded quiz attempt: user=%s, lesson=%s, attempt=%d, score=%d, passed=%s",
            data.user_id,
            data.lesson_id,
            attempt.attempt_number,
            data.score,
            data.passed,
        )
        return QuizAttemptResponse.model_validate(attempt)

    async def list_quiz_attempts(
        self,
        user_id: str,
        lesson_id: str | None = None,
    ) -> QuizAttemptListResponse:
        """List a user's quiz attempts, newest first."""
        if not is_valid_id(user_id):
            return QuizAttemptListResponse(attempts=[])

        query = select(QuizAttempt).where(QuizAttempt.user_id == user_id)
        if lesson_id:
            query = query.where(QuizAttempt.lesson_id == lesson_id)
        query = query.order_by(QuizAttempt.completed_at.desc())

        result = await self.db.execute(query)
        return QuizAttemptListResponse(
            attempts=[QuizAttemptResponse.model_validate(a) for a in result.scalars().all()]
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _upsert_progress(
        self,
        user_id: str,
        lesson_id: str,
        course_id: str,
        status: LessonStatus | None = None,
        watch_time: int | None = None,
        scroll_depth: int | None = None,
        time_spent: int | None = None,
    ) -> tuple[LessonProgress, bool]:
        """Create or update a LessonProgress row.

        Returns:
            The row and whether it was completed before this write.
        """
        result = await self.db.execute(
            select(LessonProgress).where(
                LessonProgress.user_id == user_id,
                LessonProgress.lesson_id == lesson_id,
            )
        )
        progress = result.scalar_one_or_none()
        was_completed = progress is not None and progress.status == LessonStatus.COMPLETED.value
        now = utc_now()

        if progress is None:
            progress = LessonProgress(
                user_id=user_id,
                lesson_id=lesson_id,
                course_id=course_id,
                status=(status or LessonStatus.IN_PROGRESS).value,
                watch_time=watch_time or 0,
                scroll_depth=scroll_depth or 0,
                time_spent=time_spent or 0,
                last_accessed_at=now,
            )
            self.db.add(progress)
        else:
            if status is not None:
                progress.status = status.value
            if watch_time is not None:
                progress.watch_time = max(progress.watch_time or 0, watch_time)
            if scroll_depth is not None:
                progress.scroll_depth = max(progress.scroll_depth or 0, scroll_depth)
            if time_spent is not None:
                progress.time_spent = (progress.time_spent or 0) + time_spent
            progress.last_accessed_at = now

        if progress.status == LessonStatus.COMPLETED.value and progress.completed_at is None:
            progress.completed_at = now
        elif progress.status != LessonStatus.COMPLETED.value:
            progress.completed_at = None

        await self.db.flush()
        return progress, was_completed

    async def _complete_lesson(self, user_id: str, course_id: str) -> ProgressSync | None:
        sync = await self._enrollments.sync_progress(user_id, course_id)
        if sync is None:
            logger.warning("No enrollment for user=%s, course=%s", user_id, course_id)
            return None

        if sync.newly_completed:
            await self._track_course_completed(sync)
        return sync

    async def _track_course_completed(self, sync: ProgressSync) -> None:
        enrollment = sync.enrollment
        course = sync.course

        result = await self.db.execute(
            select(func.coalesce(func.sum(LessonProgress.time_spent), 0)).where(
                LessonProgress.user_id == enrollment.user_id,
                LessonProgress.course_id == enrollment.course_id,
            )
        )
        total_seconds = result.scalar() or 0

        await EventTracker(self.db).track_safely(
            organization_id=enrollment.organization_id,
            user_id=enrollment.user_id,
            event_type=EventType.COURSE_COMPLETED.value,
            event_name="Course Completed",
            properties={
                "course_id": course.id,
                "course_title": course.title,
                "course_category": course.category,
                "total_lessons": sync.snapshot.total_lessons,
                "completed_lessons": sync.snapshot.completed_count,
                "total_time_spent": int(total_seconds) // 60,
                "started_at": enrollment.started_at.isoformat() if enrollment.started_at else "",
                "completed_at": (
                    enrollment.completed_at.isoformat() if enrollment.completed_at else ""
                ),
                "duration_days": (
                    days_between(enrollment.started_at, enrollment.completed_at)
                    if enrollment.started_at and enrollment.completed_at
                    else 0
                ),
            },
        )
        logger.info(
            "Course completed: user=%s, course=%s",
            enrollment.user_id,
            course.id,
        )

    async def _ensure_course(self, course_id: str) -> None:
        if not is_valid_id(course_id):
            raise ProgressCourseNotFoundError(f"Course {course_id} not found")

        result = await self.db.execute(select(Course.id).where(Course.id == course_id))
        if result.scalar_one_or_none() is None:
            raise ProgressCourseNotFoundError(f"Course {course_id} not found")
