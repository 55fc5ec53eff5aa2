# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recent learner activity for an organization dashboard.

The feed merges enrollments, course completions, lesson completions and
quiz attempts from the organization's courses, newest first.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.domains.course.structure import find_lesson
from upskill.infrastructure.database.models import (
    Course,
    Enrollment,
    LessonProgress,
    QuizAttempt,
    User,
)
from upskill.models.activity import ActivityFeedResponse, ActivityItem, ActivityType
from upskill.models.common import LessonStatus

logger = logging.getLogger(__name__)


class ActivityService:
    """Service building an organization's activity feed."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def recent(self, organization_id: str, limit: int = 20) -> ActivityFeedResponse:
        """Latest learner actions in the organization.

        Each source contributes at most `limit` rows before merging, so
        the merged feed holds the newest `limit` entries overall.

        Args:
            organization_id: Organization ID, already validated.
            limit: Maximum number of entries.

        Returns:
            Activity entries sorted by timestamp, newest first.
        """
        items: list[ActivityItem] = []
        items.extend(await self._enrollments(organization_id, limit))
        items.extend(await self._lesson_completions(organization_id, limit))
        items.extend(await self._quiz_attempts(organization_id, limit))

        items.sort(key=lambda item: item.timestamp, reverse=True)
        items = items[:limit]

        logger.debug("Activity feed: org=%s, entries=%d", organization_id, len(items))
        return ActivityFeedResponse(items=items, total=len(items))

    async def _enrollments(self, organization_id: str, limit: int) -> list[ActivityItem]:
        result = await self.db.execute(
            select(Enrollment, User, Course)
            .join(User, User.id == Enrollment.user_id)
            .join(Course, Course.id == Enrollment.course_id)
            .where(Enrollment.organization_id == organization_id)
            .order_by(Enrollment.enrolled_at.desc())
            .limit(limit)
        )

        items = []
        for enrollment, user, course in result.all():
            if enrollment.completed_at is not None:
                items.append(
                    self._item(ActivityType.COURSE_COMPLETED, user, course, enrollment.completed_at)
                )
            items.append(self._item(ActivityType.ENROLLMENT, user, course, enrollment.enrolled_at))
        return items

    async def _lesson_completions(self, organization_id: str, limit: int) -> list[ActivityItem]:
        result = await self.db.execute(
            select(LessonProgress, User, Course)
            .join(User, User.id == LessonProgress.user_id)
            .join(Course, Course.id == LessonProgress.course_id)
            .where(
                Course.organization_id == organization_id,
                LessonProgress.status == LessonStatus.COMPLETED.value,
                LessonProgress.completed_at.is_not(None),
            )
            .order_by(LessonProgress.completed_at.desc())
            .limit(limit)
        )

        return [
            self._item(
                ActivityType.LESSON_COMPLETED,
                user,
                course,
                progress.completed_at,
                lesson_id=progress.lesson_id,
                default_title="Lesson",
            )
            for progress, user, course in result.all()
        ]

    async def _quiz_attempts(self, organization_id: str, limit: int) -> list[ActivityItem]:
        result = await self.db.execute(
            select(QuizAttempt, User, Course)
            .join(User, User.id == QuizAttempt.user_id)
            .join(Course, Course.id == QuizAttempt.course_id)
            .where(Course.organization_id == organization_id)
            .order_by(QuizAttempt.completed_at.desc())
            .limit(limit)
        )

        items = []
        for attempt, user, course in result.all():
            item = self._item(
                ActivityType.QUIZ_ATTEMPTED,
                user,
                course,
                attempt.completed_at,
                lesson_id=attempt.lesson_id,
                default_title="Quiz",
            )
            item.score = attempt.score
            item.passed = attempt.passed
            items.append(item)
        return items

    def _item(
        self,
        activity_type: ActivityType,
        user: User,
        course: Course,
        timestamp: datetime,
        lesson_id: str | None = None,
        default_title: str | None = None,
    ) -> ActivityItem:
        lesson_title = None
        if lesson_id is not None:
            lesson = find_lesson(course.modules, lesson_id)
            lesson_title = (lesson or {}).get("title") or default_title

        return ActivityItem(
            type=activity_type,
            user_id=user.id,
            user_name=user.name or user.email,
            user_email=user.email,
            course_id=course.id,
            course_title=course.title,
            lesson_id=lesson_id,
            lesson_title=lesson_title,
            timestamp=timestamp,
        )
