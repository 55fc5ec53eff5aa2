# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics report service.

Serves course and learner reports. Stored rollups are returned when they
exist for the requested period; otherwise the report is computed in real
time from the event log.

Usage:
    from upskill.domains.analytics import AnalyticsService

    service = AnalyticsService(db=db_session)
    report = await service.get_course_analytics(course_id, period="weekly")
    heatmap = await service.get_user_heatmap(user_id)
"""

import logging
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.core.config import get_settings
from upskill.core.config.settings import AnalyticsSettings
from upskill.domains.analytics.metrics import (
    compute_course_analytics,
    compute_dropoff,
    compute_heatmap,
    compute_user_analytics,
)
from upskill.infrastructure.database.models import (
    AnalyticsEvent,
    CourseAnalytics,
    Enrollment,
    UserAnalytics,
    is_valid_id,
)
from upskill.models.analytics import (
    CourseAnalyticsItem,
    CourseAnalyticsResponse,
    DropoffResponse,
    HeatmapResponse,
    UserAnalyticsItem,
    UserAnalyticsResponse,
)
from upskill.models.common import AnalyticsPeriod, EventType
from upskill.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Course and learner analytics reports.

    Attributes:
        db: Async database session.
        settings: Report limits and engagement thresholds.
    """

    def __init__(self, db: AsyncSession, settings: AnalyticsSettings | None = None) -> None:
        """Initialize the analytics service.

        Args:
            db: Async database session.
            settings: Analytics settings; read from the environment if omitted.
        """
        self.db = db
        self.settings = settings or get_settings().analytics

    async def get_course_analytics(
        self,
        course_id: str,
        period: AnalyticsPeriod = AnalyticsPeriod.WEEKLY,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> CourseAnalyticsResponse:
        """Course performance, stored or real time.

        Args:
            course_id: Course ID.
            period: Rollup period to look up.
            start_date: Earliest window start or event time.
            end_date: Latest window end or event time.

        Returns:
            Up to stored_rollup_limit stored windows, newest first, or one
            real-time item.
        """
        stored = await self._stored_course_rollups(course_id, period, start_date, end_date)
        if stored:
            items = [
                CourseAnalyticsItem(
                    course_id=row.course_id,
                    period=row.period,
                    start_date=row.start_date,
                    end_date=row.end_date,
                    enrollment_count=row.enrollment_count,
                    completion_count=row.completion_count,
                    completion_rate=row.completion_rate,
                    avg_time_spent=row.avg_time_spent,
                    avg_score=row.avg_score,
                    avg_attempts_to_pass=row.avg_attempts_to_pass,
                    avg_completion_time=row.avg_completion_time,
                    dropoff_points=list(row.dropoff_points or []),
                )
                for row in stored
            ]
            return CourseAnalyticsResponse(analytics=items, count=len(items), real_time=False)

        events = await self._course_events(course_id, start_date, end_date)
        item = compute_course_analytics(course_id, period.value, events)

        logger.debug("Computed real-time course analytics: course=%s, events=%d", course_id, len(events))
        return CourseAnalyticsResponse(analytics=[item], count=1, real_time=True)

    async def get_course_dropoff(
        self,
        course_id: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> DropoffResponse:
        """Lessons where learners abandon the course, plus the lesson funnel."""
        events = await self._course_events(
            course_id,
            start_date,
            end_date,
            event_types=(
                EventType.LESSON_ABANDONED,
                EventType.LESSON_STARTED,
                EventType.LESSON_COMPLETED,
            ),
        )
        return compute_dropoff(course_id, events)

    async def get_user_analytics(
        self,
        user_id: str,
        period: AnalyticsPeriod = AnalyticsPeriod.WEEKLY,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> UserAnalyticsResponse:
        """Learner engagement, stored or real time.

        Args:
            user_id: User ID.
            period: Rollup period to look up.
            start_date: Earliest window start or event time.
            end_date: Latest window end or event time.

        Returns:
            Stored windows, newest first, or one real-time item.
        """
        stored = await self._stored_user_rollups(user_id, period, start_date, end_date)
        if stored:
            items = [
                UserAnalyticsItem(
                    user_id=row.user_id,
                    period=row.period,
                    start_date=row.start_date,
                    end_date=row.end_date,
                    total_time_spent=row.total_time_spent,
                    courses_enrolled=row.courses_enrolled,
                    courses_completed=row.courses_completed,
                    avg_quiz_score=row.avg_quiz_score,
                    engagement_level=row.engagement_level,
                    knowledge_gaps=list(row.knowledge_gaps or []),
                    activity_heatmap=list(row.activity_heatmap or []),
                    last_accessed_courses=list(row.last_accessed_courses or []),
                )
                for row in stored
            ]
            return UserAnalyticsResponse(analytics=items, count=len(items), real_time=False)

        events = await self._user_events(user_id, start_date, end_date)
        item = compute_user_analytics(
            user_id,
            period.value,
            events,
            courses_enrolled=await self._count_enrollments(user_id),
            medium_threshold=self.settings.engagement_medium_minutes,
            high_threshold=self.settings.engagement_high_minutes,
        )
        item.real_time = True
        return UserAnalyticsResponse(analytics=[item], count=1, real_time=True)

    async def get_user_heatmap(
        self,
        user_id: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> HeatmapResponse:
        """Daily activity minutes for a learner.

        The window defaults to the last heatmap_days days ending now.
        """
        end = ensure_utc(end_date) if end_date else utc_now()
        start = (
            ensure_utc(start_date)
            if start_date
            else utc_now() - timedelta(days=self.settings.heatmap_days)
        )

        events = await self._user_events(
            user_id,
            start,
            end,
            event_types=(EventType.TIME_SPENT_UPDATED,),
        )
        return compute_heatmap(events, start, end)

    # =========================================================================
    # Queries
    # =========================================================================

    async def _stored_course_rollups(
        self,
        course_id: str,
        period: AnalyticsPeriod,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> Sequence[CourseAnalytics]:
        if not is_valid_id(course_id):
            return []

        conditions = [CourseAnalytics.course_id == course_id, CourseAnalytics.period == period.value]
        if start_date:
            conditions.append(CourseAnalytics.start_date >= ensure_utc(start_date))
        if end_date:
            conditions.append(CourseAnalytics.end_date <= ensure_utc(end_date))

        result = await self.db.execute(
            select(CourseAnalytics)
            .where(*conditions)
            .order_by(CourseAnalytics.start_date.desc())
            .limit(self.settings.stored_rollup_limit)
        )
        return result.scalars().all()

    async def _stored_user_rollups(
        self,
        user_id: str,
        period: AnalyticsPeriod,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> Sequence[UserAnalytics]:
        if not is_valid_id(user_id):
            return []

        conditions = [UserAnalytics.user_id == user_id, UserAnalytics.period == period.value]
        if start_date:
            conditions.append(UserAnalytics.start_date >= ensure_utc(start_date))
        if end_date:
            conditions.append(UserAnalytics.end_date <= ensure_utc(end_date))

        result = await self.db.execute(
            select(UserAnalytics)
            .where(*conditions)
            .order_by(UserAnalytics.start_date.desc())
            .limit(self.settings.stored_rollup_limit)
        )
        return result.scalars().all()

    async def _course_events(
        self,
        course_id: str,
        start_date: datetime | None,
        end_date: datetime | None,
        event_types: tuple[EventType, ...] = (),
    ) -> Sequence[AnalyticsEvent]:
        conditions = [AnalyticsEvent.properties["course_id"].as_string() == course_id]
        return await self._events(conditions, start_date, end_date, event_types)

    async def _user_events(
        self,
        user_id: str,
        start_date: datetime | None,
        end_date: datetime | None,
        event_types: tuple[EventType, ...] = (),
    ) -> Sequence[AnalyticsEvent]:
        conditions = [AnalyticsEvent.user_id == user_id]
        return await self._events(conditions, start_date, end_date, event_types)

    async def _events(
        self,
        conditions: list,
        start_date: datetime | None,
        end_date: datetime | None,
        event_types: tuple[EventType, ...],
    ) -> Sequence[AnalyticsEvent]:
        if event_types:
            conditions.append(AnalyticsEvent.event_type.in_([t.value for t in event_types]))
        if start_date:
            conditions.append(AnalyticsEvent.timestamp >= ensure_utc(start_date))
        if end_date:
            conditions.append(AnalyticsEvent.timestamp <= ensure_utc(end_date))

        result = await self.db.execute(
            select(AnalyticsEvent).where(*conditions).order_by(AnalyticsEvent.timestamp)
        )
        return result.scalars().all()

    async def _count_enrollments(self, user_id: str) -> int:
        if not is_valid_id(user_id):
            return 0
        result = await self.db.execute(
            select(func.count()).select_from(Enrollment).where(Enrollment.user_id == user_id)
        )
        return result.scalar() or 0
