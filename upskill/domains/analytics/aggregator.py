# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization analytics aggregation.

Rolls the event log of an organization up into one OrganizationAnalytics
row per (organization, period, window), plus a CourseAnalytics row per
course and a UserAnalytics row per learner for the same window.
Re-running an aggregation for the same window overwrites the stored rows.

Usage:
    from upskill.domains.analytics import AnalyticsAggregator

    aggregator = AnalyticsAggregator(db=db_session)
    rollup = await aggregator.aggregate(
        AggregateRequest(organization_id=org_id, period="weekly"),
    )
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, NamedTuple, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.core.config import get_settings
from upskill.core.config.settings import AnalyticsSettings
from upskill.domains.analytics.metrics import (
    average_completion_days,
    compute_course_analytics,
    compute_dropoff,
    compute_engagement_metrics,
    compute_heatmap,
    compute_user_analytics,
    knowledge_gaps,
    last_accessed_courses,
    resolve_window,
)
from upskill.infrastructure.database.models import (
    AnalyticsEvent,
    Course,
    CourseAnalytics,
    Enrollment,
    Organization,
    OrganizationAnalytics,
    User,
    UserAnalytics,
    is_valid_id,
)
from upskill.models.analytics import (
    AggregateRequest,
    AggregationResponse,
    AggregationStatusResponse,
    EngagementMetrics,
    EngagementResponse,
    RollupStatus,
)
from upskill.models.common import AnalyticsPeriod
from upskill.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class AnalyticsServiceError(Exception):
    """Base exception for analytics errors."""

    pass


class OrganizationNotFoundError(AnalyticsServiceError):
    """Raised when the organization does not exist."""

    pass


class AnalyticsAggregator:
    """Builds and reads organization rollups.

    Attributes:
        db: Async database session.
        settings: Engagement thresholds for learner rollups.
    """

    def __init__(self, db: AsyncSession, settings: AnalyticsSettings | None = None) -> None:
        """Initialize the aggregator.

        Args:
            db: Async database session.
            settings: Analytics settings; read from the environment if omitted.
        """
        self.db = db
        self.settings = settings or get_settings().analytics

    async def aggregate(self, request: AggregateRequest) -> AggregationResponse:
        """Aggregate one window of events into stored rollups.

        Writes one OrganizationAnalytics row for the window, one
        CourseAnalytics row per course of the organization and one
        UserAnalytics row per learner with an enrollment or an event in
        the organization.

        Args:
            request: Organization, period and optional dates.

        Returns:
            The stored organization rollup.

        Raises:
            OrganizationNotFoundError: If the organization does not exist.
        """
        organization_id = request.organization_id
        await self._ensure_organization(organization_id)

        now = utc_now()
        start, end = resolve_window(
            request.period,
            request.start_date or now,
            request.end_date or now,
        )
        window = _Window(organization_id, request.period, start, end)

        events = await self._load_events(organization_id, start, end)
        enrollments = await self._load_enrollments(organization_id)
        metrics = compute_engagement_metrics(
            events, [e.progress_percentage or 0 for e in enrollments]
        )

        course_items = await self._upsert_course_rollups(window, events, enrollments)
        user_items = await self._upsert_user_rollups(window, events, enrollments)
        rollup = await self._upsert_rollup(window, metrics, course_items, user_items)

        logger.info(
            "Aggregated analytics: org=%s, period=%s, window=%s..%s, events=%d, courses=%d, users=%d",
            organization_id,
            request.period.value,
            start.isoformat(),
            end.isoformat(),
            len(events),
            len(course_items),
            len(user_items),
        )

        return AggregationResponse(
            organization_id=rollup.organization_id,
            period=AnalyticsPeriod(rollup.period),
            start_date=rollup.start_date,
            end_date=rollup.end_date,
            metrics=metrics,
            courses_aggregated=len(course_items),
            users_aggregated=len(user_items),
        )

    async def get_status(self, organization_id: str) -> AggregationStatusResponse:
        """Latest stored window of each rollup kind for an organization."""
        statuses = []
        for model in (OrganizationAnalytics, CourseAnalytics, UserAnalytics):
            result = await self.db.execute(
                select(model)
                .where(model.organization_id == organization_id)
                .order_by(model.end_date.desc())
                .limit(1)
            )
            latest = result.scalar_one_or_none()
            statuses.append(
                RollupStatus(
                    last_aggregated=latest.end_date if latest else None,
                    period=latest.period if latest else None,
                )
            )

        return AggregationStatusResponse(
            organization_analytics=statuses[0],
            course_analytics=statuses[1],
            user_analytics=statuses[2],
        )

    async def get_engagement(
        self,
        organization_id: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> EngagementResponse:
        """Live engagement metrics, not persisted.

        Args:
            organization_id: Organization ID.
            start_date: Earliest event time; unbounded when omitted.
            end_date: Latest event time; unbounded when omitted.

        Returns:
            Engagement metrics for the range.

        Raises:
            OrganizationNotFoundError: If the organization does not exist.
        """
        await self._ensure_organization(organization_id)

        events = await self._load_events(organization_id, start_date, end_date)
        enrollments = await self._load_enrollments(organization_id)

        return EngagementResponse(
            organization_id=organization_id,
            engagement=compute_engagement_metrics(
                events, [e.progress_percentage or 0 for e in enrollments]
            ),
        )

    async def _ensure_organization(self, organization_id: str) -> None:
        result = await self.db.execute(
            select(Organization.id).where(Organization.id == organization_id)
        )
        if result.scalar_one_or_none() is None:
            raise OrganizationNotFoundError(f"Organization {organization_id} not found")

    async def _load_events(
        self,
        organization_id: str,
        start: datetime | None,
        end: datetime | None,
    ) -> Sequence[AnalyticsEvent]:
        conditions = [AnalyticsEvent.organization_id == organization_id]
        if start is not None:
            conditions.append(AnalyticsEvent.timestamp >= ensure_utc(start))
        if end is not None:
            conditions.append(AnalyticsEvent.timestamp <= ensure_utc(end))

        result = await self.db.execute(select(AnalyticsEvent).where(*conditions))
        return result.scalars().all()

    async def _load_enrollments(self, organization_id: str) -> Sequence[Enrollment]:
        result = await self.db.execute(
            select(Enrollment).where(Enrollment.organization_id == organization_id)
        )
        return result.scalars().all()

    async def _upsert_course_rollups(
        self,
        window: "_Window",
        events: Sequence[AnalyticsEvent],
        enrollments: Sequence[Enrollment],
    ) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(Course.id).where(Course.organization_id == window.organization_id)
        )
        course_ids = list(result.scalars().all())
        if not course_ids:
            return []

        existing = await self._existing_rollups(CourseAnalytics, "course_id", window)
        by_course: dict[str, list[AnalyticsEvent]] = defaultdict(list)
        for event in events:
            course_id = (event.properties or {}).get("course_id")
            if course_id:
                by_course[str(course_id)].append(event)

        summaries = []
        for course_id in course_ids:
            course_events = by_course.get(course_id, [])
            item = compute_course_analytics(course_id, window.period.value, course_events)
            completed_in_window = [
                e
                for e in enrollments
                if e.course_id == course_id
                and e.completed_at is not None
                and window.start <= ensure_utc(e.completed_at) <= window.end
            ]

            row = existing.get(course_id)
            if row is None:
                row = CourseAnalytics(course_id=course_id, **window.keys())
                self.db.add(row)

            row.enrollment_count = item.enrollment_count
            row.completion_count = item.completion_count
            row.completion_rate = item.completion_rate
            row.avg_time_spent = item.avg_time_spent
            row.avg_score = item.avg_score
            row.avg_attempts_to_pass = item.avg_attempts_to_pass
            row.avg_completion_time = average_completion_days(completed_in_window)
            row.dropoff_points = [
                point.model_dump()
                for point in compute_dropoff(course_id, course_events).dropoff_points
            ]

            summaries.append(
                {
                    "course_id": course_id,
                    "enrollment_count": item.enrollment_count,
                    "completion_count": item.completion_count,
                    "completion_rate": item.completion_rate,
                }
            )
        return summaries

    async def _upsert_user_rollups(
        self,
        window: "_Window",
        events: Sequence[AnalyticsEvent],
        enrollments: Sequence[Enrollment],
    ) -> list[dict[str, Any]]:
        enrolled: dict[str, int] = defaultdict(int)
        for enrollment in enrollments:
            enrolled[enrollment.user_id] += 1

        by_user: dict[str, list[AnalyticsEvent]] = defaultdict(list)
        for event in events:
            by_user[event.user_id].append(event)

        # Event user ids are client supplied; only registered users get rollups.
        unknown = {uid for uid in by_user if uid not in enrolled and is_valid_id(uid)}
        user_ids = set(enrolled)
        if unknown:
            result = await self.db.execute(select(User.id).where(User.id.in_(unknown)))
            user_ids.update(result.scalars().all())
        if not user_ids:
            return []

        existing = await self._existing_rollups(UserAnalytics, "user_id", window)

        summaries = []
        for user_id in sorted(user_ids):
            user_events = by_user.get(user_id, [])
            item = compute_user_analytics(
                user_id,
                window.period.value,
                user_events,
                courses_enrolled=enrolled.get(user_id, 0),
                medium_threshold=self.settings.engagement_medium_minutes,
                high_threshold=self.settings.engagement_high_minutes,
            )

            row = existing.get(user_id)
            if row is None:
                row = UserAnalytics(user_id=user_id, **window.keys())
                self.db.add(row)

            row.total_time_spent = item.total_time_spent
            row.courses_enrolled = item.courses_enrolled
            row.courses_completed = item.courses_completed
            row.avg_quiz_score = item.avg_quiz_score
            row.engagement_level = item.engagement_level.value
            row.knowledge_gaps = knowledge_gaps(user_events)
            row.activity_heatmap = [
                day.model_dump()
                for day in compute_heatmap(user_events, window.start, window.end).heatmap
            ]
            row.last_accessed_courses = last_accessed_courses(user_events)

            summaries.append(
                {
                    "user_id": user_id,
                    "total_time_spent": item.total_time_spent,
                    "courses_completed": item.courses_completed,
                    "engagement_level": item.engagement_level.value,
                }
            )
        return summaries

    async def _existing_rollups(self, model: Any, key: str, window: "_Window") -> dict[str, Any]:
        result = await self.db.execute(
            select(model).where(
                model.organization_id == window.organization_id,
                model.period == window.period.value,
                model.start_date == window.start,
                model.end_date == window.end,
            )
        )
        return {getattr(row, key): row for row in result.scalars().all()}

    async def _upsert_rollup(
        self,
        window: "_Window",
        metrics: EngagementMetrics,
        course_items: list[dict[str, Any]],
        user_items: list[dict[str, Any]],
    ) -> OrganizationAnalytics:
        result = await self.db.execute(
            select(OrganizationAnalytics).where(
                OrganizationAnalytics.organization_id == window.organization_id,
                OrganizationAnalytics.period == window.period.value,
                OrganizationAnalytics.start_date == window.start,
                OrganizationAnalytics.end_date == window.end,
            )
        )
        rollup = result.scalar_one_or_none()

        if rollup is None:
            rollup = OrganizationAnalytics(**window.keys())
            self.db.add(rollup)

        rollup.total_time_spent = metrics.total_time_spent
        rollup.avg_time_spent = metrics.avg_time_spent
        rollup.active_users = metrics.active_users
        rollup.total_engagements = metrics.total_engagements
        rollup.avg_learning_progress = metrics.avg_learning_progress
        rollup.avg_quiz_score = metrics.avg_quiz_score
        rollup.courses_completed = metrics.courses_completed
        rollup.course_aggregations = course_items
        rollup.user_aggregations = user_items

        await self.db.flush()
        return rollup


class _Window(NamedTuple):
    organization_id: str
    period: AnalyticsPeriod
    start: datetime
    end: datetime

    def keys(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "period": self.period.value,
            "start_date": self.start,
            "end_date": self.end,
        }
