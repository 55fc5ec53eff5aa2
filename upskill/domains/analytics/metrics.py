# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Metric calculations over loaded analytics events.

Every function here is pure: services load the event rows for a window
and hand them over, so the arithmetic can be tested without a database.
Events are any objects with user_id, event_type, properties and
timestamp attributes.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Iterable, Protocol, Sequence

from upskill.models.analytics import (
    CourseAnalyticsItem,
    DropoffLesson,
    DropoffResponse,
    DropoffSummary,
    EngagementMetrics,
    FunnelStep,
    HeatmapDay,
    HeatmapResponse,
    HeatmapStatistics,
    UserAnalyticsItem,
)
from upskill.models.common import AnalyticsPeriod, EngagementLevel, EventType
from upskill.utils.datetime import days_between, end_of_day, format_day, format_iso, start_of_day
from upskill.utils.numbers import mean, round_half_up, round_int


class EventLike(Protocol):
    user_id: str
    event_type: str
    properties: dict[str, Any]
    timestamp: datetime


def _number(properties: dict[str, Any] | None, key: str) -> float:
    """Read a numeric event property, treating missing or bad values as 0."""
    value = (properties or {}).get(key)
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _of_type(events: Iterable[EventLike], event_type: EventType) -> list[EventLike]:
    return [event for event in events if event.event_type == event_type.value]


def time_per_user(events: Iterable[EventLike]) -> dict[str, float]:
    """Sum time_spent_updated minutes per user."""
    totals: dict[str, float] = defaultdict(float)
    for event in _of_type(events, EventType.TIME_SPENT_UPDATED):
        totals[event.user_id] += _number(event.properties, "time_spent")
    return dict(totals)


def average_property(events: Iterable[EventLike], event_type: EventType, key: str) -> float:
    return mean(_number(event.properties, key) for event in _of_type(events, event_type))


# ============================================================================
# Rollup windows
# ============================================================================


def resolve_window(
    period: AnalyticsPeriod,
    start: datetime,
    end: datetime,
) -> tuple[datetime, datetime]:
    """Expand dates into a rollup window.

    The window runs from 00:00:00.000 on the start day to 23:59:59.999 on
    the end day. Weekly windows widen to Sunday through Saturday and
    monthly windows to the first through the last day of the month.

    Args:
        period: Rollup period.
        start: Requested start date.
        end: Requested end date.

    Returns:
        (window_start, window_end) in UTC.
    """
    window_start = start_of_day(start)
    window_end = end_of_day(end)

    if period == AnalyticsPeriod.WEEKLY:
        # weekday() is Monday=0; shift so Sunday=0
        start_offset = (window_start.weekday() + 1) % 7
        end_offset = (window_end.weekday() + 1) % 7
        window_start = window_start - timedelta(days=start_offset)
        window_end = window_end + timedelta(days=6 - end_offset)
    elif period == AnalyticsPeriod.MONTHLY:
        window_start = window_start.replace(day=1)
        next_month = (window_end.replace(day=28) + timedelta(days=4)).replace(day=1)
        window_end = end_of_day(next_month - timedelta(days=1))

    return window_start, window_end


# ============================================================================
# Organization engagement
# ============================================================================


def compute_engagement_metrics(
    events: Sequence[EventLike],
    progress_percentages: Iterable[float] = (),
) -> EngagementMetrics:
    """Organization engagement over a window of events.

    A window without events yields zero for every metric, including
    learning progress.

    Args:
        events: Events in the window.
        progress_percentages: Progress of the organization's enrollments.

    Returns:
        Engagement metrics.
    """
    if not events:
        return EngagementMetrics()

    per_user = time_per_user(events)

    return EngagementMetrics(
        total_time_spent=round_int(sum(per_user.values())),
        avg_time_spent=round_int(mean(per_user.values())),
        active_users=len({event.user_id for event in events}),
        total_engagements=len(events),
        avg_learning_progress=round_half_up(mean(progress_percentages), 1),
        avg_quiz_score=round_half_up(
            average_property(events, EventType.QUIZ_COMPLETED, "score"), 1
        ),
        courses_completed=len(_of_type(events, EventType.COURSE_COMPLETED)),
    )


# ============================================================================
# Course reports
# ============================================================================


def compute_course_analytics(
    course_id: str,
    period: str,
    events: Sequence[EventLike],
) -> CourseAnalyticsItem:
    """Live course performance from events tagged with the course."""
    enrollment_count = len(_of_type(events, EventType.COURSE_ENROLLED))
    completion_count = len(_of_type(events, EventType.COURSE_COMPLETED))
    completion_rate = (
        round_half_up(completion_count / enrollment_count * 100, 1)
        if enrollment_count
        else 0.0
    )

    return CourseAnalyticsItem(
        course_id=course_id,
        period=period,
        enrollment_count=enrollment_count,
        completion_count=completion_count,
        completion_rate=completion_rate,
        avg_time_spent=round_int(mean(time_per_user(events).values())),
        avg_score=round_half_up(average_property(events, EventType.QUIZ_COMPLETED, "score"), 1),
        avg_attempts_to_pass=round_half_up(
            average_property(events, EventType.QUIZ_COMPLETED, "attempt_number"), 1
        ),
        real_time=True,
    )


def compute_dropoff(course_id: str, events: Sequence[EventLike]) -> DropoffResponse:
    """Where learners abandon a course.

    Dropoff rates compare the distinct users who abandoned a lesson with
    the distinct users who started any lesson of the course.
    """
    started_users = {
        event.user_id for event in _of_type(events, EventType.LESSON_STARTED)
    }
    total_users = len(started_users)

    abandoned: dict[tuple[Any, Any], dict[str, Any]] = {}
    for event in _of_type(events, EventType.LESSON_ABANDONED):
        props = event.properties or {}
        key = (props.get("lesson_id"), props.get("lesson_title"))
        entry = abandoned.setdefault(key, {"count": 0, "users": set()})
        entry["count"] += 1
        entry["users"].add(event.user_id)

    dropoff_points = [
        DropoffLesson(
            lesson_id=str(lesson_id),
            lesson_title=lesson_title,
            dropoff_count=entry["count"],
            unique_users=len(entry["users"]),
            dropoff_rate=(
                round_half_up(len(entry["users"]) / total_users * 100, 1)
                if total_users
                else 0.0
            ),
        )
        for (lesson_id, lesson_title), entry in abandoned.items()
    ]
    dropoff_points.sort(key=lambda point: point.dropoff_count, reverse=True)

    funnel: dict[tuple[Any, Any], dict[str, int]] = {}
    for event in events:
        if event.event_type not in (
            EventType.LESSON_STARTED.value,
            EventType.LESSON_COMPLETED.value,
        ):
            continue
        props = event.properties or {}
        key = (props.get("lesson_id"), props.get("lesson_title"))
        counts = funnel.setdefault(key, {"started": 0, "completed": 0})
        if event.event_type == EventType.LESSON_STARTED.value:
            counts["started"] += 1
        else:
            counts["completed"] += 1

    lesson_funnel = [
        FunnelStep(
            lesson_id=str(lesson_id),
            lesson_title=lesson_title,
            started=counts["started"],
            completed=counts["completed"],
            completion_rate=(
                round_half_up(counts["completed"] / counts["started"] * 100, 1)
                if counts["started"]
                else 0.0
            ),
        )
        for (lesson_id, lesson_title), counts in funnel.items()
    ]
    lesson_funnel.sort(key=lambda step: step.started, reverse=True)

    return DropoffResponse(
        course_id=course_id,
        dropoff_points=dropoff_points,
        lesson_funnel=lesson_funnel,
        summary=DropoffSummary(
            total_users=total_users,
            total_dropoffs=sum(point.dropoff_count for point in dropoff_points),
            most_abandoned_lesson=dropoff_points[0] if dropoff_points else None,
        ),
    )


# ============================================================================
# User reports
# ============================================================================


def engagement_level(
    minutes: float,
    medium_threshold: int = 100,
    high_threshold: int = 300,
) -> EngagementLevel:
    if minutes > high_threshold:
        return EngagementLevel.HIGH
    if minutes > medium_threshold:
        return EngagementLevel.MEDIUM
    return EngagementLevel.LOW


def compute_heatmap(
    events: Iterable[EventLike],
    start_date: datetime,
    end_date: datetime,
) -> HeatmapResponse:
    """Daily minutes of time_spent_updated events.

    Args:
        events: The user's events in the window.
        start_date: Window start.
        end_date: Window end.

    Returns:
        Days with activity in date order plus totals.
    """
    minutes: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)
    for event in _of_type(events, EventType.TIME_SPENT_UPDATED):
        day = format_day(event.timestamp)
        minutes[day] += _number(event.properties, "time_spent")
        counts[day] += 1

    days = [
        HeatmapDay(date=day, minutes_spent=round_int(minutes[day]), event_count=counts[day])
        for day in sorted(minutes)
    ]

    total_minutes = sum(day.minutes_spent for day in days)
    max_day = max(days, key=lambda day: day.minutes_spent, default=None)
    if max_day is not None and max_day.minutes_spent <= 0:
        max_day = None

    return HeatmapResponse(
        heatmap=days,
        statistics=HeatmapStatistics(
            total_minutes=total_minutes,
            avg_minutes_per_day=round_int(total_minutes / len(days)) if days else 0,
            active_days=len(days),
            max_day=max_day,
            start_date=start_date,
            end_date=end_date,
        ),
    )


def compute_user_analytics(
    user_id: str,
    period: str,
    events: Sequence[EventLike],
    courses_enrolled: int,
    medium_threshold: int = 100,
    high_threshold: int = 300,
) -> UserAnalyticsItem:
    """Learner engagement over the learner's events in a window.

    Args:
        user_id: User ID.
        period: Period label of the report.
        events: The user's events.
        courses_enrolled: Number of the user's enrollments.
        medium_threshold: Minutes above which engagement is medium.
        high_threshold: Minutes above which engagement is high.

    Returns:
        Learner engagement without window dates.
    """
    total_minutes = sum(time_per_user(events).values())

    return UserAnalyticsItem(
        user_id=user_id,
        period=period,
        total_time_spent=round_int(total_minutes),
        courses_enrolled=courses_enrolled,
        courses_completed=len(_of_type(events, EventType.COURSE_COMPLETED)),
        avg_quiz_score=round_half_up(
            average_property(events, EventType.QUIZ_COMPLETED, "score"), 1
        ),
        engagement_level=engagement_level(total_minutes, medium_threshold, high_threshold),
    )


def knowledge_gaps(events: Iterable[EventLike]) -> list[dict[str, Any]]:
    """Lessons with failed quiz attempts, most failures first."""
    gaps: dict[Any, dict[str, Any]] = {}
    for event in _of_type(events, EventType.QUIZ_COMPLETED):
        props = event.properties or {}
        if props.get("passed") is not False:
            continue
        gap = gaps.setdefault(
            props.get("lesson_id"),
            {
                "lesson_id": props.get("lesson_id"),
                "course_id": props.get("course_id"),
                "failed_attempts": 0,
                "best_score": 0.0,
            },
        )
        gap["failed_attempts"] += 1
        gap["best_score"] = max(gap["best_score"], _number(props, "score"))

    return sorted(gaps.values(), key=lambda gap: gap["failed_attempts"], reverse=True)


def last_accessed_courses(events: Iterable[EventLike], limit: int = 5) -> list[dict[str, Any]]:
    """Courses a learner touched, most recent first."""
    latest: dict[str, datetime] = {}
    for event in events:
        course_id = (event.properties or {}).get("course_id")
        if not course_id:
            continue
        if course_id not in latest or event.timestamp > latest[course_id]:
            latest[course_id] = event.timestamp

    ordered = sorted(latest.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [
        {"course_id": course_id, "last_accessed": format_iso(timestamp)}
        for course_id, timestamp in ordered
    ]


def average_completion_days(enrollments: Iterable[Any]) -> int:
    """Mean days from start (or enrollment) to completion of completed enrollments."""
    durations = [
        days_between(enrollment.started_at or enrollment.enrolled_at, enrollment.completed_at)
        for enrollment in enrollments
        if enrollment.completed_at is not None
        and (enrollment.started_at or enrollment.enrolled_at) is not None
    ]
    return round_int(mean(durations))
