# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics event, rollup and report schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from upskill.models.common import AnalyticsPeriod, EngagementLevel, ORMModel


# ============================================================================
# Events
# ============================================================================


class EventCreateRequest(BaseModel):
    """Analytics event submitted by a client or a service."""

    organization_id: str = Field(..., min_length=1, description="Organization ID")
    user_id: str = Field(..., min_length=1, description="Acting user")
    event_type: str = Field(..., min_length=1, max_length=50, description="Event type")
    event_name: str = Field(..., min_length=1, max_length=200, description="Human-readable name")
    properties: dict[str, Any] = Field(default_factory=dict, description="Event properties")
    timestamp: datetime | None = Field(None, description="Event time, defaults to now")
    session_id: str | None = Field(None, max_length=100, description="Client session ID")


class EventBatchRequest(BaseModel):
    """Batch of analytics events."""

    events: list[EventCreateRequest] = Field(..., min_length=1, description="Events to store")


class EventResponse(ORMModel):
    """Stored analytics event."""

    event_id: str = Field(description="Event ID")
    organization_id: str = Field(description="Organization ID")
    user_id: str = Field(description="Acting user")
    event_type: str = Field(description="Event type")
    event_name: str = Field(description="Human-readable name")
    properties: dict[str, Any] = Field(description="Event properties")
    timestamp: datetime = Field(description="Event time")
    session_id: str | None = Field(None, description="Client session ID")


class EventBatchResponse(BaseModel):
    """Batch insert result."""

    count: int = Field(description="Events stored")
    event_ids: list[str] = Field(description="Stored event IDs")


class EventListResponse(BaseModel):
    """Event query result."""

    events: list[EventResponse] = Field(description="Events, newest first")
    total: int = Field(description="Events matching the filters")
    limit: int = Field(description="Page size")
    skip: int = Field(description="Events skipped")


# ============================================================================
# Aggregation
# ============================================================================


class AggregateRequest(BaseModel):
    """Request to build an organization rollup."""

    organization_id: str = Field(..., min_length=1, description="Organization ID")
    period: AnalyticsPeriod = Field(default=AnalyticsPeriod.DAILY, description="Rollup period")
    start_date: datetime | None = Field(None, description="Window start, defaults to today")
    end_date: datetime | None = Field(None, description="Window end, defaults to today")


class EngagementMetrics(BaseModel):
    """Organization engagement metrics for a window."""

    total_time_spent: int = Field(default=0, description="Minutes spent by all users")
    avg_time_spent: int = Field(default=0, description="Average minutes per active user")
    active_users: int = Field(default=0, description="Distinct users with events")
    total_engagements: int = Field(default=0, description="Events in the window")
    avg_learning_progress: float = Field(default=0.0, description="Mean enrollment progress")
    avg_quiz_score: float = Field(default=0.0, description="Mean quiz score")
    courses_completed: int = Field(default=0, description="Course completions")


class AggregationResponse(BaseModel):
    """Stored rollup."""

    organization_id: str = Field(description="Organization ID")
    period: AnalyticsPeriod = Field(description="Rollup period")
    start_date: datetime = Field(description="Window start")
    end_date: datetime = Field(description="Window end")
    metrics: EngagementMetrics = Field(description="Rollup metrics")
    courses_aggregated: int = Field(default=0, description="Course rollups written")
    users_aggregated: int = Field(default=0, description="Learner rollups written")


class RollupStatus(BaseModel):
    """Latest stored rollup of one kind."""

    last_aggregated: datetime | None = Field(None, description="End of the latest window")
    period: str | None = Field(None, description="Period of the latest window")


class AggregationStatusResponse(BaseModel):
    """Latest rollups per kind."""

    organization_analytics: RollupStatus = Field(description="Organization rollups")
    course_analytics: RollupStatus = Field(description="Course rollups")
    user_analytics: RollupStatus = Field(description="User rollups")


class EngagementResponse(BaseModel):
    """Live organization engagement."""

    organization_id: str = Field(description="Organization ID")
    engagement: EngagementMetrics = Field(description="Engagement metrics")


# ============================================================================
# Course reports
# ============================================================================


class CourseAnalyticsItem(BaseModel):
    """Course performance for one window, stored or live."""

    course_id: str = Field(description="Course ID")
    period: str = Field(description="Period")
    start_date: datetime | None = Field(None, description="Window start")
    end_date: datetime | None = Field(None, description="Window end")
    enrollment_count: int = Field(default=0, description="Enrollments")
    completion_count: int = Field(default=0, description="Completions")
    completion_rate: float = Field(default=0.0, description="Completions per enrollment, percent")
    avg_time_spent: int = Field(default=0, description="Average minutes per user")
    avg_score: float = Field(default=0.0, description="Average quiz score")
    avg_attempts_to_pass: float = Field(default=0.0, description="Average quiz attempt number")
    avg_completion_time: int = Field(default=0, description="Average days to complete")
    dropoff_points: list[dict[str, Any]] = Field(default_factory=list, description="Stored dropoffs")
    real_time: bool = Field(default=False, description="Computed live from events")


class CourseAnalyticsResponse(BaseModel):
    """Course analytics result."""

    analytics: list[CourseAnalyticsItem] = Field(description="Windows, newest first")
    count: int = Field(description="Number of windows")
    real_time: bool = Field(description="Computed live from events")


class DropoffLesson(BaseModel):
    """Abandonment of one lesson."""

    lesson_id: str = Field(description="Lesson ID")
    lesson_title: str | None = Field(None, description="Lesson title")
    dropoff_count: int = Field(description="Abandon events")
    unique_users: int = Field(description="Distinct users who abandoned")
    dropoff_rate: float = Field(description="Abandoning users per starting user, percent")


class FunnelStep(BaseModel):
    """Start/complete counts for one lesson."""

    lesson_id: str = Field(description="Lesson ID")
    lesson_title: str | None = Field(None, description="Lesson title")
    started: int = Field(description="Lesson starts")
    completed: int = Field(description="Lesson completions")
    completion_rate: float = Field(description="Completions per start, percent")


class DropoffSummary(BaseModel):
    """Headline dropoff figures."""

    total_users: int = Field(description="Distinct users who started a lesson")
    total_dropoffs: int = Field(description="Abandon events")
    most_abandoned_lesson: DropoffLesson | None = Field(None, description="Lesson with most abandons")


class DropoffResponse(BaseModel):
    """Course dropoff report."""

    course_id: str = Field(description="Course ID")
    dropoff_points: list[DropoffLesson] = Field(description="Lessons by abandon count")
    lesson_funnel: list[FunnelStep] = Field(description="Lessons by start count")
    summary: DropoffSummary = Field(description="Summary")


# ============================================================================
# User reports
# ============================================================================


class UserAnalyticsItem(BaseModel):
    """Learner engagement for one window, stored or live."""

    user_id: str = Field(description="User ID")
    period: str = Field(description="Period")
    start_date: datetime | None = Field(None, description="Window start")
    end_date: datetime | None = Field(None, description="Window end")
    total_time_spent: int = Field(default=0, description="Minutes spent")
    courses_enrolled: int = Field(default=0, description="Enrollments")
    courses_completed: int = Field(default=0, description="Completions")
    avg_quiz_score: float = Field(default=0.0, description="Average quiz score")
    engagement_level: EngagementLevel = Field(default=EngagementLevel.LOW, description="Engagement level")
    knowledge_gaps: list[dict[str, Any]] = Field(default_factory=list, description="Weak topics")
    activity_heatmap: list[dict[str, Any]] = Field(default_factory=list, description="Daily activity")
    last_accessed_courses: list[dict[str, Any]] = Field(default_factory=list, description="Recent courses")
    real_time: bool = Field(default=False, description="Computed live from events")


class UserAnalyticsResponse(BaseModel):
    """User analytics result."""

    analytics: list[UserAnalyticsItem] = Field(description="Windows, newest first")
    count: int = Field(description="Number of windows")
    real_time: bool = Field(description="Computed live from events")


class HeatmapDay(BaseModel):
    """Activity of one day."""

    date: str = Field(description="Day as YYYY-MM-DD")
    minutes_spent: int = Field(description="Minutes spent")
    event_count: int = Field(description="Time events recorded")


class HeatmapStatistics(BaseModel):
    """Heatmap totals."""

    total_minutes: int = Field(description="Minutes across the window")
    avg_minutes_per_day: int = Field(description="Average minutes per active day")
    active_days: int = Field(description="Days with activity")
    max_day: HeatmapDay | None = Field(None, description="Busiest day")
    start_date: datetime = Field(description="Window start")
    end_date: datetime = Field(description="Window end")


class HeatmapResponse(BaseModel):
    """User activity heatmap."""

    heatmap: list[HeatmapDay] = Field(description="Days with activity, oldest first")
    statistics: HeatmapStatistics = Field(description="Totals")
