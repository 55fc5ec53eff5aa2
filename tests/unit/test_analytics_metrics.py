# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for analytics metric calculations.

Events are plain namespaces; the calculations only read attributes.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from upskill.domains.analytics.metrics import (
    average_completion_days,
    compute_course_analytics,
    compute_dropoff,
    compute_engagement_metrics,
    compute_heatmap,
    compute_user_analytics,
    engagement_level,
    knowledge_gaps,
    last_accessed_courses,
    resolve_window,
    time_per_user,
)
from upskill.models.common import AnalyticsPeriod, EngagementLevel

T0 = datetime(2025, 3, 12, 9, 30, tzinfo=timezone.utc)


def _event(user_id: str, event_type: str, timestamp: datetime = T0, **properties) -> SimpleNamespace:
    return SimpleNamespace(
        user_id=user_id,
        event_type=event_type,
        properties=properties,
        timestamp=timestamp,
    )


class TestResolveWindow:
    """Tests for rollup window boundaries."""

    def test_daily_spans_whole_days(self) -> None:
        start, end = resolve_window(AnalyticsPeriod.DAILY, T0, T0)

        assert start == datetime(2025, 3, 12, tzinfo=timezone.utc)
        assert end == datetime(2025, 3, 12, 23, 59, 59, 999000, tzinfo=timezone.utc)

    def test_weekly_runs_sunday_to_saturday(self) -> None:
        """Test a Wednesday widens to the surrounding Sunday-Saturday week."""
        start, end = resolve_window(AnalyticsPeriod.WEEKLY, T0, T0)

        assert start == datetime(2025, 3, 9, tzinfo=timezone.utc)
        assert end.date().isoformat() == "2025-03-15"
        assert end.hour == 23

    def test_weekly_on_sunday_stays(self) -> None:
        sunday = datetime(2025, 3, 9, 18, 0, tzinfo=timezone.utc)

        start, end = resolve_window(AnalyticsPeriod.WEEKLY, sunday, sunday)

        assert start == datetime(2025, 3, 9, tzinfo=timezone.utc)
        assert end == datetime(2025, 3, 15, 23, 59, 59, 999000, tzinfo=timezone.utc)

    def test_weekly_on_saturday_stays(self) -> None:
        saturday = datetime(2025, 3, 15, 23, 0, tzinfo=timezone.utc)

        start, end = resolve_window(AnalyticsPeriod.WEEKLY, saturday, saturday)

        assert start == datetime(2025, 3, 9, tzinfo=timezone.utc)
        assert end == datetime(2025, 3, 15, 23, 59, 59, 999000, tzinfo=timezone.utc)

    def test_weekly_across_new_year(self) -> None:
        start, end = resolve_window(
            AnalyticsPeriod.WEEKLY,
            datetime(2025, 12, 30, tzinfo=timezone.utc),
            datetime(2026, 1, 2, tzinfo=timezone.utc),
        )

        assert start == datetime(2025, 12, 28, tzinfo=timezone.utc)
        assert end == datetime(2026, 1, 3, 23, 59, 59, 999000, tzinfo=timezone.utc)

    def test_monthly_handles_leap_february(self) -> None:
        day = datetime(2024, 2, 10, tzinfo=timezone.utc)

        start, end = resolve_window(AnalyticsPeriod.MONTHLY, day, day)

        assert start == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert end.date().isoformat() == "2024-02-29"

    def test_monthly_december(self) -> None:
        day = datetime(2025, 12, 31, 8, 0, tzinfo=timezone.utc)

        start, end = resolve_window(AnalyticsPeriod.MONTHLY, day, day)

        assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2025, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)

    def test_monthly_from_mid_december(self) -> None:
        day = datetime(2025, 12, 10, 14, 0, tzinfo=timezone.utc)

        start, end = resolve_window(AnalyticsPeriod.MONTHLY, day, day)

        assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2025, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)


class TestEngagementMetrics:
    """Tests for organization engagement."""

    def test_metrics_over_mixed_events(self) -> None:
        events = [
            _event("a", "time_spent_updated", time_spent=30),
            _event("a", "time_spent_updated", time_spent=15.5),
            _event("b", "time_spent_updated", time_spent=10),
            _event("b", "quiz_completed", score=80),
            _event("a", "quiz_completed", score=91),
            _event("a", "course_completed", course_id="c1"),
        ]

        metrics = compute_engagement_metrics(events, [50, 75, 100])

        assert metrics.total_time_spent == 56
        assert metrics.avg_time_spent == 28
        assert metrics.active_users == 2
        assert metrics.total_engagements == 6
        assert metrics.avg_quiz_score == 85.5
        assert metrics.avg_learning_progress == 75.0
        assert metrics.courses_completed == 1

    def test_empty_window_is_all_zero(self) -> None:
        """Test no events means zero progress too."""
        metrics = compute_engagement_metrics([], [80, 90])

        assert metrics.total_engagements == 0
        assert metrics.avg_learning_progress == 0.0
        assert metrics.active_users == 0

    def test_bad_numeric_properties_count_as_zero(self) -> None:
        events = [
            _event("a", "time_spent_updated", time_spent="abc"),
            _event("a", "time_spent_updated", time_spent=True),
            _event("a", "time_spent_updated", time_spent="12"),
        ]

        assert time_per_user(events) == {"a": 12.0}


class TestCourseAnalytics:
    """Tests for live course analytics."""

    def test_completion_rate_and_averages(self) -> None:
        events = [
            _event("a", "course_enrolled"),
            _event("b", "course_enrolled"),
            _event("c", "course_enrolled"),
            _event("a", "course_completed"),
            _event("a", "time_spent_updated", time_spent=40),
            _event("b", "time_spent_updated", time_spent=21),
            _event("a", "quiz_completed", score=70, attempt_number=1),
            _event("b", "quiz_completed", score=95, attempt_number=2),
        ]

        item = compute_course_analytics("course-1", "weekly", events)

        assert item.enrollment_count == 3
        assert item.completion_count == 1
        assert item.completion_rate == 33.3
        assert item.avg_time_spent == 31
        assert item.avg_score == 82.5
        assert item.avg_attempts_to_pass == 1.5
        assert item.real_time is True

    def test_no_enrollments(self) -> None:
        item = compute_course_analytics("course-1", "daily", [])

        assert item.completion_rate == 0.0
        assert item.avg_time_spent == 0


class TestDropoff:
    """Tests for dropoff and lesson funnel."""

    @pytest.fixture
    def events(self) -> list[SimpleNamespace]:
        return [
            _event("u1", "lesson_started", lesson_id="l1", lesson_title="Intro"),
            _event("u2", "lesson_started", lesson_id="l1", lesson_title="Intro"),
            _event("u3", "lesson_started", lesson_id="l2", lesson_title="Setup"),
            _event("u1", "lesson_completed", lesson_id="l1", lesson_title="Intro"),
            _event("u2", "lesson_abandoned", lesson_id="l1", lesson_title="Intro"),
            _event("u2", "lesson_abandoned", lesson_id="l1", lesson_title="Intro"),
            _event("u3", "lesson_abandoned", lesson_id="l2", lesson_title="Setup"),
        ]

    def test_dropoff_points(self, events) -> None:
        report = compute_dropoff("course-1", events)

        first, second = report.dropoff_points
        assert (first.lesson_id, first.dropoff_count, first.unique_users) == ("l1", 2, 1)
        assert first.dropoff_rate == 33.3
        assert (second.lesson_id, second.dropoff_count) == ("l2", 1)

    def test_lesson_funnel(self, events) -> None:
        report = compute_dropoff("course-1", events)

        funnel = {step.lesson_id: step for step in report.lesson_funnel}
        assert report.lesson_funnel[0].lesson_id == "l1"
        assert (funnel["l1"].started, funnel["l1"].completed) == (2, 1)
        assert funnel["l1"].completion_rate == 50.0
        assert funnel["l2"].completion_rate == 0.0

    def test_summary(self, events) -> None:
        summary = compute_dropoff("course-1", events).summary

        assert summary.total_users == 3
        assert summary.total_dropoffs == 3
        assert summary.most_abandoned_lesson.lesson_id == "l1"

    def test_empty_report(self) -> None:
        report = compute_dropoff("course-1", [])

        assert report.dropoff_points == []
        assert report.lesson_funnel == []
        assert report.summary.most_abandoned_lesson is None


class TestEngagementLevel:
    """Tests for learner engagement thresholds."""

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [
            (0, EngagementLevel.LOW),
            (100, EngagementLevel.LOW),
            (101, EngagementLevel.MEDIUM),
            (300, EngagementLevel.MEDIUM),
            (301, EngagementLevel.HIGH),
        ],
    )
    def test_thresholds(self, minutes: int, expected: EngagementLevel) -> None:
        assert engagement_level(minutes) == expected

    def test_custom_thresholds(self) -> None:
        assert engagement_level(20, medium_threshold=10, high_threshold=15) == EngagementLevel.HIGH


class TestHeatmap:
    """Tests for the daily activity heatmap."""

    def test_groups_minutes_by_day(self) -> None:
        start = datetime(2025, 3, 1, tzinfo=timezone.utc)
        end = datetime(2025, 3, 31, tzinfo=timezone.utc)
        events = [
            _event("a", "time_spent_updated", datetime(2025, 3, 3, 10, tzinfo=timezone.utc), time_spent=45),
            _event("a", "time_spent_updated", datetime(2025, 3, 1, 8, tzinfo=timezone.utc), time_spent=20),
            _event("a", "time_spent_updated", datetime(2025, 3, 1, 22, tzinfo=timezone.utc), time_spent=10),
            _event("a", "quiz_completed", datetime(2025, 3, 2, tzinfo=timezone.utc), score=90),
        ]

        report = compute_heatmap(events, start, end)

        assert [day.date for day in report.heatmap] == ["2025-03-01", "2025-03-03"]
        assert report.heatmap[0].minutes_spent == 30
        assert report.heatmap[0].event_count == 2
        stats = report.statistics
        assert stats.total_minutes == 75
        assert stats.avg_minutes_per_day == 38
        assert stats.active_days == 2
        assert stats.max_day.date == "2025-03-03"

    def test_no_activity(self) -> None:
        start = datetime(2025, 3, 1, tzinfo=timezone.utc)

        report = compute_heatmap([], start, start)

        assert report.heatmap == []
        assert report.statistics.max_day is None
        assert report.statistics.avg_minutes_per_day == 0


class TestUserRollups:
    """Tests for the per-learner rollup helpers."""

    def test_user_analytics(self) -> None:
        events = [
            _event("u1", "time_spent_updated", time_spent=250),
            _event("u1", "time_spent_updated", time_spent=100),
            _event("u1", "quiz_completed", score=60),
            _event("u1", "quiz_completed", score=91),
            _event("u1", "course_completed", course_id="c1"),
        ]

        item = compute_user_analytics("u1", "weekly", events, courses_enrolled=3)

        assert item.total_time_spent == 350
        assert item.courses_enrolled == 3
        assert item.courses_completed == 1
        assert item.avg_quiz_score == 75.5
        assert item.engagement_level == EngagementLevel.HIGH
        assert item.real_time is False

    def test_knowledge_gaps_rank_by_failures(self) -> None:
        events = [
            _event("u1", "quiz_completed", lesson_id="l1", course_id="c1", score=30, passed=False),
            _event("u1", "quiz_completed", lesson_id="l2", course_id="c1", score=50, passed=False),
            _event("u1", "quiz_completed", lesson_id="l2", course_id="c1", score=65, passed=False),
            _event("u1", "quiz_completed", lesson_id="l2", course_id="c1", score=90, passed=True),
            _event("u1", "quiz_completed", lesson_id="l3", course_id="c1", score=95),
        ]

        gaps = knowledge_gaps(events)

        assert [gap["lesson_id"] for gap in gaps] == ["l2", "l1"]
        assert gaps[0]["failed_attempts"] == 2
        assert gaps[0]["best_score"] == 65

    def test_last_accessed_courses_newest_first(self) -> None:
        events = [
            _event("u1", "lesson_started", T0, course_id="c1"),
            _event("u1", "lesson_started", T0 + timedelta(hours=2), course_id="c2"),
            _event("u1", "lesson_completed", T0 + timedelta(hours=3), course_id="c1"),
            _event("u1", "time_spent_updated", T0 + timedelta(hours=4)),
        ]

        courses = last_accessed_courses(events, limit=5)

        assert [course["course_id"] for course in courses] == ["c1", "c2"]
        assert courses[0]["last_accessed"] == (T0 + timedelta(hours=3)).isoformat()

    def test_average_completion_days(self) -> None:
        enrollments = [
            SimpleNamespace(
                started_at=T0, enrolled_at=T0, completed_at=T0 + timedelta(days=2, hours=5)
            ),
            SimpleNamespace(
                started_at=None, enrolled_at=T0, completed_at=T0 + timedelta(days=4)
            ),
            SimpleNamespace(started_at=T0, enrolled_at=T0, completed_at=None),
        ]

        assert average_completion_days(enrollments) == 3
        assert average_completion_days([]) == 0
