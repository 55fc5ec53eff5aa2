# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the analytics event log."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from upskill.domains.analytics import EventTracker
from upskill.infrastructure.database.models import AnalyticsEvent
from upskill.models.analytics import EventCreateRequest


@pytest.fixture
def org_id() -> str:
    return str(uuid4())


@pytest.fixture
def tracker(mock_db) -> EventTracker:
    return EventTracker(mock_db)


class TestEventTrackerWrite:
    """Tests for storing events."""

    @pytest.mark.asyncio
    async def test_track_defaults_timestamp(self, tracker, mock_db, org_id) -> None:
        before = datetime.now(timezone.utc)

        event = await tracker.track(
            EventCreateRequest(
                organization_id=org_id,
                user_id="user_2abc",
                event_type="lesson_started",
                event_name="Lesson Started",
                properties={"lesson_id": "l1"},
                session_id="s-1",
            )
        )

        assert event.timestamp >= before
        assert event.event_id
        assert event.properties == {"lesson_id": "l1"}
        assert event.session_id == "s-1"
        mock_db.flush.assert_called_once()

    @pytest.mark.asyncio
    async def test_track_normalizes_naive_timestamp(self, tracker, org_id) -> None:
        event = await tracker.track(
            EventCreateRequest(
                organization_id=org_id,
                user_id="user_2abc",
                event_type="time_spent_updated",
                event_name="Time Spent",
                timestamp=datetime(2025, 3, 1, 8, 30),
            )
        )

        assert event.timestamp == datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_track_batch_keeps_order(self, tracker, mock_db, org_id) -> None:
        requests = [
            EventCreateRequest(
                organization_id=org_id,
                user_id=f"user_{i}",
                event_type="lesson_completed",
                event_name="Lesson Completed",
            )
            for i in range(3)
        ]

        events = await tracker.track_batch(requests)

        assert [e.user_id for e in events] == ["user_0", "user_1", "user_2"]
        assert len({e.event_id for e in events}) == 3
        mock_db.add_all.assert_called_once()
        mock_db.flush.assert_called_once()

    @pytest.mark.asyncio
    async def test_track_safely_swallows_failures(self, tracker, mock_db, org_id) -> None:
        """Test a failing savepoint returns None instead of raising."""
        savepoint = MagicMock()
        savepoint.__aenter__.side_effect = RuntimeError("savepoint failed")
        mock_db.begin_nested.return_value = savepoint

        result = await tracker.track_safely(
            organization_id=org_id,
            user_id="user_2abc",
            event_type="course_enrolled",
            event_name="Course Enrolled",
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_track_safely_success(self, tracker, mock_db, org_id) -> None:
        result = await tracker.track_safely(
            organization_id=org_id,
            user_id="user_2abc",
            event_type="course_enrolled",
            event_name="Course Enrolled",
            properties={"course_id": "c1"},
        )

        assert isinstance(result, AnalyticsEvent)
        assert result in mock_db.added
        mock_db.begin_nested.assert_called_once()


class TestEventTrackerQuery:
    """Tests for querying events."""

    @pytest.mark.asyncio
    async def test_query_page(self, tracker, mock_db, make_result, org_id) -> None:
        now = datetime.now(timezone.utc)
        events = [
            AnalyticsEvent(
                id=str(uuid4()),
                event_id=str(uuid4()),
                organization_id=org_id,
                user_id="user_2abc",
                event_type="quiz_completed",
                event_name="Quiz Completed",
                properties={"score": 90},
                timestamp=now - timedelta(minutes=i),
            )
            for i in range(2)
        ]
        mock_db.execute.side_effect = [
            make_result(scalar=12),
            make_result(items=events),
        ]

        result = await tracker.query(
            organization_id=org_id,
            event_type="quiz_completed",
            course_id="c1",
            start_date=now - timedelta(days=1),
            limit=2,
            skip=4,
        )

        assert result.total == 12
        assert result.limit == 2
        assert result.skip == 4
        assert [e.event_id for e in result.events] == [e.event_id for e in events]
        assert mock_db.execute.call_count == 2
