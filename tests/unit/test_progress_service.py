# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ProgressService.

Covers lesson progress merging, quiz attempt numbering and the
enrollment update that follows a completed lesson.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from upskill.domains.progress.service import ProgressCourseNotFoundError, ProgressService
from upskill.infrastructure.database.models import (
    AnalyticsEvent,
    Course,
    Enrollment,
    LessonProgress,
    QuizAttempt,
)
from upskill.models.common import EnrollmentStatus, LessonStatus
from upskill.models.progress import LessonProgressRequest, QuizAnswer, QuizAttemptRequest


@pytest.fixture
def course() -> Course:
    return Course(
        id=str(uuid4()),
        organization_id=str(uuid4()),
        title="Sales 101",
        category="sales",
        modules=[
            {
                "id": "m1",
                "order": 0,
                "lessons": [{"id": "l1", "order": 0}, {"id": "l2", "order": 1}],
            }
        ],
    )


@pytest.fixture
def user_id() -> str:
    return str(uuid4())


@pytest.fixture
def service(mock_db) -> ProgressService:
    return ProgressService(db=mock_db)


def _events(mock_db, event_type: str) -> list[AnalyticsEvent]:
    return [
        obj for obj in mock_db.added
        if isinstance(obj, AnalyticsEvent) and obj.event_type == event_type
    ]


class TestRecordLessonProgress:
    """Tests for ProgressService.record_lesson_progress."""

    @pytest.mark.asyncio
    async def test_creates_record(self, service, mock_db, make_result, course, user_id) -> None:
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(one=None),
        ]

        result = await service.record_lesson_progress(
            LessonProgressRequest(
                user_id=user_id,
                lesson_id="l1",
                course_id=course.id,
                watch_time=40,
                time_spent=60,
            )
        )

        assert result.status == LessonStatus.IN_PROGRESS
        assert result.watch_time == 40
        assert result.time_spent == 60
        assert result.completed_at is None
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_merges_existing_record(
        self, service, mock_db, make_result, course, user_id
    ) -> None:
        """Test maxima are kept and time spent accumulates."""
        existing = LessonProgress(
            id=str(uuid4()),
            user_id=user_id,
            lesson_id="l1",
            course_id=course.id,
            status=LessonStatus.IN_PROGRESS.value,
            watch_time=120,
            scroll_depth=30,
            time_spent=200,
            last_accessed_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
        )
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(one=existing),
        ]

        result = await service.record_lesson_progress(
            LessonProgressRequest(
                user_id=user_id,
                lesson_id="l1",
                course_id=course.id,
                watch_time=90,
                scroll_depth=80,
                time_spent=45,
            )
        )

        assert result.watch_time == 120
        assert result.scroll_depth == 80
        assert result.time_spent == 245
        assert result.last_accessed_at > datetime(2025, 3, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_completion_updates_enrollment(
        self, service, mock_db, make_result, course, user_id
    ) -> None:
        """Test completing the last lesson completes the enrollment and emits an event."""
        started = datetime.now(timezone.utc) - timedelta(days=3, hours=1)
        enrollment = Enrollment(
            id=str(uuid4()),
            user_id=user_id,
            course_id=course.id,
            organization_id=course.organization_id,
            status=EnrollmentStatus.IN_PROGRESS.value,
            progress_percentage=50,
            completed_lesson_ids=["l1"],
            started_at=started,
        )
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(one=None),
            make_result(one=enrollment),
            make_result(one=course),
            make_result(items=["l1", "l2"]),
            make_result(scalar=1500),
        ]

        result = await service.record_lesson_progress(
            LessonProgressRequest(
                user_id=user_id,
                lesson_id="l2",
                course_id=course.id,
                status=LessonStatus.COMPLETED,
            )
        )

        assert result.status == LessonStatus.COMPLETED
        assert result.completed_at is not None
        assert enrollment.status == EnrollmentStatus.COMPLETED.value
        assert enrollment.progress_percentage == 100
        assert enrollment.completed_lesson_ids == ["l1", "l2"]

        events = _events(mock_db, "course_completed")
        assert len(events) == 1
        props = events[0].properties
        assert props["total_lessons"] == 2
        assert props["completed_lessons"] == 2
        assert props["total_time_spent"] == 25
        assert props["duration_days"] == 3
        assert props["course_title"] == "Sales 101"

    @pytest.mark.asyncio
    async def test_reopening_completed_lesson_lowers_enrollment_progress(
        self, service, mock_db, make_result, course, user_id
    ) -> None:
        """Test moving a lesson out of completed re-derives the enrollment."""
        finished = datetime(2025, 3, 1, tzinfo=timezone.utc)
        existing = LessonProgress(
            id=str(uuid4()),
            user_id=user_id,
            lesson_id="l2",
            course_id=course.id,
            status=LessonStatus.COMPLETED.value,
            watch_time=0,
            scroll_depth=100,
            time_spent=300,
            last_accessed_at=finished,
            completed_at=finished,
        )
        enrollment = Enrollment(
            id=str(uuid4()),
            user_id=user_id,
            course_id=course.id,
            organization_id=course.organization_id,
            status=EnrollmentStatus.COMPLETED.value,
            progress_percentage=100,
            completed_lesson_ids=["l1", "l2"],
            started_at=finished - timedelta(days=2),
            completed_at=finished,
        )
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(one=existing),
            make_result(one=enrollment),
            make_result(one=course),
            make_result(items=["l1"]),
        ]

        result = await service.record_lesson_progress(
            LessonProgressRequest(
                user_id=user_id,
                lesson_id="l2",
                course_id=course.id,
                status=LessonStatus.IN_PROGRESS,
            )
        )

        assert result.status == LessonStatus.IN_PROGRESS
        assert result.completed_at is None
        assert enrollment.progress_percentage == 50
        assert enrollment.status == EnrollmentStatus.IN_PROGRESS.value
        assert enrollment.completed_lesson_ids == ["l1"]
        assert enrollment.completed_at is None
        assert _events(mock_db, "course_completed") == []

    @pytest.mark.asyncio
    async def test_in_progress_report_skips_enrollment_sync(
        self, service, mock_db, make_result, course, user_id
    ) -> None:
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(one=None),
        ]

        await service.record_lesson_progress(
            LessonProgressRequest(
                user_id=user_id,
                lesson_id="l1",
                course_id=course.id,
                status=LessonStatus.IN_PROGRESS,
            )
        )

        assert mock_db.execute.call_count == 2

    @pytest.mark.asyncio
    async def test_completion_without_enrollment(
        self, service, mock_db, make_result, course, user_id
    ) -> None:
        """Test progress is still stored when the user is not enrolled."""
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(one=None),
            make_result(one=None),
        ]

        result = await service.record_lesson_progress(
            LessonProgressRequest(
                user_id=user_id,
                lesson_id="l1",
                course_id=course.id,
                status=LessonStatus.COMPLETED,
            )
        )

        assert result.status == LessonStatus.COMPLETED
        assert _events(mock_db, "course_completed") == []

    @pytest.mark.asyncio
    async def test_unknown_course(self, service, mock_db, make_result, user_id) -> None:
        mock_db.execute.return_value = make_result(one=None)

        with pytest.raises(ProgressCourseNotFoundError):
            await service.record_lesson_progress(
                LessonProgressRequest(user_id=user_id, lesson_id="l1", course_id=str(uuid4()))
            )

    @pytest.mark.asyncio
    async def test_list_malformed_user(self, service, mock_db) -> None:
        result = await service.list_lesson_progress("not-a-uuid")

        assert result.progress == []
        mock_db.execute.assert_not_called()


class TestRecordQuizAttempt:
    """Tests for ProgressService.record_quiz_attempt."""

    def _request(self, course: Course, user_id: str, passed: bool, score: int) -> QuizAttemptRequest:
        return QuizAttemptRequest(
            user_id=user_id,
            lesson_id="l1",
            course_id=course.id,
            organization_id=course.organization_id,
            answers=[QuizAnswer(question_index=0, selected_answer_index=2, is_correct=passed)],
            score=score,
            passed=passed,
            time_spent=120,
        )

    @pytest.mark.asyncio
    async def test_failed_attempt(self, service, mock_db, make_result, course, user_id) -> None:
        """Test a failing attempt is stored without touching progress."""
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(scalar=0),
        ]

        result = await service.record_quiz_attempt(self._request(course, user_id, False, 40))

        assert result.attempt_number == 1
        assert result.passed is False
        assert result.answers[0].selected_answer_index == 2
        assert result.completed_at - result.started_at == timedelta(seconds=120)
        assert not any(isinstance(obj, LessonProgress) for obj in mock_db.added)

        events = _events(mock_db, "quiz_completed")
        assert events[0].properties["score"] == 40
        assert events[0].properties["attempt_number"] == 1

    @pytest.mark.asyncio
    async def test_passing_attempt_completes_lesson(
        self, service, mock_db, make_result, course, user_id
    ) -> None:
        """Test the attempt number continues and the lesson is completed."""
        mock_db.execute.side_effect = [
            make_result(one=course.id),
            make_result(scalar=2),
            make_result(one=None),
            make_result(one=None),
        ]

        result = await service.record_quiz_attempt(self._request(course, user_id, True, 90))

        assert result.attempt_number == 3
        progress = [obj for obj in mock_db.added if isinstance(obj, LessonProgress)]
        assert len(progress) == 1
        assert progress[0].status == LessonStatus.COMPLETED.value
        assert progress[0].completed_at is not None
        assert any(isinstance(obj, QuizAttempt) for obj in mock_db.added)

    @pytest.mark.asyncio
    async def test_unknown_course(self, service, mock_db, user_id) -> None:
        with pytest.raises(ProgressCourseNotFoundError):
            await service.record_quiz_attempt(
                QuizAttemptRequest(
                    user_id=user_id,
                    lesson_id="l1",
                    course_id="missing",
                    organization_id=str(uuid4()),
                    score=10,
                    passed=False,
                )
            )
