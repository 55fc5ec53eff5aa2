# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for enrollment progress derivation."""

from datetime import datetime, timedelta, timezone

from upskill.domains.enrollment.progress import (
    ProgressSnapshot,
    apply_progress,
    compute_progress,
    percentage_of,
)
from upskill.infrastructure.database.models import Enrollment
from upskill.models.common import EnrollmentStatus

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _modules(count: int) -> list[dict]:
    return [
        {
            "id": "m1",
            "order": 0,
            "lessons": [{"id": f"l{i}", "order": i} for i in range(1, count + 1)],
        }
    ]


class TestPercentageOf:
    """Tests for percentage rounding."""

    def test_rounds_half_up(self) -> None:
        """Test 1 of 8 (12.5%) rounds to 13, not to even."""
        assert percentage_of(1, 8) == 13

    def test_thirds(self) -> None:
        assert percentage_of(1, 3) == 33
        assert percentage_of(2, 3) == 67

    def test_empty_course_is_zero(self) -> None:
        assert percentage_of(0, 0) == 0


class TestComputeProgress:
    """Tests for compute_progress."""

    def test_partial_progress(self) -> None:
        """Test next lesson is the first incomplete one."""
        snapshot = compute_progress(_modules(3), ["l1"])

        assert snapshot.completed_lesson_ids == ["l1"]
        assert snapshot.total_lessons == 3
        assert snapshot.percentage == 33
        assert snapshot.next_lesson_id == "l2"
        assert snapshot.status == EnrollmentStatus.IN_PROGRESS

    def test_out_of_order_completion(self) -> None:
        """Test a gap earlier in the course is the next lesson."""
        snapshot = compute_progress(_modules(3), ["l3", "l2"])

        assert snapshot.completed_lesson_ids == ["l2", "l3"]
        assert snapshot.next_lesson_id == "l1"

    def test_complete_course(self) -> None:
        """Test completing every lesson points at the last lesson."""
        snapshot = compute_progress(_modules(2), ["l1", "l2"])

        assert snapshot.percentage == 100
        assert snapshot.is_complete
        assert snapshot.next_lesson_id == "l2"

    def test_ignores_lessons_not_in_course(self) -> None:
        """Test completed ids of removed lessons do not count."""
        snapshot = compute_progress(_modules(2), ["l1", "removed"])

        assert snapshot.completed_lesson_ids == ["l1"]
        assert snapshot.percentage == 50

    def test_nothing_completed_is_not_started(self) -> None:
        snapshot = compute_progress(_modules(3), [])

        assert snapshot.percentage == 0
        assert snapshot.next_lesson_id == "l1"
        assert snapshot.status == EnrollmentStatus.NOT_STARTED

    def test_empty_course(self) -> None:
        """Test a course without lessons is never complete."""
        snapshot = compute_progress([], ["l1"])

        assert snapshot.total_lessons == 0
        assert snapshot.percentage == 0
        assert snapshot.next_lesson_id is None
        assert snapshot.status == EnrollmentStatus.NOT_STARTED


class TestApplyProgress:
    """Tests for writing snapshots onto enrollments."""

    def _enrollment(self, **overrides) -> Enrollment:
        values = {
            "status": EnrollmentStatus.NOT_STARTED.value,
            "progress_percentage": 0,
            "completed_lesson_ids": [],
        }
        values.update(overrides)
        return Enrollment(**values)

    def test_first_write_starts_enrollment(self) -> None:
        enrollment = self._enrollment()

        newly_completed = apply_progress(enrollment, compute_progress(_modules(2), ["l1"]), NOW)

        assert newly_completed is False
        assert enrollment.started_at == NOW
        assert enrollment.completed_at is None
        assert enrollment.status == EnrollmentStatus.IN_PROGRESS.value
        assert enrollment.progress_percentage == 50
        assert enrollment.current_lesson_id == "l2"

    def test_completion_is_reported_once(self) -> None:
        """Test only the transition to completed reports completion."""
        enrollment = self._enrollment()
        snapshot = compute_progress(_modules(2), ["l1", "l2"])

        assert apply_progress(enrollment, snapshot, NOW) is True
        later = NOW + timedelta(hours=1)
        assert apply_progress(enrollment, snapshot, later) is False
        assert enrollment.completed_at == NOW

    def test_keeps_started_at(self) -> None:
        started = NOW - timedelta(days=3)
        enrollment = self._enrollment(started_at=started)

        apply_progress(enrollment, ProgressSnapshot(total_lessons=2), NOW)

        assert enrollment.started_at == started

    def test_regression_clears_completed_at(self) -> None:
        """Test losing a lesson (course edit) reopens the enrollment."""
        enrollment = self._enrollment(
            status=EnrollmentStatus.COMPLETED.value,
            progress_percentage=100,
            started_at=NOW,
            completed_at=NOW,
        )

        apply_progress(enrollment, compute_progress(_modules(3), ["l1", "l2"]), NOW)

        assert enrollment.status == EnrollmentStatus.IN_PROGRESS.value
        assert enrollment.completed_at is None
        assert enrollment.progress_percentage == 67

    def test_untouched_enrollment_stays_not_started(self) -> None:
        """Test recalculating with no completed lessons does not start it."""
        enrollment = self._enrollment()

        newly_completed = apply_progress(enrollment, compute_progress(_modules(3), []), NOW)

        assert newly_completed is False
        assert enrollment.status == EnrollmentStatus.NOT_STARTED.value
        assert enrollment.started_at is None
        assert enrollment.progress_percentage == 0
        assert enrollment.current_lesson_id == "l1"

    def test_started_enrollment_does_not_revert(self) -> None:
        """Test losing the only completed lesson keeps an enrollment started."""
        started = NOW - timedelta(days=1)
        enrollment = self._enrollment(
            status=EnrollmentStatus.IN_PROGRESS.value,
            progress_percentage=33,
            completed_lesson_ids=["l1"],
            started_at=started,
        )

        apply_progress(enrollment, compute_progress(_modules(3), []), NOW)

        assert enrollment.status == EnrollmentStatus.IN_PROGRESS.value
        assert enrollment.started_at == started
        assert enrollment.progress_percentage == 0
