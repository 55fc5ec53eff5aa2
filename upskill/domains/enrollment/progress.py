# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment progress derivation.

Stored enrollment progress is always derived from the learner's
completed lessons, never written independently. This module holds the
pure computation; EnrollmentService applies it to rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from upskill.domains.course.structure import flatten_lessons
from upskill.models.common import EnrollmentStatus
from upskill.utils.numbers import round_int


@dataclass
class ProgressSnapshot:
    """Derived progress of one enrollment.

    Attributes:
        completed_lesson_ids: Completed lessons that belong to the course,
            in learning order.
        total_lessons: Number of lessons in the course.
        percentage: round(completed / total * 100), 0 for empty courses.
        next_lesson_id: First incomplete lesson, or the last lesson when
            everything is complete.
        status: completed iff every lesson is complete, not-started when
            nothing is complete, else in-progress.
    """

    completed_lesson_ids: list[str] = field(default_factory=list)
    total_lessons: int = 0
    percentage: int = 0
    next_lesson_id: str | None = None
    status: EnrollmentStatus = EnrollmentStatus.NOT_STARTED

    @property
    def completed_count(self) -> int:
        return len(self.completed_lesson_ids)

    @property
    def is_complete(self) -> bool:
        return self.status == EnrollmentStatus.COMPLETED


def percentage_of(completed: int, total: int) -> int:
    """Completed share as a rounded whole percentage."""
    if total <= 0:
        return 0
    return round_int(completed * 100 / total)


def compute_progress(
    modules: Iterable[dict[str, Any]] | None,
    completed_lesson_ids: Iterable[str],
) -> ProgressSnapshot:
    """Derive enrollment progress from completed lessons.

    Completed ids that are not part of the course (for example lessons
    removed by a course edit) are ignored.

    Args:
        modules: Course modules as stored on the Course row.
        completed_lesson_ids: Lessons the user has completed.

    Returns:
        The derived progress snapshot.
    """
    lessons = flatten_lessons(modules)
    ordered_ids = [lesson.get("id") for lesson in lessons if lesson.get("id")]
    completed = set(completed_lesson_ids)

    done = [lesson_id for lesson_id in ordered_ids if lesson_id in completed]
    total = len(lessons)

    next_lesson_id = next(
        (lesson_id for lesson_id in ordered_ids if lesson_id not in completed),
        ordered_ids[-1] if ordered_ids else None,
    )

    if total > 0 and len(done) == total:
        status = EnrollmentStatus.COMPLETED
    elif done:
        status = EnrollmentStatus.IN_PROGRESS
    else:
        status = EnrollmentStatus.NOT_STARTED

    return ProgressSnapshot(
        completed_lesson_ids=done,
        total_lessons=total,
        percentage=percentage_of(len(done), total),
        next_lesson_id=next_lesson_id,
        status=status,
    )


def apply_progress(enrollment: Any, snapshot: ProgressSnapshot, now: datetime) -> bool:
    """Write a snapshot onto an Enrollment row.

    An enrollment leaves not-started only once a lesson is complete, and
    never returns to it. started_at is set when it leaves not-started and
    completed_at on the first transition to completed.

    Args:
        enrollment: Enrollment ORM row.
        snapshot: Derived progress.
        now: Current time.

    Returns:
        True if this write completed the enrollment.
    """
    was_complete = enrollment.status == EnrollmentStatus.COMPLETED.value

    enrollment.completed_lesson_ids = list(snapshot.completed_lesson_ids)
    enrollment.progress_percentage = snapshot.percentage
    enrollment.current_lesson_id = snapshot.next_lesson_id
    status = snapshot.status
    if status == EnrollmentStatus.NOT_STARTED and (
        enrollment.status != EnrollmentStatus.NOT_STARTED.value
    ):
        status = EnrollmentStatus.IN_PROGRESS
    enrollment.status = status.value

    if status != EnrollmentStatus.NOT_STARTED and enrollment.started_at is None:
        enrollment.started_at = now

    if snapshot.is_complete:
        if enrollment.completed_at is None:
            enrollment.completed_at = now
    else:
        enrollment.completed_at = None

    return snapshot.is_complete and not was_complete
