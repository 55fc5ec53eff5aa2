# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Helpers for the module/lesson tree embedded in a course.

Courses store their modules as JSON documents. These helpers read that
structure without touching the database.
"""

from typing import Any, Iterable

from upskill.infrastructure.database.models.base import new_id


def sorted_modules(modules: Iterable[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Return modules ordered by their order field."""
    return sorted(modules or [], key=lambda module: module.get("order", 0))


def flatten_lessons(modules: Iterable[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Flatten a course's lessons into learning order.

    Lessons are ordered by module order first and lesson order second.
    Python's sort is stable, so ties keep their stored position.

    Args:
        modules: Course modules as stored on the Course row.

    Returns:
        Lesson documents in the order a learner takes them.
    """
    lessons: list[dict[str, Any]] = []
    for module in sorted_modules(modules):
        module_lessons = sorted(
            module.get("lessons") or [],
            key=lambda lesson: lesson.get("order", 0),
        )
        lessons.extend(module_lessons)
    return lessons


def lesson_ids(modules: Iterable[dict[str, Any]] | None) -> list[str]:
    """Lesson ids in learning order, skipping lessons without an id."""
    return [lesson["id"] for lesson in flatten_lessons(modules) if lesson.get("id")]


def count_lessons(modules: Iterable[dict[str, Any]] | None) -> int:
    return sum(len(module.get("lessons") or []) for module in modules or [])


def estimated_duration(modules: Iterable[dict[str, Any]] | None) -> int:
    """Sum of lesson durations in minutes."""
    return sum(
        int(lesson.get("duration") or 0)
        for module in modules or []
        for lesson in module.get("lessons") or []
    )


def find_lesson(
    modules: Iterable[dict[str, Any]] | None,
    lesson_id: str,
) -> dict[str, Any] | None:
    for lesson in flatten_lessons(modules):
        if lesson.get("id") == lesson_id:
            return lesson
    return None


def assign_ids(modules: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Give every module and lesson a stable id.

    Existing ids are kept; missing ones are generated. New dicts are
    returned so the input is left untouched.

    Args:
        modules: Module documents, typically dumped from request models.

    Returns:
        Module documents with ids on every module and lesson.
    """
    result: list[dict[str, Any]] = []
    for module in modules:
        lessons = [
            {**lesson, "id": lesson.get("id") or new_id()}
            for lesson in module.get("lessons") or []
        ]
        result.append({**module, "id": module.get("id") or new_id(), "lessons": lessons})
    return result
