# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for course module/lesson helpers."""

from upskill.domains.course.structure import (
    assign_ids,
    count_lessons,
    estimated_duration,
    find_lesson,
    flatten_lessons,
    lesson_ids,
)
from upskill.infrastructure.database.models import is_valid_id


def _modules() -> list[dict]:
    return [
        {
            "id": "m2",
            "title": "Advanced",
            "order": 1,
            "lessons": [
                {"id": "l4", "title": "Four", "order": 1, "duration": 15},
                {"id": "l3", "title": "Three", "order": 0, "duration": 5},
            ],
        },
        {
            "id": "m1",
            "title": "Basics",
            "order": 0,
            "lessons": [
                {"id": "l1", "title": "One", "order": 0, "duration": 10},
                {"id": "l2", "title": "Two", "order": 1},
            ],
        },
    ]


class TestFlattenLessons:
    """Tests for learning order."""

    def test_orders_by_module_then_lesson(self) -> None:
        """Test lessons follow module order first, lesson order second."""
        assert lesson_ids(_modules()) == ["l1", "l2", "l3", "l4"]

    def test_ties_keep_stored_position(self) -> None:
        """Test equal order values keep their stored position."""
        modules = [
            {
                "order": 0,
                "lessons": [
                    {"id": "b", "order": 0},
                    {"id": "a", "order": 0},
                ],
            }
        ]

        assert lesson_ids(modules) == ["b", "a"]

    def test_empty_and_missing(self) -> None:
        """Test None and lesson-less modules flatten to nothing."""
        assert flatten_lessons(None) == []
        assert flatten_lessons([{"order": 0}]) == []


class TestCourseTotals:
    """Tests for lesson counts and durations."""

    def test_count_lessons(self) -> None:
        assert count_lessons(_modules()) == 4
        assert count_lessons([]) == 0

    def test_estimated_duration_treats_missing_as_zero(self) -> None:
        """Test lessons without a duration add nothing."""
        assert estimated_duration(_modules()) == 30

    def test_find_lesson(self) -> None:
        assert find_lesson(_modules(), "l3")["title"] == "Three"
        assert find_lesson(_modules(), "missing") is None


class TestAssignIds:
    """Tests for id assignment on new course content."""

    def test_keeps_existing_ids(self) -> None:
        result = assign_ids(_modules())

        assert [module["id"] for module in result] == ["m2", "m1"]
        assert [lesson["id"] for lesson in result[1]["lessons"]] == ["l1", "l2"]

    def test_generates_missing_ids_without_mutating_input(self) -> None:
        """Test new ids are UUIDs and the input dicts stay untouched."""
        modules = [{"title": "New", "order": 0, "lessons": [{"title": "Intro", "order": 0}]}]

        result = assign_ids(modules)

        assert is_valid_id(result[0]["id"])
        assert is_valid_id(result[0]["lessons"][0]["id"])
        assert "id" not in modules[0]
        assert "id" not in modules[0]["lessons"][0]
