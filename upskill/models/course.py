# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course, module and lesson schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from upskill.models.common import ContentType, CourseCategory, CourseStatus, ORMModel


class QuizQuestion(BaseModel):
    """Multiple-choice question with exactly four options."""

    question: str = Field(..., min_length=1, description="Question text")
    options: list[str] = Field(..., min_length=4, max_length=4, description="Answer options")
    correct_answer_index: int = Field(..., ge=0, le=3, description="Index of the correct option")
    explanation: str | None = Field(None, description="Shown after answering")


class QuizData(BaseModel):
    """Quiz attached to a lesson."""

    questions: list[QuizQuestion] = Field(default_factory=list, description="Quiz questions")
    passing_score: int = Field(default=70, ge=0, le=100, description="Score needed to pass")


class LessonData(BaseModel):
    """Lesson embedded in a course module."""

    id: str | None = Field(None, description="Lesson ID, generated when omitted")
    title: str = Field(..., min_length=1, description="Lesson title")
    description: str | None = Field(None, description="Lesson description")
    content_type: ContentType = Field(default=ContentType.ARTICLE, description="Lesson content type")
    content_data: dict[str, Any] = Field(default_factory=dict, description="Type-specific content")
    order: int = Field(default=0, ge=0, description="Position within the module")
    duration: int = Field(default=0, ge=0, description="Estimated duration in minutes")
    has_quiz: bool = Field(default=False, description="Whether the lesson ends with a quiz")
    quiz_data: QuizData | None = Field(None, description="Quiz definition")


class ModuleData(BaseModel):
    """Module embedded in a course."""

    id: str | None = Field(None, description="Module ID, generated when omitted")
    title: str = Field(..., min_length=1, description="Module title")
    description: str | None = Field(None, description="Module description")
    order: int = Field(default=0, ge=0, description="Position within the course")
    lessons: list[LessonData] = Field(default_factory=list, description="Module lessons")


class CourseCreateRequest(BaseModel):
    """Request to create a course."""

    title: str = Field(..., min_length=1, max_length=200, description="Course title")
    description: str | None = Field(None, description="Course description")
    category: CourseCategory = Field(default=CourseCategory.OTHER, description="Course category")
    thumbnail_url: str | None = Field(None, description="Thumbnail image URL")
    status: CourseStatus = Field(default=CourseStatus.DRAFT, description="Publication status")
    modules: list[ModuleData] = Field(default_factory=list, description="Course modules")

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value


class CourseUpdateRequest(BaseModel):
    """Partial course update. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=200, description="Course title")
    description: str | None = Field(None, description="Course description")
    category: CourseCategory | None = Field(None, description="Course category")
    thumbnail_url: str | None = Field(None, description="Thumbnail image URL")
    status: CourseStatus | None = Field(None, description="Publication status")
    modules: list[ModuleData] | None = Field(None, description="Replacement module list")


class CourseResponse(ORMModel):
    """Full course with modules and lessons."""

    id: str = Field(description="Course ID")
    organization_id: str = Field(description="Owning organization")
    title: str = Field(description="Course title")
    description: str | None = Field(None, description="Course description")
    category: str = Field(description="Course category")
    thumbnail_url: str | None = Field(None, description="Thumbnail image URL")
    status: str = Field(description="Publication status")
    estimated_duration: int = Field(description="Sum of lesson durations in minutes")
    modules: list[ModuleData] = Field(default_factory=list, description="Course modules")
    created_by: str | None = Field(None, description="Author user ID")
    created_at: datetime | None = Field(None, description="Creation time")
    updated_at: datetime | None = Field(None, description="Last update time")


class CourseListItem(ORMModel):
    """Course row in a listing, without lesson content."""

    id: str = Field(description="Course ID")
    title: str = Field(description="Course title")
    description: str | None = Field(None, description="Course description")
    category: str = Field(description="Course category")
    thumbnail_url: str | None = Field(None, description="Thumbnail image URL")
    status: str = Field(description="Publication status")
    estimated_duration: int = Field(description="Estimated duration in minutes")
    total_modules: int = Field(description="Number of modules")
    total_lessons: int = Field(description="Number of lessons")
    created_at: datetime | None = Field(None, description="Creation time")


class CourseListResponse(BaseModel):
    """Course listing."""

    items: list[CourseListItem] = Field(description="Courses")
    total: int = Field(description="Number of courses")
