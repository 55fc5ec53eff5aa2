# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lesson progress and quiz attempt schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from upskill.models.common import LessonStatus, ORMModel


class LessonProgressRequest(BaseModel):
    """Progress report for one lesson.

    Omitted metrics are left unchanged on an existing record.
    """

    user_id: str = Field(..., min_length=1, description="User ID")
    lesson_id: str = Field(..., min_length=1, description="Lesson ID")
    course_id: str = Field(..., min_length=1, description="Course ID")
    status: LessonStatus | None = Field(None, description="Lesson status")
    watch_time: int | None = Field(None, ge=0, description="Video position reached, in seconds")
    scroll_depth: int | None = Field(None, ge=0, le=100, description="Article scroll depth percentage")
    time_spent: int | None = Field(None, ge=0, description="Seconds spent since the last report")


class LessonProgressResponse(ORMModel):
    """Stored lesson progress."""

    id: str = Field(description="Record ID")
    user_id: str = Field(description="User ID")
    lesson_id: str = Field(description="Lesson ID")
    course_id: str = Field(description="Course ID")
    status: LessonStatus = Field(description="Lesson status")
    watch_time: int = Field(description="Furthest video position in seconds")
    scroll_depth: int = Field(description="Deepest scroll percentage")
    time_spent: int = Field(description="Total seconds spent")
    last_accessed_at: datetime = Field(description="Last report time")
    completed_at: datetime | None = Field(None, description="First completion time")


class LessonProgressListResponse(BaseModel):
    """Lesson progress records."""

    progress: list[LessonProgressResponse] = Field(description="Progress records")


class QuizAnswer(BaseModel):
    """Answer to one quiz question."""

    question_index: int = Field(..., ge=0, description="Question position")
    selected_answer_index: int = Field(..., ge=0, le=3, description="Chosen option")
    is_correct: bool = Field(..., description="Whether the option was correct")


class QuizAttemptRequest(BaseModel):
    """Submitted quiz attempt."""

    user_id: str = Field(..., min_length=1, description="User ID")
    lesson_id: str = Field(..., min_length=1, description="Lesson ID")
    course_id: str = Field(..., min_length=1, description="Course ID")
    organization_id: str = Field(..., min_length=1, description="Organization ID")
    answers: list[QuizAnswer] = Field(default_factory=list, description="Answers given")
    score: int = Field(..., ge=0, le=100, description="Score percentage")
    passed: bool = Field(..., description="Whether the passing score was reached")
    time_spent: int = Field(default=0, ge=0, description="Seconds spent on the attempt")


class QuizAttemptResponse(ORMModel):
    """Stored quiz attempt."""

    id: str = Field(description="Attempt ID")
    user_id: str = Field(description="User ID")
    lesson_id: str = Field(description="Lesson ID")
    course_id: str = Field(description="Course ID")
    organization_id: str = Field(description="Organization ID")
    attempt_number: int = Field(description="1-based attempt counter")
    answers: list[QuizAnswer] = Field(description="Answers given")
    score: int = Field(description="Score percentage")
    passed: bool = Field(description="Whether the attempt passed")
    time_spent: int = Field(description="Seconds spent")
    started_at: datetime = Field(description="Attempt start")
    completed_at: datetime = Field(description="Attempt submission")


class QuizAttemptListResponse(BaseModel):
    """Quiz attempts, newest first."""

    attempts: list[QuizAttemptResponse] = Field(description="Attempts")
