# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization activity feed schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ActivityType(str, Enum):
    """Kinds of entries in the activity feed."""

    ENROLLMENT = "enrollment"
    COURSE_COMPLETED = "course_completed"
    LESSON_COMPLETED = "lesson_completed"
    QUIZ_ATTEMPTED = "quiz_attempted"


class ActivityItem(BaseModel):
    """One learner action."""

    type: ActivityType
    user_id: str
    user_name: str | None = None
    user_email: str | None = None
    course_id: str
    course_title: str | None = None
    lesson_id: str | None = None
    lesson_title: str | None = None
    score: int | None = Field(None, description="Quiz score, quiz entries only")
    passed: bool | None = Field(None, description="Quiz result, quiz entries only")
    timestamp: datetime


class ActivityFeedResponse(BaseModel):
    """Recent learner activity, newest first."""

    items: list[ActivityItem]
    total: int
