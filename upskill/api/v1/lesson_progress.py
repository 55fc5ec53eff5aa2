# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lesson progress API endpoints.

This module provides endpoints for:
- POST / - Report progress on a lesson
- GET / - List a user's lesson progress

Completing a lesson re-derives the enrollment progress in the same
transaction.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_db, require_auth
from upskill.api.middleware.auth import CurrentUser
from upskill.domains.enrollment.service import CourseNotFoundError
from upskill.domains.progress.service import ProgressCourseNotFoundError, ProgressService
from upskill.models.progress import (
    LessonProgressListResponse,
    LessonProgressRequest,
    LessonProgressResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=LessonProgressResponse,
    summary="Report lesson progress",
)
async def record_lesson_progress(
    data: LessonProgressRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> LessonProgressResponse:
    try:
        return await ProgressService(db).record_lesson_progress(data)
    except (ProgressCourseNotFoundError, CourseNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get(
    "",
    response_model=LessonProgressListResponse,
    summary="List lesson progress",
)
async def list_lesson_progress(
    user_id: Annotated[str, Query(description="User ID")],
    lesson_id: Annotated[str | None, Query(description="Filter by lesson")] = None,
    course_id: Annotated[str | None, Query(description="Filter by course")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> LessonProgressListResponse:
    return await ProgressService(db).list_lesson_progress(
        user_id,
        lesson_id=lesson_id,
        course_id=course_id,
    )
