# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz attempt API endpoints.

This module provides endpoints for:
- POST / - Submit a quiz attempt
- GET / - List a user's attempts, newest first
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
    QuizAttemptListResponse,
    QuizAttemptRequest,
    QuizAttemptResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=QuizAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit quiz attempt",
    description="A passing attempt completes the lesson and updates enrollment progress.",
)
async def submit_quiz_attempt(
    data: QuizAttemptRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> QuizAttemptResponse:
    try:
        return await ProgressService(db).record_quiz_attempt(data)
    except (ProgressCourseNotFoundError, CourseNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get(
    "",
    response_model=QuizAttemptListResponse,
    summary="List quiz attempts",
)
async def list_quiz_attempts(
    user_id: Annotated[str, Query(description="User ID")],
    lesson_id: Annotated[str | None, Query(description="Filter by lesson")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> QuizAttemptListResponse:
    return await ProgressService(db).list_quiz_attempts(user_id, lesson_id=lesson_id)
