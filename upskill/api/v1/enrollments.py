# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API endpoints.

This module provides endpoints for:
- POST / - Enroll a user in a course
- GET / - List enrollments of a user or organization
- GET /{enrollment_id} - Get an enrollment with lesson progress
- PUT /{enrollment_id} - Change status or current lesson
- PATCH /{enrollment_id}/recalculate - Re-derive progress from lesson progress
- DELETE /{enrollment_id} - Delete an enrollment and its learner records
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_db, require_auth
from upskill.api.middleware.auth import CurrentUser
from upskill.domains.enrollment.service import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    EnrollmentNotFoundError,
    EnrollmentService,
    UserNotFoundError,
)
from upskill.models.enrollment import (
    EnrollmentCreateRequest,
    EnrollmentDetailResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentUpdateRequest,
    RecalculateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> EnrollmentService:
    """Get enrollment service instance.

    Args:
        db: Database session.

    Returns:
        Configured EnrollmentService instance.
    """
    return EnrollmentService(db=db)


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def create_enrollment(
    data: EnrollmentCreateRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Enroll a user in a course.

    Raises:
        HTTPException: 404 if the user or course is missing, 409 if
            already enrolled.
    """
    try:
        return await _get_service(db).enroll(data)
    except (UserNotFoundError, CourseNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except AlreadyEnrolledError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )


@router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List enrollments",
)
async def list_enrollments(
    user_id: Annotated[str | None, Query(description="Filter by user")] = None,
    organization_id: Annotated[str | None, Query(description="Filter by organization")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentListResponse:
    if not user_id and not organization_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="user_id or organization_id is required",
        )
    return await _get_service(db).list_enrollments(user_id=user_id, organization_id=organization_id)


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentDetailResponse,
    summary="Get enrollment",
)
async def get_enrollment(
    enrollment_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentDetailResponse:
    try:
        return await _get_service(db).get_enrollment(enrollment_id)
    except EnrollmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.put(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Update enrollment",
)
async def update_enrollment(
    enrollment_id: str,
    data: EnrollmentUpdateRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    try:
        return await _get_service(db).update(enrollment_id, data)
    except EnrollmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.patch(
    "/{enrollment_id}/recalculate",
    response_model=RecalculateResponse,
    summary="Recalculate enrollment progress",
    description="Re-derive completed lessons and percentage from lesson progress records.",
)
async def recalculate_enrollment(
    enrollment_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> RecalculateResponse:
    try:
        return await _get_service(db).recalculate(enrollment_id)
    except (EnrollmentNotFoundError, CourseNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.delete(
    "/{enrollment_id}",
    summary="Delete enrollment",
)
async def delete_enrollment(
    enrollment_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        await _get_service(db).delete(enrollment_id)
    except EnrollmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return {"message": "Enrollment deleted successfully", "enrollment_id": enrollment_id}
