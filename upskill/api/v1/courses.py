# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course API endpoints.

This module provides endpoints for:
- GET /{course_id} - Get a course with modules and lessons
- PUT /{course_id} - Update a course (organization admin only)
- DELETE /{course_id} - Delete a course and its learner records (organization admin only)

Course creation and listing live under /organizations/{org_id}/courses.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_current_db_user, get_db, require_auth
from upskill.api.middleware.auth import CurrentUser
from upskill.domains.course.service import CourseNotFoundError, CourseService
from upskill.domains.organization.service import OrganizationService
from upskill.infrastructure.database.models import User
from upskill.models.course import CourseResponse, CourseUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


async def _require_course_admin(service: CourseService, course_id: str, user: User) -> None:
    """Check that the caller administers the course's organization.

    Raises:
        HTTPException: 404 for an unknown course, 403 for non-admins.
    """
    try:
        course = await service.get_course(course_id)
    except CourseNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    if not await OrganizationService(service.db).is_admin(course.organization_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization admin access required",
        )


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course",
)
async def get_course(
    course_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> CourseResponse:
    try:
        return await CourseService(db).get(course_id)
    except CourseNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.put(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    course_id: str,
    data: CourseUpdateRequest,
    user: User = Depends(get_current_db_user),
    db: AsyncSession = Depends(get_db),
) -> CourseResponse:
    """Update course fields or replace its modules.

    Args:
        course_id: Course ID.
        data: Fields to change.
        user: Calling user, must administer the course's organization.
        db: Database session.

    Returns:
        Updated course.
    """
    service = CourseService(db)
    await _require_course_admin(service, course_id, user)

    try:
        return await service.update(course_id, data)
    except CourseNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.delete(
    "/{course_id}",
    summary="Delete course",
    description="Deletes the course together with its enrollments, lesson progress and quiz attempts.",
)
async def delete_course(
    course_id: str,
    user: User = Depends(get_current_db_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = CourseService(db)
    await _require_course_admin(service, course_id, user)

    try:
        await service.delete(course_id)
    except CourseNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    logger.info("Course %s deleted by %s", course_id, user.id)
    return {"message": "Course deleted successfully", "course_id": course_id}
