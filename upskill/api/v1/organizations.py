# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization API endpoints.

This module provides endpoints for:
- POST / - Create an organization (caller becomes admin)
- GET /{org_id} - Get organization details
- PATCH /{org_id} - Update organization (admin only)
- POST /{org_id}/courses - Create a course (admin only)
- GET /{org_id}/courses - List the organization's courses
- GET /{org_id}/activity - Recent learner activity
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_current_db_user, get_db, require_auth, require_org_admin
from upskill.api.middleware.auth import CurrentUser
from upskill.domains.course.service import CourseOrganizationNotFoundError, CourseService
from upskill.domains.organization.activity import ActivityService
from upskill.domains.organization.service import (
    OrganizationNotFoundError,
    OrganizationService,
    SlugExistsError,
)
from upskill.infrastructure.database.models import User, is_valid_id
from upskill.models.activity import ActivityFeedResponse
from upskill.models.common import CourseCategory, CourseStatus
from upskill.models.course import CourseCreateRequest, CourseListResponse, CourseResponse
from upskill.models.organization import (
    OrganizationCreateRequest,
    OrganizationResponse,
    OrganizationUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> OrganizationService:
    return OrganizationService(db=db)


@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create organization",
)
async def create_organization(
    data: OrganizationCreateRequest,
    user: User = Depends(get_current_db_user),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    """Create an organization owned by the caller.

    Raises:
        HTTPException: 409 if the slug is taken.
    """
    try:
        return await _get_service(db).create(data, owner=user)
    except SlugExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )


@router.get(
    "/{org_id}",
    response_model=OrganizationResponse,
    summary="Get organization",
)
async def get_organization(
    org_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    try:
        return await _get_service(db).get(org_id)
    except OrganizationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.patch(
    "/{org_id}",
    response_model=OrganizationResponse,
    summary="Update organization",
)
async def update_organization(
    org_id: str,
    data: OrganizationUpdateRequest,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    try:
        return await _get_service(db).update(org_id, data)
    except OrganizationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


# =========================================================================
# Courses
# =========================================================================


@router.post(
    "/{org_id}/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    org_id: str,
    data: CourseCreateRequest,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> CourseResponse:
    """Create a course; module and lesson ids are generated when missing.

    Raises:
        HTTPException: 404 if the organization does not exist.
    """
    logger.info("Creating course '%s' in org %s by %s", data.title, org_id, admin.id)

    try:
        return await CourseService(db).create(org_id, data, created_by=admin.id)
    except CourseOrganizationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get(
    "/{org_id}/courses",
    response_model=CourseListResponse,
    summary="List courses",
)
async def list_courses(
    org_id: str,
    course_status: Annotated[
        CourseStatus | None, Query(alias="status", description="Filter by status")
    ] = None,
    category: Annotated[CourseCategory | None, Query(description="Filter by category")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> CourseListResponse:
    return await CourseService(db).list_courses(org_id, status=course_status, category=category)


@router.get(
    "/{org_id}/activity",
    response_model=ActivityFeedResponse,
    summary="Organization activity",
)
async def organization_activity(
    org_id: str,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum entries")] = 20,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ActivityFeedResponse:
    """Recent learner activity in the organization, newest first.

    Raises:
        HTTPException: 400 if the organization id is malformed.
    """
    if not is_valid_id(org_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid organization ID",
        )
    return await ActivityService(db).recent(org_id, limit=limit)
