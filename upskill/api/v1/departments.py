# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department API endpoints.

This module provides endpoints for:
- POST /{org_id}/departments - Create a department
- GET /{org_id}/departments - List departments with member counts
- GET /{org_id}/departments/{department_id} - Get a department
- PUT /{org_id}/departments/{department_id} - Update (may auto-enroll members)
- DELETE /{org_id}/departments/{department_id} - Delete a department
- GET /{org_id}/departments/{department_id}/members - List department members

All department endpoints require organization admin access.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_db, require_org_admin
from upskill.domains.department.service import (
    DepartmentExistsError,
    DepartmentNotFoundError,
    DepartmentOrganizationNotFoundError,
    DepartmentService,
    DepartmentValidationError,
)
from upskill.infrastructure.database.models import User
from upskill.models.organization import (
    DepartmentCreateRequest,
    DepartmentListResponse,
    DepartmentResponse,
    DepartmentUpdateRequest,
    DepartmentUpdateResponse,
    MemberListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> DepartmentService:
    return DepartmentService(db=db)


@router.post(
    "/{org_id}/departments",
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create department",
)
async def create_department(
    org_id: str,
    data: DepartmentCreateRequest,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> DepartmentResponse:
    """Create a department.

    Raises:
        HTTPException: 400 on an invalid name, 404 on an unknown
            organization, 409 if the name is taken.
    """
    try:
        return await _get_service(db).create(org_id, data, created_by=admin.id)
    except DepartmentValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except DepartmentOrganizationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except DepartmentExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )


@router.get(
    "/{org_id}/departments",
    response_model=DepartmentListResponse,
    summary="List departments",
)
async def list_departments(
    org_id: str,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> DepartmentListResponse:
    return await _get_service(db).list_departments(org_id)


@router.get(
    "/{org_id}/departments/{department_id}",
    response_model=DepartmentResponse,
    summary="Get department",
)
async def get_department(
    org_id: str,
    department_id: str,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> DepartmentResponse:
    try:
        return await _get_service(db).get(org_id, department_id)
    except DepartmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.put(
    "/{org_id}/departments/{department_id}",
    response_model=DepartmentUpdateResponse,
    summary="Update department",
    description=(
        "With auto-enroll on, active employees are enrolled into newly "
        "added default courses; enrolled_count reports how many enrollments were created."
    ),
)
async def update_department(
    org_id: str,
    department_id: str,
    data: DepartmentUpdateRequest,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> DepartmentUpdateResponse:
    try:
        return await _get_service(db).update(org_id, department_id, data)
    except DepartmentValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except DepartmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except DepartmentExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )


@router.delete(
    "/{org_id}/departments/{department_id}",
    summary="Delete department",
)
async def delete_department(
    org_id: str,
    department_id: str,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        await _get_service(db).delete(org_id, department_id)
    except DepartmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return {"message": "Department deleted successfully", "department_id": department_id}


@router.get(
    "/{org_id}/departments/{department_id}/members",
    response_model=MemberListResponse,
    summary="List department members",
)
async def list_department_members(
    org_id: str,
    department_id: str,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> MemberListResponse:
    try:
        members = await _get_service(db).list_members(org_id, department_id)
    except DepartmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return MemberListResponse(items=members, total=len(members))
