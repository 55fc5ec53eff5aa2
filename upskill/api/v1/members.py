# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization member API endpoints.

This module provides endpoints for:
- POST /{org_id}/members - Add a member
- POST /{org_id}/members/bulk - Bulk import members
- GET /{org_id}/members - List members with learning stats
- PATCH /{org_id}/members/{member_id} - Update a member
- DELETE /{org_id}/members - Remove a member by id or email

All member endpoints require organization admin access.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_db, require_org_admin
from upskill.api.middleware.rate_limit import RATE_LIMIT_BULK, limiter
from upskill.domains.member.service import (
    MemberDepartmentNotFoundError,
    MemberExistsError,
    MemberNotFoundError,
    MemberService,
    MemberValidationError,
)
from upskill.infrastructure.database.models import User
from upskill.models.common import MemberRole, MemberStatus
from upskill.models.organization import (
    BulkImportRequest,
    BulkImportResponse,
    MemberCreateRequest,
    MemberListResponse,
    MemberResponse,
    MemberUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> MemberService:
    return MemberService(db=db)


@router.post(
    "/{org_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add member",
    description="Add a member; adding an existing member as admin upgrades their role.",
    responses={200: {"model": MemberResponse, "description": "Existing member upgraded to admin"}},
)
async def add_member(
    org_id: str,
    data: MemberCreateRequest,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
):
    """Add a member to the organization.

    Args:
        org_id: Organization ID.
        data: Member details.
        admin: Calling organization admin.
        db: Database session.

    Returns:
        Created member (201) or upgraded member (200).

    Raises:
        HTTPException: 400 on invalid email, 404 on unknown department,
            409 if the member exists.
    """
    try:
        member, created = await _get_service(db).add(org_id, data, invited_by=admin.id)
    except MemberValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except MemberDepartmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except MemberExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )

    if created:
        return member
    return JSONResponse(status_code=status.HTTP_200_OK, content=member.model_dump(mode="json"))


@router.post(
    "/{org_id}/members/bulk",
    response_model=BulkImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Bulk import members",
    description="201 when at least one row was imported, otherwise 400 with the same body.",
)
@limiter.limit(RATE_LIMIT_BULK)
async def bulk_import_members(
    request: Request,
    org_id: str,
    data: BulkImportRequest,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await _get_service(db).bulk_import(org_id, data, invited_by=admin.id)
    except MemberValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    status_code = (
        status.HTTP_201_CREATED if result.summary.success > 0 else status.HTTP_400_BAD_REQUEST
    )
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.get(
    "/{org_id}/members",
    response_model=MemberListResponse,
    summary="List members",
)
async def list_members(
    org_id: str,
    role: Annotated[MemberRole | None, Query(description="Filter by role")] = None,
    member_status: Annotated[
        MemberStatus | None, Query(alias="status", description="Filter by status")
    ] = None,
    department_id: Annotated[
        str | None, Query(description="Filter by department, 'general' for none")
    ] = None,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> MemberListResponse:
    return await _get_service(db).list_members(
        org_id,
        role=role,
        status=member_status,
        department_id=department_id,
    )


@router.patch(
    "/{org_id}/members/{member_id}",
    response_model=MemberResponse,
    summary="Update member",
)
async def update_member(
    org_id: str,
    member_id: str,
    data: MemberUpdateRequest,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> MemberResponse:
    try:
        return await _get_service(db).update(org_id, member_id, data)
    except MemberValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except (MemberNotFoundError, MemberDepartmentNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.delete(
    "/{org_id}/members",
    summary="Remove member",
)
async def remove_member(
    org_id: str,
    member_id: Annotated[str | None, Query(description="Member ID")] = None,
    email: Annotated[str | None, Query(description="Member email")] = None,
    admin: User = Depends(require_org_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        member = await _get_service(db).remove(org_id, member_id=member_id, email=email)
    except MemberValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except MemberNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return {
        "success": True,
        "message": f"Member {member.email} removed from organization",
    }
