# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get the authenticated caller and their User row
- Check organization admin rights

Example:
    @router.get("/organizations/{org_id}/members")
    async def list_members(
        org_id: str,
        db: AsyncSession = Depends(get_db),
        admin: User = Depends(require_org_admin),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.middleware.auth import CurrentUser, get_current_user
from upskill.domains.organization.service import OrganizationService
from upskill.domains.user.service import UserService, UserServiceError
from upskill.infrastructure.database.connection import get_session
from upskill.infrastructure.database.models import User

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request.

    Yields:
        AsyncSession committed when the request succeeds.
    """
    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require an authenticated caller.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_db_user(
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller's User row, registering it on first sight.

    Raises:
        HTTPException: If a new caller's token carries no email.
    """
    try:
        return await UserService(db).get_or_create(
            external_id=current_user.external_id,
            email=current_user.email,
            name=current_user.name,
        )
    except UserServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def require_org_admin(
    org_id: str,
    user: User = Depends(get_current_db_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Require the caller to be an active admin of the organization in the path.

    Raises:
        HTTPException: 403 if the caller is not an admin.
    """
    if not await OrganizationService(db).is_admin(org_id, user.id):
        logger.info("Admin access denied: user=%s, org=%s", user.id, org_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organization admin access required",
        )
    return user


# =========================================================================
# Type Aliases for Cleaner Endpoint Signatures
# =========================================================================

DB = Annotated[AsyncSession, Depends(get_db)]
AuthUser = Annotated[CurrentUser, Depends(require_auth)]
DBUser = Annotated[User, Depends(get_current_db_user)]
OrgAdmin = Annotated[User, Depends(require_org_admin)]
