# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User API endpoints.

This module provides endpoints for:
- GET /me - Current user profile (registered on first call)
- PATCH /me - Update profile
- GET /{user_id}/analytics - Learning analytics of a user
- GET /{user_id}/heatmap - Daily activity heatmap of a user
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_current_db_user, get_db, require_auth
from upskill.api.middleware.auth import CurrentUser
from upskill.domains.analytics.service import AnalyticsService
from upskill.domains.user.service import UserService
from upskill.infrastructure.database.models import User
from upskill.models.analytics import HeatmapResponse, UserAnalyticsResponse
from upskill.models.common import AnalyticsPeriod
from upskill.models.user import UserResponse, UserUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Return the caller's profile, registering the user on first sight.",
)
async def get_me(
    user: User = Depends(get_current_db_user),
) -> UserResponse:
    return UserResponse.model_validate(user)


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update current user",
)
async def update_me(
    data: UserUpdateRequest,
    user: User = Depends(get_current_db_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Update name, avatar or last accessed organization.

    Args:
        data: Fields to change.
        user: Caller's user row.
        db: Database session.

    Returns:
        Updated profile.
    """
    return await UserService(db).update(user, data)


# =========================================================================
# Analytics
# =========================================================================


@router.get(
    "/{user_id}/analytics",
    response_model=UserAnalyticsResponse,
    summary="Get user analytics",
    description="Stored user rollups for the period, or metrics computed from events.",
)
async def get_user_analytics(
    user_id: str,
    period: Annotated[AnalyticsPeriod, Query(description="Rollup period")] = AnalyticsPeriod.WEEKLY,
    start_date: Annotated[datetime | None, Query(description="Earliest window start")] = None,
    end_date: Annotated[datetime | None, Query(description="Latest window end")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> UserAnalyticsResponse:
    return await AnalyticsService(db).get_user_analytics(
        user_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )


@router.get(
    "/{user_id}/heatmap",
    response_model=HeatmapResponse,
    summary="Get activity heatmap",
    description="Minutes of learning per day, by default over the last 90 days.",
)
async def get_user_heatmap(
    user_id: str,
    start_date: Annotated[datetime | None, Query(description="Window start")] = None,
    end_date: Annotated[datetime | None, Query(description="Window end")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> HeatmapResponse:
    return await AnalyticsService(db).get_user_heatmap(
        user_id,
        start_date=start_date,
        end_date=end_date,
    )
