# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning analytics API endpoints.

This module provides endpoints for:

Events:
- POST /events - Store one event
- POST /events/batch - Store several events
- GET /events - Query events, newest first

Rollups:
- POST /aggregate - Compute and store an organization rollup
- GET /aggregate/status - Latest stored rollup windows
- GET /organizations/{org_id}/engagement - Live engagement metrics

Course reports:
- GET /courses/{course_id} - Course analytics (stored or real-time)
- GET /courses/{course_id}/dropoff - Abandonment points and lesson funnel

User reports are served under /users/{user_id}.
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.api.dependencies import get_db, require_auth
from upskill.api.middleware.auth import CurrentUser
from upskill.api.middleware.rate_limit import RATE_LIMIT_AGGREGATE, limiter
from upskill.domains.analytics import (
    AnalyticsAggregator,
    AnalyticsService,
    EventTracker,
    OrganizationNotFoundError,
)
from upskill.infrastructure.database.models import is_valid_id
from upskill.models.analytics import (
    AggregateRequest,
    AggregationResponse,
    AggregationStatusResponse,
    CourseAnalyticsResponse,
    DropoffResponse,
    EngagementResponse,
    EventBatchRequest,
    EventBatchResponse,
    EventCreateRequest,
    EventListResponse,
    EventResponse,
)
from upskill.models.common import AnalyticsPeriod

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_organization_id(organization_id: str) -> None:
    if not is_valid_id(organization_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid organization ID",
        )


# =========================================================================
# Events
# =========================================================================


@router.post(
    "/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Track event",
)
async def track_event(
    data: EventCreateRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EventResponse:
    _check_organization_id(data.organization_id)
    event = await EventTracker(db).track(data)
    return EventResponse.model_validate(event)


@router.post(
    "/events/batch",
    response_model=EventBatchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Track events",
)
async def track_events(
    data: EventBatchRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EventBatchResponse:
    for event in data.events:
        _check_organization_id(event.organization_id)

    events = await EventTracker(db).track_batch(data.events)
    return EventBatchResponse(
        count=len(events),
        event_ids=[event.event_id for event in events],
    )


@router.get(
    "/events",
    response_model=EventListResponse,
    summary="Query events",
)
async def query_events(
    organization_id: Annotated[str | None, Query(description="Filter by organization")] = None,
    event_type: Annotated[str | None, Query(description="Filter by event type")] = None,
    user_id: Annotated[str | None, Query(description="Filter by user")] = None,
    course_id: Annotated[str | None, Query(description="Filter by course")] = None,
    session_id: Annotated[str | None, Query(description="Filter by session")] = None,
    start_date: Annotated[datetime | None, Query(description="Earliest event time")] = None,
    end_date: Annotated[datetime | None, Query(description="Latest event time")] = None,
    limit: Annotated[int, Query(ge=1, le=1000, description="Maximum results")] = 50,
    skip: Annotated[int, Query(ge=0, description="Results to skip")] = 0,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EventListResponse:
    if organization_id is not None:
        _check_organization_id(organization_id)

    return await EventTracker(db).query(
        organization_id=organization_id,
        event_type=event_type,
        user_id=user_id,
        course_id=course_id,
        session_id=session_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        skip=skip,
    )


# =========================================================================
# Rollups
# =========================================================================


@router.post(
    "/aggregate",
    response_model=AggregationResponse,
    summary="Aggregate organization analytics",
    description="Compute the period window's metrics and upsert the organization rollup.",
)
@limiter.limit(RATE_LIMIT_AGGREGATE)
async def aggregate(
    request: Request,
    data: AggregateRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AggregationResponse:
    try:
        return await AnalyticsAggregator(db).aggregate(data)
    except OrganizationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get(
    "/aggregate/status",
    response_model=AggregationStatusResponse,
    summary="Rollup status",
)
async def aggregation_status(
    organization_id: Annotated[str, Query(description="Organization ID")],
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> AggregationStatusResponse:
    _check_organization_id(organization_id)
    return await AnalyticsAggregator(db).get_status(organization_id)


@router.get(
    "/organizations/{org_id}/engagement",
    response_model=EngagementResponse,
    summary="Organization engagement",
)
async def organization_engagement(
    org_id: str,
    start_date: Annotated[datetime | None, Query(description="Earliest event time")] = None,
    end_date: Annotated[datetime | None, Query(description="Latest event time")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EngagementResponse:
    _check_organization_id(org_id)
    try:
        return await AnalyticsAggregator(db).get_engagement(
            org_id,
            start_date=start_date,
            end_date=end_date,
        )
    except OrganizationNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


# =========================================================================
# Course reports
# =========================================================================


@router.get(
    "/courses/{course_id}",
    response_model=CourseAnalyticsResponse,
    summary="Course analytics",
)
async def course_analytics(
    course_id: str,
    period: Annotated[AnalyticsPeriod, Query(description="Rollup period")] = AnalyticsPeriod.WEEKLY,
    start_date: Annotated[datetime | None, Query(description="Earliest window start")] = None,
    end_date: Annotated[datetime | None, Query(description="Latest window end")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> CourseAnalyticsResponse:
    return await AnalyticsService(db).get_course_analytics(
        course_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )


@router.get(
    "/courses/{course_id}/dropoff",
    response_model=DropoffResponse,
    summary="Course dropoff",
)
async def course_dropoff(
    course_id: str,
    start_date: Annotated[datetime | None, Query(description="Earliest event time")] = None,
    end_date: Annotated[datetime | None, Query(description="Latest event time")] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> DropoffResponse:
    return await AnalyticsService(db).get_course_dropoff(
        course_id,
        start_date=start_date,
        end_date=end_date,
    )
