# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics event log.

EventTracker appends learning events and queries them back. Services
that emit events as a side effect use track_safely(), which runs the
insert in a savepoint so a failed event never aborts the caller's
transaction.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from upskill.infrastructure.database.models import AnalyticsEvent
from upskill.models.analytics import (
    EventCreateRequest,
    EventListResponse,
    EventResponse,
)
from upskill.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class EventTracker:
    """Writes and reads analytics events.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _build(self, data: EventCreateRequest) -> AnalyticsEvent:
        return AnalyticsEvent(
            organization_id=data.organization_id,
            user_id=data.user_id,
            event_type=data.event_type,
            event_name=data.event_name,
            properties=dict(data.properties),
            timestamp=ensure_utc(data.timestamp) if data.timestamp else utc_now(),
            session_id=data.session_id,
        )

    async def track(self, data: EventCreateRequest) -> AnalyticsEvent:
        """Store a single event.

        Args:
            data: Event to store.

        Returns:
            The stored event row.
        """
        event = self._build(data)
        self.db.add(event)
        await self.db.flush()

        logger.debug(
            "Tracked event: type=%s, user=%s, org=%s",
            data.event_type,
            data.user_id,
            data.organization_id,
        )
        return event

    async def track_batch(self, events: list[EventCreateRequest]) -> list[AnalyticsEvent]:
        """Store a batch of events in one flush.

        Args:
            events: Events to store. Each one is already validated.

        Returns:
            Stored event rows in input order.
        """
        rows = [self._build(data) for data in events]
        self.db.add_all(rows)
        await self.db.flush()

        logger.info("Tracked %d events", len(rows))
        return rows

    async def track_safely(
        self,
        organization_id: str,
        user_id: str,
        event_type: str,
        event_name: str,
        properties: dict[str, Any] | None = None,
    ) -> AnalyticsEvent | None:
        """Store an event without letting a failure escape.

        Args:
            organization_id: Organization the event belongs to.
            user_id: Acting user.
            event_type: Event type.
            event_name: Human-readable name.
            properties: Event properties.

        Returns:
            The stored event, or None if storing failed.
        """
        data = EventCreateRequest(
            organization_id=organization_id,
            user_id=user_id,
            event_type=event_type,
            event_name=event_name,
            properties=properties or {},
        )
        try:
            async with self.db.begin_nested():
                event = self._build(data)
                self.db.add(event)
            return event
        except Exception as e:
            logger.warning(
                "Failed to track %s event for user %s: %s",
                event_type,
                user_id,
                str(e),
            )
            return None

    async def query(
        self,
        organization_id: str | None = None,
        event_type: str | None = None,
        user_id: str | None = None,
        course_id: str | None = None,
        session_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 50,
        skip: int = 0,
    ) -> EventListResponse:
        """Query events, newest first.

        Args:
            organization_id: Filter by organization.
            event_type: Filter by event type.
            user_id: Filter by acting user.
            course_id: Filter by properties.course_id.
            session_id: Filter by client session.
            start_date: Earliest timestamp, inclusive.
            end_date: Latest timestamp, inclusive.
            limit: Page size.
            skip: Rows to skip.

        Returns:
            Page of events with the total match count.
        """
        conditions = []
        if organization_id:
            conditions.append(AnalyticsEvent.organization_id == organization_id)
        if event_type:
            conditions.append(AnalyticsEvent.event_type == event_type)
        if user_id:
            conditions.append(AnalyticsEvent.user_id == user_id)
        if course_id:
            conditions.append(AnalyticsEvent.properties["course_id"].as_string() == course_id)
        if session_id:
            conditions.append(AnalyticsEvent.session_id == session_id)
        if start_date:
            conditions.append(AnalyticsEvent.timestamp >= ensure_utc(start_date))
        if end_date:
            conditions.append(AnalyticsEvent.timestamp <= ensure_utc(end_date))

        count_result = await self.db.execute(
            select(func.count()).select_from(AnalyticsEvent).where(*conditions)
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            select(AnalyticsEvent)
            .where(*conditions)
            .order_by(AnalyticsEvent.timestamp.desc())
            .offset(skip)
            .limit(limit)
        )
        events = result.scalars().all()

        return EventListResponse(
            events=[EventResponse.model_validate(event) for event in events],
            total=total,
            limit=limit,
            skip=skip,
        )
