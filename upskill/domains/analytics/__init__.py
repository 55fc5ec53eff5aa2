# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning analytics domain.

This package provides:
- EventTracker: append and query learning events
- AnalyticsAggregator: organization rollups and live engagement
- AnalyticsService: course, dropoff, learner and heatmap reports
"""

from upskill.domains.analytics.aggregator import (
    AnalyticsAggregator,
    AnalyticsServiceError,
    OrganizationNotFoundError,
)
from upskill.domains.analytics.events import EventTracker
from upskill.domains.analytics.service import AnalyticsService

__all__ = [
    "AnalyticsAggregator",
    "AnalyticsService",
    "AnalyticsServiceError",
    "EventTracker",
    "OrganizationNotFoundError",
]
