# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization domain package."""

from upskill.domains.organization.activity import ActivityService
from upskill.domains.organization.service import (
    OrganizationNotFoundError,
    OrganizationService,
    OrganizationServiceError,
    SlugExistsError,
)

__all__ = [
    "ActivityService",
    "OrganizationService",
    "OrganizationServiceError",
    "OrganizationNotFoundError",
    "SlugExistsError",
]
