# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course domain package.

This package provides course management and helpers for the
module/lesson tree embedded in each course.
"""

from upskill.domains.course.service import (
    CourseNotFoundError,
    CourseOrganizationNotFoundError,
    CourseService,
    CourseServiceError,
)

__all__ = [
    "CourseService",
    "CourseServiceError",
    "CourseNotFoundError",
    "CourseOrganizationNotFoundError",
]
