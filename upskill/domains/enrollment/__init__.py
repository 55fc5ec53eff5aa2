# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides course enrollment management including:
- Enrollment creation, listing, status changes and deletion
- Progress derived from completed lesson progress
- Bulk enrollment for member and department defaults
"""

from upskill.domains.enrollment.progress import (
    ProgressSnapshot,
    apply_progress,
    compute_progress,
    percentage_of,
)
from upskill.domains.enrollment.service import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    EnrollmentNotFoundError,
    EnrollmentService,
    EnrollmentServiceError,
    ProgressSync,
    UserNotFoundError,
)

__all__ = [
    "EnrollmentService",
    "EnrollmentServiceError",
    "EnrollmentNotFoundError",
    "CourseNotFoundError",
    "UserNotFoundError",
    "AlreadyEnrolledError",
    "ProgressSync",
    "ProgressSnapshot",
    "apply_progress",
    "compute_progress",
    "percentage_of",
]
