# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lesson progress and quiz domain package."""

from upskill.domains.progress.service import (
    ProgressCourseNotFoundError,
    ProgressService,
    ProgressServiceError,
)

__all__ = [
    "ProgressService",
    "ProgressServiceError",
    "ProgressCourseNotFoundError",
]
