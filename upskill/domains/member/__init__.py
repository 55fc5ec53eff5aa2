# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization member domain package."""

from upskill.domains.member.service import (
    GENERAL_DEPARTMENT,
    MemberDepartmentNotFoundError,
    MemberExistsError,
    MemberNotFoundError,
    MemberService,
    MemberServiceError,
    MemberValidationError,
    is_valid_email,
    normalize_email,
)

__all__ = [
    "MemberService",
    "MemberServiceError",
    "MemberNotFoundError",
    "MemberExistsError",
    "MemberValidationError",
    "MemberDepartmentNotFoundError",
    "GENERAL_DEPARTMENT",
    "is_valid_email",
    "normalize_email",
]
