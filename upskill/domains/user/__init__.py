# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User domain package."""

from upskill.domains.user.service import (
    UserNotFoundError,
    UserService,
    UserServiceError,
    generate_api_key,
)

__all__ = [
    "UserService",
    "UserServiceError",
    "UserNotFoundError",
    "generate_api_key",
]
