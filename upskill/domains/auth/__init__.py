# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

Users sign in with the external identity provider; the API verifies the
provider's JWTs and never handles passwords.

Exports:
    JWTManager: JWT token validation.
    TokenPayload: Verified token claims.
"""

from upskill.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "JWTManager",
    "TokenPayload",
    "JWTError",
    "TokenExpiredError",
    "InvalidTokenError",
]
