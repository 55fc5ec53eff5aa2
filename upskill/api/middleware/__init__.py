# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

This package provides middleware for request processing:
- AuthMiddleware: JWT verification of identity provider tokens.
- RequestContextMiddleware: Per-request logging context.
- limiter: slowapi rate limiter shared by the routers.
"""

from upskill.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from upskill.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from upskill.api.middleware.request_context import RequestContextMiddleware

__all__ = [
    "AuthMiddleware",
    "CurrentUser",
    "get_current_user",
    "RequestContextMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
]
