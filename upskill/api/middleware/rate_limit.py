# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Rate limiting using slowapi.

Rate limits are applied per client: the authenticated caller when there
is one, otherwise the remote address.

Example:
    # Limit bulk imports
    @limiter.limit(RATE_LIMIT_BULK)
    async def bulk_import(request: Request, ...):
        ...
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from upskill.core.config import get_settings

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """Get a unique identifier for the client.

    Args:
        request: HTTP request.

    Returns:
        Client identifier string.
    """
    user = getattr(request.state, "user", None)
    if user:
        return f"user:{user.id}"
    return f"ip:{get_remote_address(request)}"


settings = get_settings()
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit.requests_per_minute}/minute"],
    storage_uri=settings.rate_limit.storage_uri,
    enabled=settings.rate_limit.enabled,
)


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Return 429 Too Many Requests with retry information.

    Args:
        request: HTTP request.
        exc: Rate limit exceeded exception.

    Returns:
        JSON response with error details.
    """
    logger.warning(
        "Rate limit exceeded: %s for %s",
        exc.detail,
        get_client_identifier(request),
    )

    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests. Please try again later."},
        headers={
            "Retry-After": str(getattr(exc, "retry_after", 60)),
            "X-RateLimit-Limit": str(settings.rate_limit.requests_per_minute),
        },
    )


# Limits for expensive endpoints
RATE_LIMIT_BULK = "10/minute"  # Bulk member imports
RATE_LIMIT_AGGREGATE = "30/minute"  # Analytics rollups
