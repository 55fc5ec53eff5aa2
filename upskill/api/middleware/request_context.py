# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request context middleware.

Binds a request id, the method and the path to the structlog context
for the duration of each request and echoes the id back in the
``X-Request-ID`` response header.
"""

import logging
import time
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from upskill.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind per-request logging context."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id

        clear_context()
        bind_context(request_id=request_id, method=request.method, path=request.url.path)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            logger.debug(
                "%s %s -> %d in %.1fms",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - start) * 1000,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()
