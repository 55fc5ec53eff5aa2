# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the Upskill API.

Example:
    uvicorn upskill.api.app:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from upskill import __version__
from upskill.api.middleware.auth import AuthMiddleware
from upskill.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from upskill.api.middleware.request_context import RequestContextMiddleware
from upskill.api.routes import health
from upskill.api.v1 import router as v1_router
from upskill.core.config import get_settings
from upskill.infrastructure.database.connection import close_database, init_database
from upskill.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Initializes the database engine on startup and disposes it on
    shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    logger.info(
        "Starting Upskill API: environment=%s, debug=%s",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    try:
        await init_database(settings)
        logger.info("Database connection initialized")
    except Exception as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await close_database()
        logger.info("Database connection closed")
    except Exception as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down Upskill API")


# =========================================================================
# Error responses
# =========================================================================


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as ``{"error": detail}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures as 400 with the failing fields."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and hide their details from the client."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Upskill API",
        description="Learning platform backend for organizations",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Redirects from /path to /path/ drop the Authorization header
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.limiter = limiter

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    app.add_middleware(AuthMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    app.add_middleware(RequestContextMiddleware)

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
