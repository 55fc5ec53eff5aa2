# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for Upskill.

Settings are Pydantic-based and loaded from environment variables.

Example:
    >>> from upskill.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from upskill.core.config.settings import (
    AnalyticsSettings,
    APISettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    RateLimitSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "JWTSettings",
    "RateLimitSettings",
    "CORSSettings",
    "APISettings",
    "AnalyticsSettings",
]
