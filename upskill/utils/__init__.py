# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for Upskill.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from upskill.utils.datetime import (
    days_ago,
    days_between,
    end_of_day,
    ensure_utc,
    format_day,
    format_iso,
    now,
    parse_iso,
    start_of_day,
    utc_now,
)
from upskill.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "now",
    "ensure_utc",
    "start_of_day",
    "end_of_day",
    "days_ago",
    "days_between",
    "format_day",
    "format_iso",
    "parse_iso",
]
