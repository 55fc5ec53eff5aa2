# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

This package provides the SQLAlchemy async engine and sessions used by
every domain service. Organizations share one database; rows are scoped
by their organization_id column.

Example:
    from upskill.infrastructure.database import get_session

    async with get_session() as session:
        result = await session.execute(select(Course))
"""

from upskill.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
