# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the school database.

This package provides the SQLAlchemy async engine and session management
and the ORM models of the academic structure, enrollment, evaluation and
closure tables.

Example:
    from school_closure.infrastructure.database import get_session
    from school_closure.infrastructure.database.models import SchoolPeriod

    async with get_session() as session:
        result = await session.execute(select(SchoolPeriod))
"""

from school_closure.infrastructure.database.connection import (
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
