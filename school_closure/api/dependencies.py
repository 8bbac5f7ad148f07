# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get the closure settings

Example:
    @router.get("/{period_id}/status")
    async def get_status(
        db: AsyncSession = Depends(get_db),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.core.config import ClosureSettings, get_settings
from school_closure.infrastructure.database.connection import (
    close_database,
    get_session,
    init_database,
)

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session.

    The session commits when the request succeeds and rolls back
    otherwise.

    Yields:
        AsyncSession for the school database.
    """
    async with get_session() as session:
        yield session


def get_closure_settings() -> ClosureSettings:
    """Get the configured closure fallbacks."""
    return get_settings().closure

