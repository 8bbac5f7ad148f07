# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Path identifier validation shared by the v1 routers."""

from uuid import UUID

from fastapi import HTTPException, status


def parse_id(value: str, label: str) -> str:
    """Return the canonical form of a UUID path parameter.

    Raises:
        HTTPException: 400 when the value is not a UUID.
    """
    try:
        return str(UUID(value))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label}: {value}",
        )
