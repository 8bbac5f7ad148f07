# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware package."""

from school_closure.api.middleware.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
)

__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
]
