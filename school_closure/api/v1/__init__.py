# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    period_closure: Closure status, checklist, validation, preview and execution.
    period_outcomes: Outcomes and pending subjects of a period.
"""

from fastapi import APIRouter

from school_closure.api.v1 import period_closure, period_outcomes

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(period_closure.router, prefix="/period-closure", tags=["Period Closure"])
router.include_router(period_outcomes.router, prefix="/period-outcomes", tags=["Period Outcomes"])

__all__ = ["router"]
