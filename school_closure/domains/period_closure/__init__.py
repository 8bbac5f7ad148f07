# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period closure domain package.

This package provides period closure functionality including:
- Closure validation and transactional execution
- Read-only outcome preview
- Dashboard status and council checklists
- Outcome and pending subject listings
"""

from school_closure.domains.period_closure.exceptions import (
    NextPeriodNotFoundError,
    PeriodAlreadyClosedError,
    PeriodClosureError,
    PeriodNotFoundError,
)
from school_closure.domains.period_closure.orchestrator import (
    ClosureOrchestrator,
    ResultKind,
    StudentClosureResult,
    accumulate,
    escolaridad_for,
)
from school_closure.domains.period_closure.outcomes import PeriodOutcomeService
from school_closure.domains.period_closure.parameters import (
    ClosureParameters,
    find_next_period,
    resolve_parameters,
)
from school_closure.domains.period_closure.preview import ClosurePreviewService
from school_closure.domains.period_closure.status import ClosureStatusService

__all__ = [
    "ClosureOrchestrator",
    "ClosureParameters",
    "ClosurePreviewService",
    "ClosureStatusService",
    "NextPeriodNotFoundError",
    "PeriodAlreadyClosedError",
    "PeriodClosureError",
    "PeriodNotFoundError",
    "PeriodOutcomeService",
    "ResultKind",
    "StudentClosureResult",
    "accumulate",
    "escolaridad_for",
    "find_next_period",
    "resolve_parameters",
]
