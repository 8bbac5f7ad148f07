# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the period closure services.

This module defines the exception hierarchy for period closure:
- PeriodClosureError: Base exception for all closure errors
- PeriodNotFoundError: The school period does not exist
- NextPeriodNotFoundError: No inactive period follows the closing one
- PeriodAlreadyClosedError: The period already has a closed closure
"""


class PeriodClosureError(Exception):
    """Base exception for period closure errors.

    Attributes:
        message: Human-readable error description.
        period_id: Period the error refers to, when known.
    """

    def __init__(self, message: str, period_id: str | None = None):
        self.message = message
        self.period_id = period_id
        super().__init__(message)


class PeriodNotFoundError(PeriodClosureError):
    """Raised when the school period does not exist."""

    def __init__(self, period_id: str):
        super().__init__(f"Periodo escolar no encontrado: {period_id}", period_id)


class NextPeriodNotFoundError(PeriodClosureError):
    """Raised when there is no next period to roll students into."""

    def __init__(self, period_id: str):
        super().__init__("No se encontró periodo siguiente", period_id)


class PeriodAlreadyClosedError(PeriodClosureError):
    """Raised when a closed PeriodClosure already exists for the period.

    Attributes:
        closure_id: The existing closed closure.
    """

    def __init__(self, period_id: str, closure_id: str):
        self.closure_id = closure_id
        super().__init__(
            f"El periodo ya fue cerrado (cierre {closure_id}); no se puede ejecutar de nuevo",
            period_id,
        )
