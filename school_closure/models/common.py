# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enumerations.

The string values are the ones persisted in the database and exposed by the
API; they follow the school's Spanish vocabulary.
"""

from enum import Enum


class SubjectStatus(str, Enum):
    """Result of one subject after aggregation."""

    APPROVED = "aprobada"
    FAILED = "reprobada"


class OutcomeStatus(str, Enum):
    """Promotion decision for one inscription."""

    APPROVED = "aprobado"
    PENDING_SUBJECTS = "materias_pendientes"
    FAILED = "reprobado"


class PendingSubjectStatus(str, Enum):
    """Lifecycle of a subject owed across periods."""

    PENDING = "pendiente"
    APPROVED = "aprobada"
    VALIDATED = "convalidada"


class ClosureStatus(str, Enum):
    """State of a period closure run."""

    DRAFT = "draft"
    VALIDATING = "validating"
    CLOSED = "closed"
    FAILED = "failed"


class ChecklistStatus(str, Enum):
    """Council checklist state for one grade/section/term."""

    OPEN = "open"
    IN_REVIEW = "in_review"
    DONE = "done"


class Escolaridad(str, Enum):
    """Schooling status of an inscription."""

    REGULAR = "regular"
    REPEATER = "repitiente"
    PENDING_SUBJECT = "materia_pendiente"


RESOLVABLE_PENDING_STATUSES = frozenset(
    {PendingSubjectStatus.APPROVED, PendingSubjectStatus.VALIDATED}
)
