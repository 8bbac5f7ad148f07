# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the school database.

Importing this package registers every table on Base.metadata, which the
Alembic environment and the test fixtures rely on.
"""

from school_closure.infrastructure.database.models.academic import (
    CouncilChecklist,
    Grade,
    PeriodGrade,
    PeriodGradeSection,
    SchoolPeriod,
    Section,
    Setting,
    Subject,
    Term,
    TransitionRule,
)
from school_closure.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDMixin,
    generate_uuid,
)
from school_closure.infrastructure.database.models.closure import (
    PendingSubject,
    PeriodClosure,
    StudentPeriodOutcome,
    SubjectFinalGrade,
)
from school_closure.infrastructure.database.models.enrollment import (
    Inscription,
    InscriptionSubject,
    Student,
)
from school_closure.infrastructure.database.models.evaluation import (
    MAX_PLAN_PERCENTAGE,
    CouncilPoint,
    EvaluationPlanItem,
    Qualification,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "generate_uuid",
    # Academic structure
    "SchoolPeriod",
    "Term",
    "Grade",
    "Section",
    "Subject",
    "PeriodGrade",
    "PeriodGradeSection",
    "Setting",
    "CouncilChecklist",
    "TransitionRule",
    # Enrollment
    "Student",
    "Inscription",
    "InscriptionSubject",
    # Evaluation
    "MAX_PLAN_PERCENTAGE",
    "EvaluationPlanItem",
    "Qualification",
    "CouncilPoint",
    # Closure
    "SubjectFinalGrade",
    "StudentPeriodOutcome",
    "PendingSubject",
    "PeriodClosure",
]
