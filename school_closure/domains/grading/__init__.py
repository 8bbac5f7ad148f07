# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grading domain package.

This package turns raw qualifications and council points into subject
final grades and an overall average per inscription.
"""

from school_closure.domains.grading.aggregator import (
    CouncilPointSnapshot,
    GradeAggregator,
    GradeAggregatorError,
    GradeSummary,
    InscriptionNotFoundError,
    InscriptionSnapshot,
    QualificationSnapshot,
    SubjectResult,
    SubjectSnapshot,
    calculate_subject,
    calculate_summary,
    term_divisor,
)

__all__ = [
    "CouncilPointSnapshot",
    "GradeAggregator",
    "GradeAggregatorError",
    "GradeSummary",
    "InscriptionNotFoundError",
    "InscriptionSnapshot",
    "QualificationSnapshot",
    "SubjectResult",
    "SubjectSnapshot",
    "calculate_subject",
    "calculate_summary",
    "term_divisor",
]
