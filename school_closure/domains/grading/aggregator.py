# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Final grade aggregation.

This module provides the GradeAggregator service and the pure functions it
is built on. The service loads an immutable InscriptionSnapshot with a few
explicit queries; the calculation itself never touches the session.

For each subject, every term contributes

    term_total = sum(score * percentage / 100) + sum(council points)

and the subject's final score is the sum of its term totals divided by the
number of terms of the period (1 when the period has no terms). A subject
without qualifications and council points ends at 0 and is failed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.infrastructure.database.models import (
    CouncilPoint,
    EvaluationPlanItem,
    Inscription,
    InscriptionSubject,
    Qualification,
    Subject,
    SubjectFinalGrade,
    Term,
)
from school_closure.models.common import SubjectStatus
from school_closure.utils.datetime import utc_now

logger = logging.getLogger(__name__)

DEFAULT_MIN_APPROVAL = 10.0


class GradeAggregatorError(Exception):
    """Base exception for grade aggregation errors."""

    pass


class InscriptionNotFoundError(GradeAggregatorError):
    """Raised when the inscription does not exist."""

    pass


# ============================================================================
# Snapshots
# ============================================================================


@dataclass(frozen=True)
class QualificationSnapshot:
    score: float
    percentage: float
    term_id: str


@dataclass(frozen=True)
class CouncilPointSnapshot:
    points: float
    term_id: str


@dataclass(frozen=True)
class SubjectSnapshot:
    """Everything recorded for one inscription subject."""

    inscription_subject_id: str
    subject_id: str
    subject_name: str | None = None
    qualifications: tuple[QualificationSnapshot, ...] = ()
    council_points: tuple[CouncilPointSnapshot, ...] = ()


@dataclass(frozen=True)
class InscriptionSnapshot:
    """Grading data of one inscription, detached from the session."""

    inscription_id: str
    school_period_id: str
    term_ids: tuple[str, ...] = ()
    subjects: tuple[SubjectSnapshot, ...] = ()


@dataclass(frozen=True)
class SubjectResult:
    """Final grade of one subject.

    raw_score and council_points are per-term averages of their own
    components; final_score is their sum rounded for storage. Status and
    the inscription average use the unrounded exact_score.
    """

    inscription_subject_id: str
    subject_id: str
    raw_score: float
    council_points: float
    final_score: float
    status: SubjectStatus
    subject_name: str | None = None
    exact_score: float | None = None

    @property
    def failed(self) -> bool:
        return self.status == SubjectStatus.FAILED


@dataclass(frozen=True)
class GradeSummary:
    """Aggregate of an inscription's subject results."""

    final_average: float | None
    failed_subjects: int
    subject_results: tuple[SubjectResult, ...] = field(default_factory=tuple)

    @property
    def failed_results(self) -> list[SubjectResult]:
        return [result for result in self.subject_results if result.failed]


# ============================================================================
# Pure calculation
# ============================================================================


def term_divisor(term_count: int) -> int:
    """Number of terms a subject total is averaged over.

    A period without terms divides by 1, which turns the average into a
    plain sum.
    """
    return term_count if term_count > 0 else 1


def calculate_subject(
    subject: SubjectSnapshot,
    term_count: int,
    min_approval: float = DEFAULT_MIN_APPROVAL,
) -> SubjectResult:
    """Compute the final grade of one subject."""
    divisor = term_divisor(term_count)

    raw_by_term: dict[str, float] = defaultdict(float)
    for qualification in subject.qualifications:
        raw_by_term[qualification.term_id] += qualification.score * (
            qualification.percentage / 100
        )

    council_by_term: dict[str, float] = defaultdict(float)
    for point in subject.council_points:
        council_by_term[point.term_id] += point.points

    raw_total = sum(raw_by_term.values())
    council_total = sum(council_by_term.values())

    score = (raw_total + council_total) / divisor
    status = SubjectStatus.APPROVED if score >= min_approval else SubjectStatus.FAILED

    return SubjectResult(
        inscription_subject_id=subject.inscription_subject_id,
        subject_id=subject.subject_id,
        subject_name=subject.subject_name,
        raw_score=round(raw_total / divisor, 2),
        council_points=round(council_total / divisor, 2),
        final_score=round(score, 2),
        status=status,
        exact_score=score,
    )


def calculate_summary(
    snapshot: InscriptionSnapshot,
    min_approval: float = DEFAULT_MIN_APPROVAL,
) -> GradeSummary:
    """Compute every subject result and the overall average of an inscription."""
    term_count = len(snapshot.term_ids)
    results = tuple(
        calculate_subject(subject, term_count, min_approval) for subject in snapshot.subjects
    )

    final_average = None
    if results:
        scores = [r.final_score if r.exact_score is None else r.exact_score for r in results]
        final_average = round(sum(scores) / len(scores), 2)

    return GradeSummary(
        final_average=final_average,
        failed_subjects=sum(1 for r in results if r.failed),
        subject_results=results,
    )


# ============================================================================
# Service
# ============================================================================


class GradeAggregator:
    """Service computing and storing subject final grades.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_snapshot(self, inscription_id: str) -> InscriptionSnapshot:
        """Load the grading data of an inscription.

        Raises:
            InscriptionNotFoundError: If the inscription does not exist.
        """
        inscription = await self.db.get(Inscription, inscription_id)
        if inscription is None:
            raise InscriptionNotFoundError(f"Inscription not found: {inscription_id}")

        terms_result = await self.db.execute(
            select(Term.id)
            .where(Term.school_period_id == inscription.school_period_id)
            .order_by(Term.order)
        )
        term_ids = tuple(terms_result.scalars().all())

        subjects_result = await self.db.execute(
            select(InscriptionSubject.id, InscriptionSubject.subject_id, Subject.name)
            .join(Subject, Subject.id == InscriptionSubject.subject_id)
            .where(InscriptionSubject.inscription_id == inscription_id)
            .order_by(Subject.name, InscriptionSubject.id)
        )
        subject_rows = subjects_result.all()
        inscription_subject_ids = [row.id for row in subject_rows]

        qualifications: dict[str, list[QualificationSnapshot]] = defaultdict(list)
        council_points: dict[str, list[CouncilPointSnapshot]] = defaultdict(list)

        if inscription_subject_ids:
            qualification_result = await self.db.execute(
                select(
                    Qualification.inscription_subject_id,
                    Qualification.score,
                    EvaluationPlanItem.percentage,
                    EvaluationPlanItem.term_id,
                )
                .join(
                    EvaluationPlanItem,
                    EvaluationPlanItem.id == Qualification.evaluation_plan_item_id,
                )
                .where(Qualification.inscription_subject_id.in_(inscription_subject_ids))
                .order_by(Qualification.id)
            )
            for row in qualification_result.all():
                qualifications[row.inscription_subject_id].append(
                    QualificationSnapshot(
                        score=float(row.score or 0),
                        percentage=float(row.percentage or 0),
                        term_id=row.term_id,
                    )
                )

            points_result = await self.db.execute(
                select(CouncilPoint.inscription_subject_id, CouncilPoint.points, CouncilPoint.term_id)
                .where(CouncilPoint.inscription_subject_id.in_(inscription_subject_ids))
                .order_by(CouncilPoint.id)
            )
            for row in points_result.all():
                council_points[row.inscription_subject_id].append(
                    CouncilPointSnapshot(points=float(row.points or 0), term_id=row.term_id)
                )

        subjects = tuple(
            SubjectSnapshot(
                inscription_subject_id=row.id,
                subject_id=row.subject_id,
                subject_name=row.name,
                qualifications=tuple(qualifications.get(row.id, ())),
                council_points=tuple(council_points.get(row.id, ())),
            )
            for row in subject_rows
        )

        return InscriptionSnapshot(
            inscription_id=inscription.id,
            school_period_id=inscription.school_period_id,
            term_ids=term_ids,
            subjects=subjects,
        )

    async def calculate(
        self,
        inscription_id: str,
        min_approval: float = DEFAULT_MIN_APPROVAL,
        persist: bool = True,
        now: datetime | None = None,
    ) -> GradeSummary:
        """Compute the final grades of an inscription.

        Args:
            inscription_id: Inscription to aggregate.
            min_approval: Minimum final score to pass a subject.
            persist: Upsert one SubjectFinalGrade per subject when True.
            now: Calculation timestamp stored on the final grades.

        Returns:
            Grade summary with one result per subject.

        Raises:
            InscriptionNotFoundError: If the inscription does not exist.
        """
        snapshot = await self.load_snapshot(inscription_id)
        summary = calculate_summary(snapshot, min_approval)

        if persist:
            await self._store_final_grades(summary.subject_results, now or utc_now())

        logger.debug(
            "Aggregated inscription %s: average=%s failed=%d",
            inscription_id,
            summary.final_average,
            summary.failed_subjects,
        )
        return summary

    async def _store_final_grades(
        self,
        results: tuple[SubjectResult, ...],
        calculated_at: datetime,
    ) -> None:
        """Upsert one SubjectFinalGrade per subject result."""
        if not results:
            return

        existing_result = await self.db.execute(
            select(SubjectFinalGrade).where(
                SubjectFinalGrade.inscription_subject_id.in_(
                    [r.inscription_subject_id for r in results]
                )
            )
        )
        existing = {
            grade.inscription_subject_id: grade for grade in existing_result.scalars().all()
        }

        for result in results:
            final_grade = existing.get(result.inscription_subject_id)
            if final_grade is None:
                final_grade = SubjectFinalGrade(inscription_subject_id=result.inscription_subject_id)
                self.db.add(final_grade)
            final_grade.raw_score = result.raw_score
            final_grade.council_points = result.council_points
            final_grade.final_score = result.final_score
            final_grade.status = result.status.value
            final_grade.calculated_at = calculated_at

        await self.db.flush()
