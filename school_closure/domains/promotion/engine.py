# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Promotion decision engine.

Turns a GradeSummary into a StudentPeriodOutcome:

    failed == 0 and average >= min_average  -> aprobado
    failed > max_failed                     -> reprobado
    otherwise                               -> materias_pendientes

A failed student stays in the current grade. Everyone else moves to the
transition rule's destination grade, or the catalog grade that follows the
current one. Approved students with nowhere to go (or whose rule says so)
graduate.

A subject the student already owed into this inscription and failed again
forces reprobado, and the student returns to the grade where the subject
was first owed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.domains.grading import GradeSummary, InscriptionNotFoundError, SubjectResult
from school_closure.infrastructure.database.models import (
    Grade,
    Inscription,
    PendingSubject,
    SchoolPeriod,
    StudentPeriodOutcome,
    TransitionRule,
)
from school_closure.models.common import OutcomeStatus, PendingSubjectStatus
from school_closure.utils.datetime import format_iso, utc_now

if TYPE_CHECKING:
    from school_closure.domains.period_closure.parameters import ClosureParameters

logger = logging.getLogger(__name__)


class PromotionEngineError(Exception):
    """Base exception for promotion decision errors."""

    pass


@dataclass(frozen=True)
class PromotionDecision:
    """Decision for one inscription.

    outcome is the persisted row, or None when evaluated without persisting.
    """

    inscription_id: str
    status: OutcomeStatus
    final_average: float | None
    failed_subjects: int
    promotion_grade_id: str | None
    graduated_at: datetime | None
    pending_subjects: tuple[SubjectResult, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    promotion_grade: Grade | None = None
    outcome: StudentPeriodOutcome | None = None

    @property
    def graduated(self) -> bool:
        return self.graduated_at is not None


def determine_status(
    failed_subjects: int,
    final_average: float | None,
    min_average: float,
    max_failed_subjects: int,
) -> OutcomeStatus:
    """Classify an inscription from its failed subjects and average.

    A missing average (no subjects) counts as 0.
    """
    average = final_average if final_average is not None else 0.0

    if failed_subjects == 0 and average >= min_average:
        return OutcomeStatus.APPROVED
    if failed_subjects > max_failed_subjects:
        return OutcomeStatus.FAILED
    return OutcomeStatus.PENDING_SUBJECTS


def resolve_limits(
    rule: TransitionRule | None,
    params: "ClosureParameters",
) -> tuple[float, int]:
    """Return (min_average, max_failed_subjects) for a grade.

    The transition rule wins over the run parameters for each value it sets.
    """
    min_average = params.default_min_average
    max_failed = params.max_failed_subjects
    if rule is not None:
        if rule.min_average is not None:
            min_average = float(rule.min_average)
        if rule.max_pending_subjects is not None:
            max_failed = rule.max_pending_subjects
    return min_average, max_failed


class PromotionDecisionEngine:
    """Service deciding and storing promotion outcomes.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def evaluate(
        self,
        inscription_id: str,
        summary: GradeSummary,
        params: "ClosureParameters",
        now: datetime | None = None,
        persist: bool = True,
    ) -> PromotionDecision:
        """Decide the outcome of an inscription.

        Args:
            inscription_id: Inscription to evaluate.
            summary: Aggregated grades of the inscription.
            params: Resolved closure parameters.
            now: Evaluation timestamp, also used as graduation date.
            persist: Upsert the StudentPeriodOutcome when True.

        Returns:
            The decision with the failed subjects to carry over.

        Raises:
            InscriptionNotFoundError: If the inscription does not exist.
        """
        now = now or utc_now()

        inscription = await self.db.get(Inscription, inscription_id)
        if inscription is None:
            raise InscriptionNotFoundError(f"Inscription not found: {inscription_id}")

        rule_result = await self.db.execute(
            select(TransitionRule).where(TransitionRule.grade_from_id == inscription.grade_id)
        )
        rule = rule_result.scalar_one_or_none()

        min_average, max_failed = resolve_limits(rule, params)
        status = determine_status(
            summary.failed_subjects, summary.final_average, min_average, max_failed
        )

        failed_results = tuple(summary.failed_results)
        carry_over = await self._find_failed_carry_over(
            inscription, [r.subject_id for r in failed_results]
        )

        carry_over_subject_id = None
        if carry_over is not None:
            carry_over_subject_id = carry_over.subject_id
            status = OutcomeStatus.FAILED
            promotion_grade_id = await self._origin_grade_id(inscription, carry_over)
            logger.info(
                "Inscription %s failed owed subject %s again, returning to grade %s",
                inscription.id,
                carry_over.subject_id,
                promotion_grade_id,
            )
        elif status == OutcomeStatus.FAILED:
            promotion_grade_id = inscription.grade_id
        elif rule is not None and rule.grade_to_id is not None:
            promotion_grade_id = rule.grade_to_id
        else:
            promotion_grade_id = await self._next_grade_id(inscription.grade_id)

        graduated_at = None
        if status == OutcomeStatus.APPROVED and (
            (rule is not None and rule.auto_graduate) or promotion_grade_id is None
        ):
            graduated_at = now

        metadata = {
            "rule_id": rule.id if rule is not None else None,
            "min_average": min_average,
            "max_failed_subjects": max_failed,
            "carry_over_subject_id": carry_over_subject_id,
            "evaluated_at": format_iso(now),
        }

        outcome = None
        if persist:
            outcome = await self._store_outcome(
                inscription.id,
                summary,
                status,
                promotion_grade_id,
                graduated_at,
                metadata,
            )

        promotion_grade = None
        if promotion_grade_id is not None:
            promotion_grade = await self.db.get(Grade, promotion_grade_id)

        return PromotionDecision(
            inscription_id=inscription.id,
            status=status,
            final_average=summary.final_average,
            failed_subjects=summary.failed_subjects,
            promotion_grade_id=promotion_grade_id,
            graduated_at=graduated_at,
            pending_subjects=failed_results,
            metadata=metadata,
            promotion_grade=promotion_grade,
            outcome=outcome,
        )

    async def _find_failed_carry_over(
        self,
        inscription: Inscription,
        failed_subject_ids: list[str],
    ) -> PendingSubject | None:
        """Return the oldest owed subject that was failed again, if any."""
        if not failed_subject_ids:
            return None

        result = await self.db.execute(
            select(PendingSubject)
            .join(SchoolPeriod, SchoolPeriod.id == PendingSubject.origin_period_id)
            .where(
                PendingSubject.new_inscription_id == inscription.id,
                PendingSubject.status == PendingSubjectStatus.PENDING.value,
                PendingSubject.subject_id.in_(failed_subject_ids),
            )
            .order_by(SchoolPeriod.start_year, PendingSubject.created_at, PendingSubject.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _origin_grade_id(
        self,
        inscription: Inscription,
        pending: PendingSubject,
    ) -> str:
        """Grade the student was in when the pending subject was first owed."""
        result = await self.db.execute(
            select(Inscription.grade_id).where(
                Inscription.school_period_id == pending.origin_period_id,
                Inscription.student_id == inscription.student_id,
            )
        )
        origin_grade_id = result.scalar_one_or_none()
        if origin_grade_id is None:
            logger.warning(
                "No inscription in origin period %s for student %s, keeping current grade",
                pending.origin_period_id,
                inscription.student_id,
            )
            return inscription.grade_id
        return origin_grade_id

    async def _next_grade_id(self, grade_id: str) -> str | None:
        """Catalog grade whose order follows the given grade."""
        current = await self.db.get(Grade, grade_id)
        if current is None or current.order is None:
            return None

        result = await self.db.execute(
            select(Grade.id).where(Grade.order == current.order + 1).order_by(Grade.name).limit(1)
        )
        return result.scalar_one_or_none()

    async def _store_outcome(
        self,
        inscription_id: str,
        summary: GradeSummary,
        status: OutcomeStatus,
        promotion_grade_id: str | None,
        graduated_at: datetime | None,
        metadata: dict[str, Any],
    ) -> StudentPeriodOutcome:
        """Create or update the outcome row of an inscription."""
        result = await self.db.execute(
            select(StudentPeriodOutcome).where(
                StudentPeriodOutcome.inscription_id == inscription_id
            )
        )
        outcome = result.scalar_one_or_none()
        if outcome is None:
            outcome = StudentPeriodOutcome(inscription_id=inscription_id)
            self.db.add(outcome)

        outcome.final_average = summary.final_average
        outcome.failed_subjects = summary.failed_subjects
        outcome.status = status.value
        outcome.promotion_grade_id = promotion_grade_id
        outcome.graduated_at = graduated_at
        outcome.outcome_metadata = metadata

        await self.db.flush()
        return outcome
