# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only closure preview.

Runs the grade aggregation and the promotion decision for every inscription
of a period without writing anything, so administrators can review the
outcome before closing. Students with the most failed subjects come first.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.core.config import ClosureSettings
from school_closure.domains.grading import GradeAggregator, GradeAggregatorError
from school_closure.domains.period_closure.exceptions import PeriodNotFoundError
from school_closure.domains.period_closure.parameters import resolve_parameters
from school_closure.domains.promotion import PromotionDecisionEngine, PromotionEngineError
from school_closure.infrastructure.database.models import (
    Grade,
    Inscription,
    SchoolPeriod,
    Student,
)
from school_closure.models.period_closure import PreviewOutcome
from school_closure.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ClosurePreviewService:
    """Service computing predicted outcomes of a period.

    Attributes:
        db: Async database session. Never written to.
        settings: Fallback closure settings.
    """

    def __init__(self, db: AsyncSession, settings: ClosureSettings | None = None) -> None:
        self.db = db
        self.settings = settings
        self.aggregator = GradeAggregator(db)
        self.engine = PromotionDecisionEngine(db)

    async def preview(self, period_id: str) -> list[PreviewOutcome]:
        """Predict the outcome of every student of a period.

        Students whose data cannot be evaluated are logged and left out.

        Args:
            period_id: Period to preview.

        Returns:
            Predicted outcomes sorted by failed subjects, most first.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        period = await self.db.get(SchoolPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)

        params = await resolve_parameters(self.db, self.settings)
        now = utc_now()

        result = await self.db.execute(
            select(Inscription, Student, Grade)
            .join(Student, Student.id == Inscription.student_id)
            .join(Grade, Grade.id == Inscription.grade_id)
            .where(Inscription.school_period_id == period_id)
            .order_by(Student.last_name, Student.first_name, Inscription.id)
        )

        outcomes: list[PreviewOutcome] = []
        for inscription, student, grade in result.all():
            try:
                summary = await self.aggregator.calculate(
                    inscription.id, min_approval=params.min_approval, persist=False
                )
                decision = await self.engine.evaluate(
                    inscription.id, summary, params, now=now, persist=False
                )
            except (GradeAggregatorError, PromotionEngineError) as e:
                logger.warning("Preview skipped inscription %s: %s", inscription.id, e)
                continue

            promotion_grade = decision.promotion_grade
            outcomes.append(
                PreviewOutcome(
                    inscription_id=inscription.id,
                    student_id=student.id,
                    student_name=student.full_name,
                    grade_id=grade.id,
                    grade_name=grade.name,
                    section_id=inscription.section_id,
                    final_average=decision.final_average,
                    failed_subjects=decision.failed_subjects,
                    status=decision.status,
                    promotion_grade_id=decision.promotion_grade_id,
                    promotion_grade_name=promotion_grade.name if promotion_grade else None,
                    graduated=decision.graduated,
                    failed_subject_ids=[r.subject_id for r in decision.pending_subjects],
                )
            )

        outcomes.sort(key=lambda outcome: outcome.failed_subjects, reverse=True)
        logger.info("Previewed %d students of period %s", len(outcomes), period_id)
        return outcomes
