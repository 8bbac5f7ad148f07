# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Closure dashboard status and council checklists."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.domains.period_closure.exceptions import PeriodNotFoundError
from school_closure.domains.period_closure.parameters import find_next_period
from school_closure.infrastructure.database.models import (
    CouncilChecklist,
    PeriodClosure,
    SchoolPeriod,
    Term,
)
from school_closure.models.common import ChecklistStatus
from school_closure.models.period_closure import (
    ChecklistProgress,
    ClosureStatusResponse,
    ClosureSummary,
    CouncilChecklistRequest,
    CouncilChecklistResponse,
    PeriodSummary,
)
from school_closure.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ClosureStatusService:
    """Service for the closure dashboard.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_status(self, period_id: str) -> ClosureStatusResponse:
        """Summarize how ready a period is to be closed.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        period = await self._get_period(period_id)

        closure_result = await self.db.execute(
            select(PeriodClosure)
            .where(PeriodClosure.school_period_id == period_id)
            .order_by(PeriodClosure.created_at.desc())
            .limit(1)
        )
        closure = closure_result.scalar_one_or_none()

        checklist_result = await self.db.execute(
            select(CouncilChecklist.status, func.count(CouncilChecklist.id))
            .where(CouncilChecklist.school_period_id == period_id)
            .group_by(CouncilChecklist.status)
        )
        checklist_counts = {status: count for status, count in checklist_result.all()}

        terms_result = await self.db.execute(
            select(Term.is_blocked).where(Term.school_period_id == period_id)
        )
        blocked_flags = list(terms_result.scalars().all())

        next_period = await find_next_period(self.db, period)

        return ClosureStatusResponse(
            period=PeriodSummary.model_validate(period),
            closure=ClosureSummary.model_validate(closure) if closure else None,
            checklist=ChecklistProgress(
                done=checklist_counts.get(ChecklistStatus.DONE.value, 0),
                total=sum(checklist_counts.values()),
            ),
            blocked_terms=sum(1 for blocked in blocked_flags if blocked),
            total_terms=len(blocked_flags),
            next_period=PeriodSummary.model_validate(next_period) if next_period else None,
        )

    async def upsert_checklist_entry(
        self,
        period_id: str,
        request: CouncilChecklistRequest,
    ) -> CouncilChecklistResponse:
        """Create or update the checklist of a grade/section/term.

        Marking an entry done records who completed it and when; any other
        status clears both.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        await self._get_period(period_id)

        result = await self.db.execute(
            select(CouncilChecklist).where(
                CouncilChecklist.school_period_id == period_id,
                CouncilChecklist.grade_id == request.grade_id,
                CouncilChecklist.section_id == request.section_id,
                CouncilChecklist.term_id == request.term_id,
            )
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = CouncilChecklist(
                school_period_id=period_id,
                grade_id=request.grade_id,
                section_id=request.section_id,
                term_id=request.term_id,
            )
            self.db.add(entry)

        entry.status = request.status.value
        if request.status == ChecklistStatus.DONE:
            entry.completed_by = request.completed_by
            entry.completed_at = utc_now()
        else:
            entry.completed_by = None
            entry.completed_at = None

        await self.db.flush()
        logger.info(
            "Council checklist %s of period %s set to %s",
            entry.id,
            period_id,
            entry.status,
        )
        return CouncilChecklistResponse.model_validate(entry)

    async def _get_period(self, period_id: str) -> SchoolPeriod:
        period = await self.db.get(SchoolPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        return period
