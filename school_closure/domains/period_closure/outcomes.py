# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read model for persisted outcomes and pending subjects of a period.

This module provides the PeriodOutcomeService class for:
- Listing the promotion outcomes of a period, optionally by status
- Listing the subjects owed into a period
- Resolving an owed subject
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from school_closure.domains.pending_subject import PendingSubjectTracker
from school_closure.domains.period_closure.exceptions import PeriodNotFoundError
from school_closure.infrastructure.database.models import (
    Grade,
    Inscription,
    PendingSubject,
    SchoolPeriod,
    Section,
    Student,
    StudentPeriodOutcome,
    Subject,
)
from school_closure.models.common import OutcomeStatus, PendingSubjectStatus
from school_closure.models.period_outcome import OutcomeResponse, PendingSubjectResponse

logger = logging.getLogger(__name__)


class PeriodOutcomeService:
    """Service reading closure results.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_outcomes(
        self,
        period_id: str,
        status: OutcomeStatus | None = None,
    ) -> list[OutcomeResponse]:
        """List the outcomes of a period's inscriptions, most failed subjects first.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        await self._ensure_period(period_id)

        promotion_grade = aliased(Grade)
        query = (
            select(StudentPeriodOutcome, Inscription, Student, Grade, Section, promotion_grade)
            .join(Inscription, Inscription.id == StudentPeriodOutcome.inscription_id)
            .join(Student, Student.id == Inscription.student_id)
            .join(Grade, Grade.id == Inscription.grade_id)
            .outerjoin(Section, Section.id == Inscription.section_id)
            .outerjoin(promotion_grade, promotion_grade.id == StudentPeriodOutcome.promotion_grade_id)
            .where(Inscription.school_period_id == period_id)
            .order_by(StudentPeriodOutcome.failed_subjects.desc(), Student.last_name)
        )
        if status is not None:
            query = query.where(StudentPeriodOutcome.status == status.value)

        result = await self.db.execute(query)
        return [
            OutcomeResponse(
                id=outcome.id,
                inscription_id=inscription.id,
                student_id=student.id,
                student_name=student.full_name,
                grade_id=grade.id,
                grade_name=grade.name,
                section_id=section.id if section else None,
                section_name=section.name if section else None,
                final_average=outcome.final_average,
                failed_subjects=outcome.failed_subjects,
                status=outcome.status,
                promotion_grade_id=outcome.promotion_grade_id,
                promotion_grade_name=target.name if target else None,
                graduated_at=outcome.graduated_at,
                metadata=outcome.outcome_metadata,
            )
            for outcome, inscription, student, grade, section, target in result.all()
        ]

    async def get_pending_subjects(self, period_id: str) -> list[PendingSubjectResponse]:
        """List the subjects owed by inscriptions of a period.

        Raises:
            PeriodNotFoundError: If the period does not exist.
        """
        await self._ensure_period(period_id)

        result = await self.db.execute(
            select(PendingSubject, Subject, Student)
            .join(Inscription, Inscription.id == PendingSubject.new_inscription_id)
            .join(Student, Student.id == Inscription.student_id)
            .outerjoin(Subject, Subject.id == PendingSubject.subject_id)
            .where(Inscription.school_period_id == period_id)
            .order_by(PendingSubject.status.asc(), PendingSubject.updated_at.desc())
        )
        return [
            self._pending_response(pending, subject, student)
            for pending, subject, student in result.all()
        ]

    async def resolve_pending_subject(
        self,
        pending_subject_id: str,
        status: PendingSubjectStatus | str,
    ) -> PendingSubjectResponse:
        """Resolve an owed subject and return it.

        Raises:
            PendingSubjectNotFoundError: If the pending subject does not exist.
            InvalidPendingStatusError: If status is not aprobada/convalidada.
        """
        pending = await PendingSubjectTracker(self.db).resolve(pending_subject_id, status)

        subject = await self.db.get(Subject, pending.subject_id)
        result = await self.db.execute(
            select(Student)
            .join(Inscription, Inscription.student_id == Student.id)
            .where(Inscription.id == pending.new_inscription_id)
        )
        return self._pending_response(pending, subject, result.scalar_one_or_none())

    @staticmethod
    def _pending_response(
        pending: PendingSubject,
        subject: Subject | None,
        student: Student | None,
    ) -> PendingSubjectResponse:
        return PendingSubjectResponse(
            id=pending.id,
            new_inscription_id=pending.new_inscription_id,
            subject_id=pending.subject_id,
            subject_name=subject.name if subject else None,
            student_id=student.id if student else None,
            student_name=student.full_name if student else None,
            origin_period_id=pending.origin_period_id,
            status=pending.status,
            resolved_at=pending.resolved_at,
            updated_at=pending.updated_at,
        )

    async def _ensure_period(self, period_id: str) -> None:
        if await self.db.get(SchoolPeriod, period_id) is None:
            raise PeriodNotFoundError(period_id)
