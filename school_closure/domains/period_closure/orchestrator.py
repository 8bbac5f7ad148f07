# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period closure orchestration.

This module provides the ClosureOrchestrator class for:
- Validating that a period can be closed
- Closing a period: grading, deciding and rolling every student into the
  next period inside a single transaction

Each student is processed inside its own savepoint and folded into a
StudentClosureResult (success, skipped or failed). A failing student only
rolls back its own savepoint; anything else aborts and rolls back the whole
closure.

Example:
    orchestrator = ClosureOrchestrator(db)
    validation = await orchestrator.validate(period_id)
    if validation.valid:
        result = await orchestrator.execute(period_id, initiated_by=user_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.core.config import ClosureSettings
from school_closure.domains.grading import GradeAggregator, GradeAggregatorError
from school_closure.domains.pending_subject import (
    PendingSubjectServiceError,
    PendingSubjectTracker,
)
from school_closure.domains.period_closure.exceptions import (
    NextPeriodNotFoundError,
    PeriodAlreadyClosedError,
    PeriodClosureError,
)
from school_closure.domains.period_closure.parameters import (
    ClosureParameters,
    find_next_period,
    resolve_parameters,
)
from school_closure.domains.promotion import (
    PromotionDecision,
    PromotionDecisionEngine,
    PromotionEngineError,
)
from school_closure.infrastructure.database.models import (
    CouncilChecklist,
    Inscription,
    PeriodClosure,
    PeriodGrade,
    PeriodGradeSection,
    SchoolPeriod,
    Term,
)
from school_closure.models.common import (
    ChecklistStatus,
    ClosureStatus,
    Escolaridad,
    OutcomeStatus,
)
from school_closure.models.period_closure import (
    ClosureExecutionResult,
    ClosureStats,
    ClosureValidationResult,
)
from school_closure.utils.datetime import time_since, utc_now
from school_closure.utils.logging import get_logger

logger = get_logger(__name__)

# Errors that fail a single student instead of the whole closure
STUDENT_ERRORS = (
    GradeAggregatorError,
    PromotionEngineError,
    PendingSubjectServiceError,
    IntegrityError,
    DataError,
)

_ESCOLARIDAD_BY_STATUS = {
    OutcomeStatus.FAILED: Escolaridad.REPEATER,
    OutcomeStatus.PENDING_SUBJECTS: Escolaridad.PENDING_SUBJECT,
    OutcomeStatus.APPROVED: Escolaridad.REGULAR,
}


def escolaridad_for(status: OutcomeStatus) -> Escolaridad:
    """Schooling status of the next-period inscription."""
    return _ESCOLARIDAD_BY_STATUS.get(status, Escolaridad.REGULAR)


class ResultKind(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StudentClosureResult:
    """What happened to one inscription during a closure."""

    kind: ResultKind
    inscription_id: str
    student_id: str
    status: OutcomeStatus | None = None
    old_grade_id: str | None = None
    new_grade_id: str | None = None
    final_average: float | None = None
    failed_subjects: int = 0
    new_inscription_id: str | None = None
    pending_subjects_count: int = 0
    graduated: bool = False
    error: str | None = None

    @classmethod
    def failure(cls, inscription: Inscription, error: Exception) -> "StudentClosureResult":
        return cls(
            kind=ResultKind.FAILED,
            inscription_id=inscription.id,
            student_id=inscription.student_id,
            old_grade_id=inscription.grade_id,
            error=str(error),
        )

    def to_log_entry(self) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "inscription_id": self.inscription_id,
            "student_id": self.student_id,
            "result": self.kind.value,
        }
        if self.kind == ResultKind.FAILED:
            entry.update(error=self.error, failed=True)
            return entry

        entry.update(
            old_grade_id=self.old_grade_id,
            new_grade_id=self.new_grade_id,
            status=self.status.value if self.status else None,
            final_average=self.final_average,
            failed_subjects=self.failed_subjects,
        )
        if self.kind == ResultKind.SKIPPED:
            entry.update(error=self.error, skipped=True)
        else:
            entry.update(
                new_inscription_id=self.new_inscription_id,
                pending_subjects_count=self.pending_subjects_count,
                graduated=self.graduated,
            )
        return entry


def accumulate(stats: ClosureStats, result: StudentClosureResult) -> None:
    """Fold one student result into the run statistics."""
    if result.kind == ResultKind.FAILED:
        stats.errored += 1
        return

    if result.status == OutcomeStatus.APPROVED:
        stats.approved += 1
    elif result.status == OutcomeStatus.PENDING_SUBJECTS:
        stats.with_pending_subjects += 1
    elif result.status == OutcomeStatus.FAILED:
        stats.failed += 1

    if result.kind == ResultKind.SKIPPED:
        stats.skipped += 1
        return

    if result.graduated:
        stats.graduated += 1
    if result.new_inscription_id is not None:
        stats.new_inscriptions += 1
    stats.pending_subjects_created += result.pending_subjects_count


class ClosureOrchestrator:
    """Service validating and executing period closures.

    Attributes:
        db: Async database session. execute() owns its transaction and
            commits or rolls it back.
        settings: Fallback closure settings.
    """

    def __init__(self, db: AsyncSession, settings: ClosureSettings | None = None) -> None:
        self.db = db
        self.settings = settings
        self.aggregator = GradeAggregator(db)
        self.engine = PromotionDecisionEngine(db)
        self.tracker = PendingSubjectTracker(db)

    async def validate(self, period_id: str) -> ClosureValidationResult:
        """Check the preconditions of a closure without writing anything.

        Args:
            period_id: Period to close.

        Returns:
            Validation result; errors block the closure.
        """
        errors: list[str] = []
        warnings: list[str] = []

        period = await self.db.get(SchoolPeriod, period_id)
        if period is None:
            errors.append("Periodo escolar no encontrado")
            return ClosureValidationResult(valid=False, errors=errors, warnings=warnings)

        if not period.is_active:
            errors.append("El periodo no está activo")

        if await find_next_period(self.db, period) is None:
            errors.append(
                "Debe existir un periodo siguiente creado antes de cerrar el periodo actual"
            )

        terms_result = await self.db.execute(
            select(Term).where(Term.school_period_id == period_id).order_by(Term.order)
        )
        unblocked = [term.name for term in terms_result.scalars().all() if not term.is_blocked]
        if unblocked:
            errors.append(
                "Todos los lapsos deben estar bloqueados. "
                f"Lapsos sin bloquear: {', '.join(unblocked)}"
            )

        total_checklists = await self._count_checklists(period_id)
        done_checklists = await self._count_checklists(period_id, ChecklistStatus.DONE)
        if total_checklists == 0:
            warnings.append("No hay registros de consejos de curso")
        elif done_checklists < total_checklists:
            errors.append(
                "Todos los consejos de curso deben estar completados. "
                f"Completados: {done_checklists}/{total_checklists}"
            )

        return ClosureValidationResult(valid=not errors, errors=errors, warnings=warnings)

    async def execute(
        self,
        period_id: str,
        initiated_by: str | None = None,
    ) -> ClosureExecutionResult:
        """Close a period and roll its students into the next one.

        Nothing is written when the period was already closed or validation
        fails. The already-closed check comes first, since a closed period
        is no longer active. Otherwise the whole run is committed at once,
        or rolled back entirely on an unexpected error.

        Args:
            period_id: Period to close.
            initiated_by: User executing the closure.

        Returns:
            Execution result with statistics and the per-student log.
        """
        existing = await self._find_closed_closure(period_id)
        if existing is not None:
            error = PeriodAlreadyClosedError(period_id, existing.id)
            logger.warning("closure_rerun_refused", period_id=period_id, closure_id=existing.id)
            return ClosureExecutionResult(success=False, closure_id=existing.id, errors=[str(error)])

        validation = await self.validate(period_id)
        if not validation.valid:
            logger.info("closure_rejected", period_id=period_id, errors=validation.errors)
            return ClosureExecutionResult(success=False, errors=validation.errors)

        try:
            return await self._run(period_id, initiated_by, validation)
        except Exception as e:
            await self.db.rollback()
            logger.exception("closure_failed", period_id=period_id, error=str(e))
            return ClosureExecutionResult(success=False, errors=[str(e)], rolled_back=True)

    async def _run(
        self,
        period_id: str,
        initiated_by: str | None,
        validation: ClosureValidationResult,
    ) -> ClosureExecutionResult:
        started_at = utc_now()

        closure = PeriodClosure(
            school_period_id=period_id,
            status=ClosureStatus.VALIDATING.value,
            initiated_by=initiated_by,
            started_at=started_at,
        )
        self.db.add(closure)
        await self.db.flush()

        log = logger.bind(closure_id=closure.id, period_id=period_id)

        period = await self.db.get(SchoolPeriod, period_id)
        if period is None:
            raise PeriodClosureError("Periodo escolar no encontrado", period_id)
        next_period = await find_next_period(self.db, period)
        if next_period is None:
            raise NextPeriodNotFoundError(period_id)
        params = await resolve_parameters(self.db, self.settings)

        inscriptions_result = await self.db.execute(
            select(Inscription)
            .where(Inscription.school_period_id == period_id)
            .order_by(Inscription.created_at, Inscription.id)
        )
        inscriptions = list(inscriptions_result.scalars().all())

        log.info(
            "closure_started",
            next_period_id=next_period.id,
            students=len(inscriptions),
            parameters=params.to_snapshot(),
        )

        stats = ClosureStats(total_students=len(inscriptions))
        entries: list[dict[str, Any]] = []

        for inscription in inscriptions:
            try:
                async with self.db.begin_nested():
                    result = await self._close_student(
                        inscription, period, next_period, params, started_at
                    )
            except STUDENT_ERRORS as e:
                result = StudentClosureResult.failure(inscription, e)

            accumulate(stats, result)
            entry = result.to_log_entry()
            entries.append(entry)
            if result.kind == ResultKind.FAILED:
                log.warning("student_failed", **entry)
            elif result.kind == ResultKind.SKIPPED:
                log.warning("student_skipped", **entry)
            else:
                log.info("student_closed", **entry)

        closure.status = ClosureStatus.CLOSED.value
        closure.finished_at = utc_now()
        closure.log = {
            "entries": entries,
            "stats": stats.model_dump(),
            "validation": validation.model_dump(),
        }
        closure.snapshot = {
            "parameters": params.to_snapshot(),
            "next_period_id": next_period.id,
            "total_inscriptions": len(inscriptions),
        }

        period.is_active = False
        next_period.is_active = True

        closure_id = closure.id
        await self.db.commit()

        log.info(
            "closure_finished",
            duration_seconds=round(time_since(started_at).total_seconds(), 3),
            **stats.model_dump(),
        )
        return ClosureExecutionResult(
            success=True,
            closure_id=closure_id,
            stats=stats,
            errors=[],
            log=entries,
        )

    async def _close_student(
        self,
        inscription: Inscription,
        period: SchoolPeriod,
        next_period: SchoolPeriod,
        params: ClosureParameters,
        now: datetime,
    ) -> StudentClosureResult:
        summary = await self.aggregator.calculate(
            inscription.id, min_approval=params.min_approval, now=now
        )
        decision = await self.engine.evaluate(inscription.id, summary, params, now=now)

        if decision.graduated:
            return self._result(ResultKind.SUCCESS, inscription, decision, graduated=True)

        target_grade_id = decision.promotion_grade_id or inscription.grade_id

        period_grade_result = await self.db.execute(
            select(PeriodGrade).where(
                PeriodGrade.school_period_id == next_period.id,
                PeriodGrade.grade_id == target_grade_id,
            )
        )
        period_grade = period_grade_result.scalar_one_or_none()
        if period_grade is None:
            return self._result(
                ResultKind.SKIPPED,
                inscription,
                decision,
                new_grade_id=target_grade_id,
                error=(
                    f"No se encontró configuración para grado {target_grade_id} "
                    f"en periodo {next_period.id}"
                ),
            )

        section_id = await self._carry_section(period_grade, inscription.section_id)

        new_inscription = Inscription(
            school_period_id=next_period.id,
            student_id=inscription.student_id,
            grade_id=target_grade_id,
            section_id=section_id,
            escolaridad=escolaridad_for(decision.status).value,
            is_repeater=decision.status == OutcomeStatus.FAILED,
            origin_period_id=period.id,
        )
        self.db.add(new_inscription)
        await self.db.flush()

        pending_count = await self.tracker.sync(
            new_inscription.id, period.id, decision.pending_subjects
        )

        return self._result(
            ResultKind.SUCCESS,
            inscription,
            decision,
            new_grade_id=target_grade_id,
            new_inscription_id=new_inscription.id,
            pending_subjects_count=pending_count,
        )

    @staticmethod
    def _result(
        kind: ResultKind,
        inscription: Inscription,
        decision: PromotionDecision,
        **extra: Any,
    ) -> StudentClosureResult:
        return StudentClosureResult(
            kind=kind,
            inscription_id=inscription.id,
            student_id=inscription.student_id,
            status=decision.status,
            old_grade_id=inscription.grade_id,
            final_average=decision.final_average,
            failed_subjects=decision.failed_subjects,
            **extra,
        )

    async def _carry_section(self, period_grade: PeriodGrade, section_id: str | None) -> str | None:
        """Keep the section only if the target period grade offers it."""
        if section_id is None:
            return None
        result = await self.db.execute(
            select(PeriodGradeSection.id).where(
                PeriodGradeSection.period_grade_id == period_grade.id,
                PeriodGradeSection.section_id == section_id,
            )
        )
        return section_id if result.scalar_one_or_none() is not None else None

    async def _count_checklists(
        self,
        period_id: str,
        status: ChecklistStatus | None = None,
    ) -> int:
        query = select(func.count(CouncilChecklist.id)).where(
            CouncilChecklist.school_period_id == period_id
        )
        if status is not None:
            query = query.where(CouncilChecklist.status == status.value)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def _find_closed_closure(self, period_id: str) -> PeriodClosure | None:
        result = await self.db.execute(
            select(PeriodClosure)
            .where(
                PeriodClosure.school_period_id == period_id,
                PeriodClosure.status == ClosureStatus.CLOSED.value,
            )
            .order_by(PeriodClosure.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
