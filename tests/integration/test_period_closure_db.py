# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for closure validation and execution."""

import pytest
from sqlalchemy import select

from school_closure.domains.period_closure import ClosureOrchestrator
from school_closure.infrastructure.database.models import (
    Inscription,
    PendingSubject,
    PeriodClosure,
    StudentPeriodOutcome,
)
from school_closure.models.common import (
    ChecklistStatus,
    ClosureStatus,
    Escolaridad,
    OutcomeStatus,
    PendingSubjectStatus,
)


async def _next_inscriptions(db_session, period_id: str) -> list[Inscription]:
    result = await db_session.execute(
        select(Inscription).where(Inscription.school_period_id == period_id)
    )
    return list(result.scalars().all())


async def _outcome(db_session, inscription_id: str) -> StudentPeriodOutcome:
    result = await db_session.execute(
        select(StudentPeriodOutcome).where(StudentPeriodOutcome.inscription_id == inscription_id)
    )
    return result.scalar_one()


@pytest.mark.integration
class TestClosureValidate:
    """Tests for ClosureOrchestrator.validate."""

    @pytest.mark.asyncio
    async def test_ready_period_is_valid(self, db_session, school):
        """Test a fully prepared period passes validation."""
        result = await ClosureOrchestrator(db_session).validate(school.period.id)

        assert result.valid is True
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_unknown_period(self, db_session):
        """Test an unknown period is reported and nothing else is checked."""
        result = await ClosureOrchestrator(db_session).validate(
            "00000000-0000-0000-0000-000000000000"
        )

        assert result.valid is False
        assert result.errors == ["Periodo escolar no encontrado"]

    @pytest.mark.asyncio
    async def test_unblocked_term_is_named(self, db_session, school):
        """Test an unblocked term makes validation fail naming that term."""
        school.terms[1].is_blocked = False
        await db_session.flush()

        result = await ClosureOrchestrator(db_session).validate(school.period.id)

        assert result.valid is False
        assert any("Lapsos sin bloquear: Lapso 2" in error for error in result.errors)

    @pytest.mark.asyncio
    async def test_missing_next_period(self, db_session, build):
        """Test a period without a later inactive period cannot be closed."""
        period = await build.period(2040, is_active=True)

        result = await ClosureOrchestrator(db_session).validate(period.id)

        assert result.valid is False
        assert any("periodo siguiente" in error for error in result.errors)

    @pytest.mark.asyncio
    async def test_inactive_period(self, db_session, school):
        """Test an inactive period cannot be closed."""
        school.period.is_active = False
        await db_session.flush()

        result = await ClosureOrchestrator(db_session).validate(school.period.id)

        assert result.valid is False
        assert "El periodo no está activo" in result.errors

    @pytest.mark.asyncio
    async def test_incomplete_checklists(self, db_session, build, school):
        """Test pending council checklists are reported as done/total."""
        await build.checklist(
            school.period, school.first, school.section_a, school.terms[1], ChecklistStatus.OPEN
        )

        result = await ClosureOrchestrator(db_session).validate(school.period.id)

        assert result.valid is False
        assert any("Completados: 1/2" in error for error in result.errors)

    @pytest.mark.asyncio
    async def test_no_checklists_is_a_warning(self, db_session, build):
        """Test a period without checklists only gets a warning."""
        period = await build.period(2050, is_active=True)
        await build.period(2051)
        await build.terms(period)

        result = await ClosureOrchestrator(db_session).validate(period.id)

        assert result.valid is True
        assert result.warnings == ["No hay registros de consejos de curso"]


@pytest.mark.integration
class TestClosureExecute:
    """Tests for ClosureOrchestrator.execute."""

    @pytest.mark.asyncio
    async def test_invalid_period_writes_nothing(self, db_session, build, school, enroll_student):
        """Test a failed validation returns its errors and creates nothing."""
        await enroll_student({"Matemática": 20})
        school.terms[2].is_blocked = False
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(school.period.id)

        assert result.success is False
        assert any("Lapso 3" in error for error in result.errors)
        assert await build.count(PeriodClosure) == 0
        assert await _next_inscriptions(db_session, school.next_period.id) == []

    @pytest.mark.asyncio
    async def test_approved_student_end_to_end(self, db_session, build, school, enroll_student):
        """Test a straight-A student is promoted as regular and periods flip."""
        inscription, _ = await enroll_student({"Matemática": 20, "Castellano": 20})
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(school.period.id, "admin-1")

        assert result.success is True
        assert result.stats.total_students == 1
        assert result.stats.approved == 1
        assert result.stats.new_inscriptions == 1

        (new_inscription,) = await _next_inscriptions(db_session, school.next_period.id)
        assert new_inscription.grade_id == school.second.id
        assert new_inscription.section_id == school.section_a.id
        assert new_inscription.escolaridad == Escolaridad.REGULAR.value
        assert new_inscription.is_repeater is False
        assert new_inscription.origin_period_id == school.period.id

        outcome = await _outcome(db_session, inscription.id)
        assert outcome.status == OutcomeStatus.APPROVED.value
        assert outcome.promotion_grade_id == school.second.id

        await db_session.refresh(school.period)
        await db_session.refresh(school.next_period)
        assert school.period.is_active is False
        assert school.next_period.is_active is True

        closure = await db_session.get(PeriodClosure, result.closure_id)
        assert closure.status == ClosureStatus.CLOSED.value
        assert closure.initiated_by == "admin-1"
        assert closure.finished_at is not None
        assert closure.log["stats"]["approved"] == 1
        assert closure.snapshot["next_period_id"] == school.next_period.id

    @pytest.mark.asyncio
    async def test_student_with_pending_subject(self, db_session, build, school, enroll_student):
        """Test a single failed subject promotes the student owing it."""
        await enroll_student({"Matemática": 6, "Castellano": 18})
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(school.period.id)

        assert result.success is True
        assert result.stats.with_pending_subjects == 1
        assert result.stats.pending_subjects_created == 1

        (new_inscription,) = await _next_inscriptions(db_session, school.next_period.id)
        assert new_inscription.grade_id == school.second.id
        assert new_inscription.escolaridad == Escolaridad.PENDING_SUBJECT.value

        pending = (await db_session.execute(select(PendingSubject))).scalar_one()
        assert pending.new_inscription_id == new_inscription.id
        assert pending.subject_id == school.math.id
        assert pending.origin_period_id == school.period.id

    @pytest.mark.asyncio
    async def test_failed_student_repeats_grade(self, db_session, build, school, enroll_student):
        """Test more failed subjects than allowed makes the student repeat."""
        await build.setting("max_failed_subjects", "1")
        await enroll_student({"Matemática": 4, "Castellano": 5})
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(school.period.id)

        assert result.stats.failed == 1
        (new_inscription,) = await _next_inscriptions(db_session, school.next_period.id)
        assert new_inscription.grade_id == school.first.id
        assert new_inscription.escolaridad == Escolaridad.REPEATER.value
        assert new_inscription.is_repeater is True
        assert await build.count(PendingSubject) == 2

    @pytest.mark.asyncio
    async def test_missing_target_grade_is_skipped(self, db_session, build, school, enroll_student):
        """Test a student whose target grade is not offered is skipped, not failed."""
        third = await build.grade("3er año", 3)
        await build.period_grade(school.period, school.second)
        await enroll_student({"Matemática": 20}, grade=school.second, first_name="Luis")
        await enroll_student({"Matemática": 20}, first_name="Ana")
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(school.period.id)

        assert result.success is True
        assert result.stats.skipped == 1
        assert result.stats.new_inscriptions == 1
        skipped = [entry for entry in result.log if entry.get("skipped")]
        assert len(skipped) == 1
        assert skipped[0]["new_grade_id"] == third.id

    @pytest.mark.asyncio
    async def test_section_dropped_when_not_offered(self, db_session, build, school, enroll_student):
        """Test a section not configured under the target grade is left unset."""
        section_b = await build.section("B")
        await enroll_student({"Matemática": 20}, section=section_b)
        await db_session.commit()

        await ClosureOrchestrator(db_session).execute(school.period.id)

        (new_inscription,) = await _next_inscriptions(db_session, school.next_period.id)
        assert new_inscription.section_id is None

    @pytest.mark.asyncio
    async def test_last_grade_graduates(self, db_session, build, school, enroll_student):
        """Test an approved student in the last grade graduates without a new inscription."""
        fifth = await build.grade("5to año", 5)
        inscription, _ = await enroll_student({"Matemática": 19}, grade=fifth)
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(school.period.id)

        assert result.success is True
        assert result.stats.graduated == 1
        assert result.stats.new_inscriptions == 0
        outcome = await _outcome(db_session, inscription.id)
        assert outcome.graduated_at is not None
        assert outcome.promotion_grade_id is None

    @pytest.mark.asyncio
    async def test_transition_rule_destination(self, db_session, build, school, enroll_student):
        """Test the rule's destination grade wins over the catalog order."""
        await build.rule(school.first, grade_to_id=school.first.id, min_average=12)
        await enroll_student({"Matemática": 15})
        await db_session.commit()

        await ClosureOrchestrator(db_session).execute(school.period.id)

        (new_inscription,) = await _next_inscriptions(db_session, school.next_period.id)
        assert new_inscription.grade_id == school.first.id
        assert new_inscription.escolaridad == Escolaridad.REGULAR.value

    @pytest.mark.asyncio
    async def test_duplicate_inscription_fails_only_that_student(
        self, db_session, build, school, enroll_student
    ):
        """Test a constraint violation rolls back only the offending student."""
        inscription, _ = await enroll_student({"Matemática": 20}, first_name="Ana")
        await enroll_student({"Matemática": 20}, first_name="Luis")
        await build.inscription(school.next_period, school.students[0], school.second)
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(school.period.id)

        assert result.success is True
        assert result.stats.errored == 1
        assert result.stats.new_inscriptions == 1
        failed = [entry for entry in result.log if entry.get("failed")]
        assert failed[0]["inscription_id"] == inscription.id
        assert await build.count(StudentPeriodOutcome) == 1

    @pytest.mark.asyncio
    async def test_rerun_is_refused(self, db_session, build, school, enroll_student):
        """Test executing a closed period again is refused with no new closure."""
        await enroll_student({"Matemática": 20})
        await db_session.commit()
        orchestrator = ClosureOrchestrator(db_session)
        first = await orchestrator.execute(school.period.id)

        school.period.is_active = True
        school.next_period.is_active = False
        await db_session.commit()
        second = await orchestrator.execute(school.period.id)

        assert first.success is True
        assert second.success is False
        assert second.closure_id == first.closure_id
        assert "ya fue cerrado" in second.errors[0]
        assert await build.count(PeriodClosure) == 1
        assert len(await _next_inscriptions(db_session, school.next_period.id)) == 1

    @pytest.mark.asyncio
    async def test_rerun_without_reactivation_reports_closure(
        self, db_session, build, school, enroll_student
    ):
        """Test a closed, now inactive period reports its existing closure."""
        await enroll_student({"Matemática": 20})
        await db_session.commit()
        orchestrator = ClosureOrchestrator(db_session)
        first = await orchestrator.execute(school.period.id)

        second = await orchestrator.execute(school.period.id)

        assert first.success is True
        assert second.success is False
        assert second.closure_id == first.closure_id
        assert "ya fue cerrado" in second.errors[0]
        assert await build.count(PeriodClosure) == 1


@pytest.mark.integration
class TestCarryOver:
    """Tests for owed subjects failed again."""

    @pytest.mark.asyncio
    async def test_owed_subject_failed_again_returns_to_origin_grade(self, db_session, build):
        """Test failing an owed subject again forces reprobado in the origin grade."""
        origin = await build.period(2024)
        period = await build.period(2025, is_active=True)
        next_period = await build.period(2026)
        terms = await build.terms(period)
        first = await build.grade("1er año", 1)
        second = await build.grade("2do año", 2)
        section = await build.section("A")
        math = await build.subject("Matemática")
        language = await build.subject("Castellano")
        await build.period_grade(next_period, first, (section,))
        await build.period_grade(next_period, second, (section,))
        await build.checklist(period, second, section, terms[0])

        student = await build.student()
        await build.inscription(origin, student, first, section, (math, language))
        inscription, (owed_math, current_language) = await build.inscription(
            period, student, second, section, (math, language)
        )
        await build.pending_subject(inscription, math, origin)
        await build.score(owed_math, terms, 7)
        await build.score(current_language, terms, 18)
        await db_session.commit()

        result = await ClosureOrchestrator(db_session).execute(period.id)

        assert result.success is True
        assert result.stats.failed == 1

        outcome = await _outcome(db_session, inscription.id)
        assert outcome.status == OutcomeStatus.FAILED.value
        assert outcome.promotion_grade_id == first.id
        assert outcome.outcome_metadata["carry_over_subject_id"] == math.id

        (new_inscription,) = await _next_inscriptions(db_session, next_period.id)
        assert new_inscription.grade_id == first.id
        assert new_inscription.escolaridad == Escolaridad.REPEATER.value

    @pytest.mark.asyncio
    async def test_resolved_owed_subject_does_not_override(self, db_session, build):
        """Test an owed subject already approved does not force reprobado."""
        origin = await build.period(2024)
        period = await build.period(2025, is_active=True)
        next_period = await build.period(2026)
        terms = await build.terms(period)
        first = await build.grade("1er año", 1)
        second = await build.grade("2do año", 2)
        third = await build.grade("3er año", 3)
        section = await build.section("A")
        math = await build.subject("Matemática")
        language = await build.subject("Castellano")
        await build.period_grade(next_period, third, (section,))
        await build.checklist(period, second, section, terms[0])

        student = await build.student()
        await build.inscription(origin, student, first, section, (math,))
        inscription, (owed_math, current_language) = await build.inscription(
            period, student, second, section, (math, language)
        )
        await build.pending_subject(inscription, math, origin, PendingSubjectStatus.APPROVED)
        await build.score(owed_math, terms, 7)
        await build.score(current_language, terms, 18)
        await db_session.commit()

        await ClosureOrchestrator(db_session).execute(period.id)

        outcome = await _outcome(db_session, inscription.id)
        assert outcome.status == OutcomeStatus.PENDING_SUBJECTS.value
        assert outcome.promotion_grade_id == third.id
