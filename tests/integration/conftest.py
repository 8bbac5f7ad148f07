# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Every test gets a fresh in-memory SQLite database created from the ORM
metadata, and a SchoolBuilder to populate it.

pysqlite/aiosqlite start transactions lazily and break SAVEPOINT; the
engine listeners below take over BEGIN so that per-student savepoints
behave as they do on PostgreSQL.
"""

from dataclasses import dataclass, field
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from school_closure.infrastructure.database.models import (
    Base,
    CouncilChecklist,
    CouncilPoint,
    EvaluationPlanItem,
    Grade,
    Inscription,
    InscriptionSubject,
    PendingSubject,
    PeriodGrade,
    PeriodGradeSection,
    Qualification,
    SchoolPeriod,
    Section,
    Setting,
    Student,
    Subject,
    Term,
    TransitionRule,
)
from school_closure.models.common import ChecklistStatus, PendingSubjectStatus


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create an async engine on a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create an async session configured like the application's."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


class SchoolBuilder:
    """Creates school data rows and flushes them one by one."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._plan_items: dict[tuple[str, str], EvaluationPlanItem] = {}
        self._documents = 0

    async def add(self, obj):
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def period(self, start_year: int, is_active: bool = False) -> SchoolPeriod:
        return await self.add(
            SchoolPeriod(
                name=f"Año escolar {start_year}-{start_year + 1}",
                period=f"{start_year}-{start_year + 1}",
                start_year=start_year,
                end_year=start_year + 1,
                is_active=is_active,
            )
        )

    async def terms(self, period: SchoolPeriod, count: int = 3, blocked: bool = True) -> list[Term]:
        return [
            await self.add(
                Term(
                    school_period_id=period.id,
                    name=f"Lapso {order}",
                    order=order,
                    is_blocked=blocked,
                )
            )
            for order in range(1, count + 1)
        ]

    async def grade(self, name: str, order: int | None) -> Grade:
        return await self.add(Grade(name=name, order=order))

    async def section(self, name: str) -> Section:
        return await self.add(Section(name=name))

    async def subject(self, name: str) -> Subject:
        return await self.add(Subject(name=name))

    async def period_grade(
        self,
        period: SchoolPeriod,
        grade: Grade,
        sections: tuple[Section, ...] = (),
    ) -> PeriodGrade:
        period_grade = await self.add(PeriodGrade(school_period_id=period.id, grade_id=grade.id))
        for section in sections:
            await self.add(
                PeriodGradeSection(period_grade_id=period_grade.id, section_id=section.id)
            )
        return period_grade

    async def student(self, first_name: str = "Ana", last_name: str = "Pérez") -> Student:
        self._documents += 1
        return await self.add(
            Student(
                first_name=first_name,
                last_name=last_name,
                document=f"V-{20000000 + self._documents}",
            )
        )

    async def inscription(
        self,
        period: SchoolPeriod,
        student: Student,
        grade: Grade,
        section: Section | None = None,
        subjects: tuple[Subject, ...] = (),
    ) -> tuple[Inscription, list[InscriptionSubject]]:
        inscription = await self.add(
            Inscription(
                school_period_id=period.id,
                student_id=student.id,
                grade_id=grade.id,
                section_id=section.id if section else None,
            )
        )
        inscription_subjects = [
            await self.add(InscriptionSubject(inscription_id=inscription.id, subject_id=s.id))
            for s in subjects
        ]
        return inscription, inscription_subjects

    async def plan_item(
        self,
        subject_id: str,
        term: Term,
        percentage: float = 100,
        description: str = "Examen",
    ) -> EvaluationPlanItem:
        return await self.add(
            EvaluationPlanItem(
                subject_id=subject_id,
                term_id=term.id,
                description=description,
                percentage=percentage,
            )
        )

    async def score(
        self,
        inscription_subject: InscriptionSubject,
        terms: list[Term],
        score: float,
    ) -> None:
        """Give one 100% qualification with the same score in every term."""
        for term in terms:
            key = (inscription_subject.subject_id, term.id)
            if key not in self._plan_items:
                self._plan_items[key] = await self.plan_item(inscription_subject.subject_id, term)
            await self.add(
                Qualification(
                    evaluation_plan_item_id=self._plan_items[key].id,
                    inscription_subject_id=inscription_subject.id,
                    score=score,
                )
            )

    async def council_point(
        self,
        inscription_subject: InscriptionSubject,
        term: Term,
        points: float,
    ) -> CouncilPoint:
        return await self.add(
            CouncilPoint(inscription_subject_id=inscription_subject.id, term_id=term.id, points=points)
        )

    async def checklist(
        self,
        period: SchoolPeriod,
        grade: Grade,
        section: Section,
        term: Term,
        status: ChecklistStatus = ChecklistStatus.DONE,
    ) -> CouncilChecklist:
        return await self.add(
            CouncilChecklist(
                school_period_id=period.id,
                grade_id=grade.id,
                section_id=section.id,
                term_id=term.id,
                status=status.value,
            )
        )

    async def setting(self, key: str, value: str) -> Setting:
        return await self.add(Setting(key=key, value=value))

    async def rule(self, grade_from: Grade, **kwargs) -> TransitionRule:
        return await self.add(TransitionRule(grade_from_id=grade_from.id, **kwargs))

    async def pending_subject(
        self,
        inscription: Inscription,
        subject: Subject,
        origin_period: SchoolPeriod,
        status: PendingSubjectStatus = PendingSubjectStatus.PENDING,
    ) -> PendingSubject:
        return await self.add(
            PendingSubject(
                new_inscription_id=inscription.id,
                subject_id=subject.id,
                origin_period_id=origin_period.id,
                status=status.value,
            )
        )

    async def count(self, model, *criteria) -> int:
        result = await self.session.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar() or 0


@pytest.fixture
def build(db_session: AsyncSession) -> SchoolBuilder:
    """Provide a builder bound to the test session."""
    return SchoolBuilder(db_session)


@dataclass
class ClosableSchool:
    """A period ready to be closed into an inactive next period."""

    period: SchoolPeriod
    next_period: SchoolPeriod
    terms: list[Term]
    first: Grade
    second: Grade
    section_a: Section
    math: Subject
    language: Subject
    students: list[Student] = field(default_factory=list)


@pytest_asyncio.fixture
async def school(build: SchoolBuilder) -> ClosableSchool:
    """Active period with three blocked terms, a done checklist and a next period.

    The next period offers 1er año and 2do año, both with section A.
    """
    period = await build.period(2025, is_active=True)
    next_period = await build.period(2026)
    terms = await build.terms(period)
    first = await build.grade("1er año", 1)
    second = await build.grade("2do año", 2)
    section_a = await build.section("A")
    math = await build.subject("Matemática")
    language = await build.subject("Castellano")

    await build.period_grade(period, first, (section_a,))
    await build.period_grade(next_period, first, (section_a,))
    await build.period_grade(next_period, second, (section_a,))
    await build.checklist(period, first, section_a, terms[0])

    return ClosableSchool(
        period=period,
        next_period=next_period,
        terms=terms,
        first=first,
        second=second,
        section_a=section_a,
        math=math,
        language=language,
    )


async def enroll(
    build: SchoolBuilder,
    school: ClosableSchool,
    scores: dict[str, float],
    grade: Grade | None = None,
    section: Section | None = None,
    first_name: str = "Ana",
) -> tuple[Inscription, list[InscriptionSubject]]:
    """Enroll a new student in the closing period with a score per subject name."""
    by_name = {school.math.name: school.math, school.language.name: school.language}
    subjects = tuple(by_name[name] for name in scores)
    student = await build.student(first_name=first_name)
    school.students.append(student)
    inscription, inscription_subjects = await build.inscription(
        school.period,
        student,
        grade or school.first,
        section if section is not None else school.section_a,
        subjects,
    )
    for inscription_subject, score in zip(inscription_subjects, scores.values()):
        await build.score(inscription_subject, school.terms, score)
    return inscription, inscription_subjects


@pytest.fixture
def enroll_student(build: SchoolBuilder, school: ClosableSchool):
    """Enroll students in the closable school."""

    async def _enroll(scores: dict[str, float], **kwargs):
        return await enroll(build, school, scores, **kwargs)

    return _enroll
