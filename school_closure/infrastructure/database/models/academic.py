# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic structure models.

These tables are owned by the academic-structure subsystem; the closure
engine only reads them, except for the is_active flip on SchoolPeriod and
the council checklist upsert.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_closure.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin
from school_closure.models.common import ChecklistStatus


class SchoolPeriod(UUIDMixin, TimestampMixin, Base):
    """An academic period (school year), e.g. 2025-2026."""

    __tablename__ = "school_periods"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False)
    start_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    end_year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Term(UUIDMixin, TimestampMixin, Base):
    """A grading term (lapso) inside a period."""

    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("school_period_id", "order", name="uq_terms_period_order"),
    )

    school_period_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Grade(UUIDMixin, TimestampMixin, Base):
    """A grade level in the school catalog (1er año, 2do año...)."""

    __tablename__ = "grades"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    order: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Section(UUIDMixin, TimestampMixin, Base):
    """A section letter (A, B, C)."""

    __tablename__ = "sections"

    name: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)


class Subject(UUIDMixin, TimestampMixin, Base):
    """A subject in the school catalog."""

    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(150), nullable=False)


class PeriodGrade(UUIDMixin, TimestampMixin, Base):
    """A grade offered in a given period."""

    __tablename__ = "period_grades"
    __table_args__ = (
        UniqueConstraint("school_period_id", "grade_id", name="uq_period_grades_period_grade"),
    )

    school_period_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False
    )
    grade_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("grades.id", ondelete="CASCADE"), nullable=False
    )


class PeriodGradeSection(UUIDMixin, TimestampMixin, Base):
    """A section configured under a period grade."""

    __tablename__ = "period_grade_sections"
    __table_args__ = (
        UniqueConstraint("period_grade_id", "section_id", name="uq_period_grade_sections_pair"),
    )

    period_grade_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("period_grades.id", ondelete="CASCADE"), nullable=False
    )
    section_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sections.id", ondelete="CASCADE"), nullable=False
    )


class Setting(TimestampMixin, Base):
    """Key-value setting store (min_approval_grade, max_failed_subjects...)."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class CouncilChecklist(UUIDMixin, TimestampMixin, Base):
    """Completion state of a course council for one grade/section/term."""

    __tablename__ = "council_checklists"
    __table_args__ = (
        UniqueConstraint(
            "school_period_id",
            "grade_id",
            "section_id",
            "term_id",
            name="uq_council_checklists_scope",
        ),
    )

    school_period_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    grade_id: Mapped[str] = mapped_column(String(36), ForeignKey("grades.id"), nullable=False)
    section_id: Mapped[str] = mapped_column(String(36), ForeignKey("sections.id"), nullable=False)
    term_id: Mapped[str] = mapped_column(String(36), ForeignKey("terms.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ChecklistStatus.OPEN.value
    )
    completed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class TransitionRule(UUIDMixin, TimestampMixin, Base):
    """Promotion policy for students leaving a grade.

    max_pending_subjects overrides the configured max_failed_subjects when
    set; grade_to_id overrides the catalog's next grade.
    """

    __tablename__ = "transition_rules"

    grade_from_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("grades.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    grade_to_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("grades.id", ondelete="SET NULL"), nullable=True
    )
    min_average: Mapped[float] = mapped_column(
        Numeric(4, 2, asdecimal=False), nullable=False, default=10
    )
    max_pending_subjects: Mapped[int | None] = mapped_column(Integer, nullable=True)
    auto_graduate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
