# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Closure-time models written by the period closure engine.

SubjectFinalGrade and StudentPeriodOutcome are projections of the raw
scores and are recomputed on demand. PendingSubject tracks the subjects a
student owes into a later inscription. PeriodClosure is the audit record of
one closure attempt and is not modified once closed.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_closure.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin
from school_closure.models.common import ClosureStatus, PendingSubjectStatus


class SubjectFinalGrade(UUIDMixin, TimestampMixin, Base):
    """Computed final grade of one inscription subject."""

    __tablename__ = "subject_final_grades"

    inscription_subject_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inscription_subjects.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    raw_score: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    council_points: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False, default=0
    )
    final_score: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class StudentPeriodOutcome(UUIDMixin, TimestampMixin, Base):
    """Promotion decision for one inscription."""

    __tablename__ = "student_period_outcomes"

    inscription_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inscriptions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    final_average: Mapped[float | None] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=True
    )
    failed_subjects: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    promotion_grade_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("grades.id", ondelete="SET NULL"), nullable=True
    )
    graduated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # "metadata" is reserved on declarative classes
    outcome_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )


class PendingSubject(UUIDMixin, TimestampMixin, Base):
    """A subject failed in origin_period that is owed into new_inscription."""

    __tablename__ = "pending_subjects"
    __table_args__ = (
        UniqueConstraint("new_inscription_id", "subject_id", name="uq_pending_subjects_pair"),
    )

    new_inscription_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("inscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )
    origin_period_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PendingSubjectStatus.PENDING.value
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PeriodClosure(UUIDMixin, TimestampMixin, Base):
    """Audit record of a closure attempt."""

    __tablename__ = "period_closures"

    school_period_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ClosureStatus.DRAFT.value
    )
    initiated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    log: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
