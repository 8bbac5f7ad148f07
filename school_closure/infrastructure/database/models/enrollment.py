# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student and enrollment models."""

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from school_closure.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin
from school_closure.models.common import Escolaridad


class Student(UUIDMixin, TimestampMixin, Base):
    """A student registered in the school."""

    __tablename__ = "students"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    document: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Inscription(UUIDMixin, TimestampMixin, Base):
    """A student's enrollment in one period, grade and (optional) section.

    Closure creates next-period inscriptions with origin_period_id pointing
    back at the closed period.
    """

    __tablename__ = "inscriptions"
    __table_args__ = (
        UniqueConstraint("school_period_id", "student_id", name="uq_inscriptions_period_student"),
    )

    school_period_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("school_periods.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    grade_id: Mapped[str] = mapped_column(String(36), ForeignKey("grades.id"), nullable=False)
    section_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("sections.id", ondelete="SET NULL"), nullable=True
    )
    escolaridad: Mapped[str] = mapped_column(
        String(30), nullable=False, default=Escolaridad.REGULAR.value
    )
    is_repeater: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    origin_period_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("school_periods.id", ondelete="SET NULL"), nullable=True
    )


class InscriptionSubject(UUIDMixin, TimestampMixin, Base):
    """A subject a student is enrolled in for one inscription."""

    __tablename__ = "inscription_subjects"
    __table_args__ = (
        UniqueConstraint("inscription_id", "subject_id", name="uq_inscription_subjects_pair"),
    )

    inscription_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("inscriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )
