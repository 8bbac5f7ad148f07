# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Evaluation plan, qualification and council point models.

The evaluation plan of a (subject, section, term) may not weigh more than
100%. The cap is checked when an item is inserted or updated, summing the
sibling items already stored.
"""

from datetime import date as date_type

from sqlalchemy import (
    Date,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
    event,
    func,
    select,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_closure.infrastructure.database.models.base import Base, TimestampMixin, UUIDMixin

MAX_PLAN_PERCENTAGE = 100.0


class EvaluationPlanItem(UUIDMixin, TimestampMixin, Base):
    """A weighted evaluation of a subject in a term."""

    __tablename__ = "evaluation_plan_items"

    subject_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    section_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("sections.id", ondelete="CASCADE"), nullable=True
    )
    term_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("terms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    percentage: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    date: Mapped[date_type | None] = mapped_column(Date, nullable=True)


class Qualification(UUIDMixin, TimestampMixin, Base):
    """A student's score on one evaluation plan item."""

    __tablename__ = "qualifications"
    __table_args__ = (
        UniqueConstraint(
            "evaluation_plan_item_id",
            "inscription_subject_id",
            name="uq_qualifications_item_subject",
        ),
    )

    evaluation_plan_item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("evaluation_plan_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    inscription_subject_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inscription_subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    score: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)


class CouncilPoint(UUIDMixin, TimestampMixin, Base):
    """Points granted by the course council to a subject in a term."""

    __tablename__ = "council_points"
    __table_args__ = (
        UniqueConstraint("inscription_subject_id", "term_id", name="uq_council_points_subject_term"),
    )

    inscription_subject_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inscription_subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    term_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("terms.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)


@event.listens_for(EvaluationPlanItem, "before_insert")
@event.listens_for(EvaluationPlanItem, "before_update")
def _check_plan_percentage(mapper, connection, target: EvaluationPlanItem) -> None:
    """Reject a plan item that pushes its plan above 100%."""
    table = EvaluationPlanItem.__table__
    query = select(func.coalesce(func.sum(table.c.percentage), 0)).where(
        table.c.subject_id == target.subject_id,
        table.c.term_id == target.term_id,
    )
    if target.section_id is None:
        query = query.where(table.c.section_id.is_(None))
    else:
        query = query.where(table.c.section_id == target.section_id)
    if target.id is not None:
        query = query.where(table.c.id != target.id)

    siblings = float(connection.execute(query).scalar() or 0)
    total = siblings + float(target.percentage or 0)
    if total > MAX_PLAN_PERCENTAGE:
        raise ValueError(
            f"Evaluation plan percentage exceeds {MAX_PLAN_PERCENTAGE:g}%: "
            f"{total:g}% for subject {target.subject_id} in term {target.term_id}"
        )
