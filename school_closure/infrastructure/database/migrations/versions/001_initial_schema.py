# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial school database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-07-14
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _fk(name: str, target: str, nullable: bool = False, ondelete: str | None = "CASCADE") -> sa.Column:
    return sa.Column(name, sa.String(36), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create school database tables."""
    # =========================================================================
    # ACADEMIC STRUCTURE
    # =========================================================================

    op.create_table(
        "students",
        _id(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("document", sa.String(30), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "school_periods",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("period", sa.String(20), nullable=False),
        sa.Column("start_year", sa.Integer, nullable=False),
        sa.Column("end_year", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
    )
    op.create_index("ix_school_periods_start_year", "school_periods", ["start_year"])

    op.create_table(
        "terms",
        _id(),
        _fk("school_period_id", "school_periods.id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("order", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_blocked", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("school_period_id", "order", name="uq_terms_period_order"),
    )
    op.create_index("ix_terms_school_period_id", "terms", ["school_period_id"])

    op.create_table(
        "grades",
        _id(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("order", sa.Integer, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "sections",
        _id(),
        sa.Column("name", sa.String(20), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "subjects",
        _id(),
        sa.Column("name", sa.String(150), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "period_grades",
        _id(),
        _fk("school_period_id", "school_periods.id"),
        _fk("grade_id", "grades.id"),
        *_timestamps(),
        sa.UniqueConstraint("school_period_id", "grade_id", name="uq_period_grades_period_grade"),
    )

    op.create_table(
        "period_grade_sections",
        _id(),
        _fk("period_grade_id", "period_grades.id"),
        _fk("section_id", "sections.id"),
        *_timestamps(),
        sa.UniqueConstraint("period_grade_id", "section_id", name="uq_period_grade_sections_pair"),
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "council_checklists",
        _id(),
        _fk("school_period_id", "school_periods.id"),
        _fk("grade_id", "grades.id", ondelete=None),
        _fk("section_id", "sections.id", ondelete=None),
        _fk("term_id", "terms.id", ondelete=None),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("completed_by", sa.String(36), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "school_period_id",
            "grade_id",
            "section_id",
            "term_id",
            name="uq_council_checklists_scope",
        ),
    )
    op.create_index(
        "ix_council_checklists_school_period_id", "council_checklists", ["school_period_id"]
    )

    op.create_table(
        "transition_rules",
        _id(),
        sa.Column(
            "grade_from_id",
            sa.String(36),
            sa.ForeignKey("grades.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        _fk("grade_to_id", "grades.id", nullable=True, ondelete="SET NULL"),
        sa.Column("min_average", sa.Numeric(4, 2), nullable=False, server_default="10"),
        sa.Column("max_pending_subjects", sa.Integer, nullable=True),
        sa.Column("auto_graduate", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
    )

    # =========================================================================
    # ENROLLMENT
    # =========================================================================

    op.create_table(
        "inscriptions",
        _id(),
        _fk("school_period_id", "school_periods.id"),
        _fk("student_id", "students.id"),
        _fk("grade_id", "grades.id", ondelete=None),
        _fk("section_id", "sections.id", nullable=True, ondelete="SET NULL"),
        sa.Column("escolaridad", sa.String(30), nullable=False, server_default="regular"),
        sa.Column("is_repeater", sa.Boolean, nullable=False, server_default="false"),
        _fk("origin_period_id", "school_periods.id", nullable=True, ondelete="SET NULL"),
        *_timestamps(),
        sa.UniqueConstraint("school_period_id", "student_id", name="uq_inscriptions_period_student"),
    )
    op.create_index("ix_inscriptions_school_period_id", "inscriptions", ["school_period_id"])
    op.create_index("ix_inscriptions_student_id", "inscriptions", ["student_id"])

    op.create_table(
        "inscription_subjects",
        _id(),
        _fk("inscription_id", "inscriptions.id"),
        _fk("subject_id", "subjects.id"),
        *_timestamps(),
        sa.UniqueConstraint("inscription_id", "subject_id", name="uq_inscription_subjects_pair"),
    )
    op.create_index(
        "ix_inscription_subjects_inscription_id", "inscription_subjects", ["inscription_id"]
    )

    # =========================================================================
    # EVALUATION
    # =========================================================================

    op.create_table(
        "evaluation_plan_items",
        _id(),
        _fk("subject_id", "subjects.id"),
        _fk("section_id", "sections.id", nullable=True),
        _fk("term_id", "terms.id"),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("date", sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_evaluation_plan_items_subject_id", "evaluation_plan_items", ["subject_id"])
    op.create_index("ix_evaluation_plan_items_term_id", "evaluation_plan_items", ["term_id"])

    op.create_table(
        "qualifications",
        _id(),
        _fk("evaluation_plan_item_id", "evaluation_plan_items.id"),
        _fk("inscription_subject_id", "inscription_subjects.id"),
        sa.Column("score", sa.Numeric(5, 2), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "evaluation_plan_item_id",
            "inscription_subject_id",
            name="uq_qualifications_item_subject",
        ),
    )
    op.create_index(
        "ix_qualifications_inscription_subject_id", "qualifications", ["inscription_subject_id"]
    )

    op.create_table(
        "council_points",
        _id(),
        _fk("inscription_subject_id", "inscription_subjects.id"),
        _fk("term_id", "terms.id"),
        sa.Column("points", sa.Numeric(5, 2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("inscription_subject_id", "term_id", name="uq_council_points_subject_term"),
    )
    op.create_index(
        "ix_council_points_inscription_subject_id", "council_points", ["inscription_subject_id"]
    )

    # =========================================================================
    # CLOSURE
    # =========================================================================

    op.create_table(
        "subject_final_grades",
        _id(),
        sa.Column(
            "inscription_subject_id",
            sa.String(36),
            sa.ForeignKey("inscription_subjects.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("raw_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("council_points", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("final_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "student_period_outcomes",
        _id(),
        sa.Column(
            "inscription_id",
            sa.String(36),
            sa.ForeignKey("inscriptions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("final_average", sa.Numeric(5, 2), nullable=True),
        sa.Column("failed_subjects", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(30), nullable=False),
        _fk("promotion_grade_id", "grades.id", nullable=True, ondelete="SET NULL"),
        sa.Column("graduated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "pending_subjects",
        _id(),
        _fk("new_inscription_id", "inscriptions.id"),
        _fk("subject_id", "subjects.id"),
        _fk("origin_period_id", "school_periods.id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pendiente"),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("new_inscription_id", "subject_id", name="uq_pending_subjects_pair"),
    )
    op.create_index(
        "ix_pending_subjects_new_inscription_id", "pending_subjects", ["new_inscription_id"]
    )

    op.create_table(
        "period_closures",
        _id(),
        _fk("school_period_id", "school_periods.id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("initiated_by", sa.String(36), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("log", sa.JSON, nullable=True),
        sa.Column("snapshot", sa.JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_period_closures_school_period_id", "period_closures", ["school_period_id"])


def downgrade() -> None:
    """Drop school database tables."""
    for table in (
        "period_closures",
        "pending_subjects",
        "student_period_outcomes",
        "subject_final_grades",
        "council_points",
        "qualifications",
        "evaluation_plan_items",
        "inscription_subjects",
        "inscriptions",
        "transition_rules",
        "council_checklists",
        "settings",
        "period_grade_sections",
        "period_grades",
        "subjects",
        "sections",
        "grades",
        "terms",
        "school_periods",
        "students",
    ):
        op.drop_table(table)
