# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period closure request and response models.

This module defines the models exchanged by the closure endpoints:
- Dashboard status and council checklist upsert
- Validation result
- Execution request, statistics and result
- Preview outcomes
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from school_closure.models.common import ChecklistStatus, OutcomeStatus


# ============================================================================
# Status
# ============================================================================


class PeriodSummary(BaseModel):
    """Short description of a school period."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Period ID")
    name: str = Field(description="Display name")
    period: str = Field(description="Period label, e.g. 2025-2026")
    start_year: int = Field(description="First calendar year")
    end_year: int = Field(description="Last calendar year")
    is_active: bool = Field(description="Whether the period is the active one")


class ClosureSummary(BaseModel):
    """Latest closure attempt of a period."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    initiated_by: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class ChecklistProgress(BaseModel):
    """Completed council checklists over the total."""

    done: int = 0
    total: int = 0


class ClosureStatusResponse(BaseModel):
    """Closure dashboard status for one period."""

    period: PeriodSummary
    closure: ClosureSummary | None = None
    checklist: ChecklistProgress
    blocked_terms: int = Field(description="Number of blocked terms")
    total_terms: int = Field(description="Number of terms in the period")
    next_period: PeriodSummary | None = None


class CouncilChecklistRequest(BaseModel):
    """Create or update the council checklist of a grade/section/term."""

    grade_id: str = Field(description="Grade ID")
    section_id: str = Field(description="Section ID")
    term_id: str = Field(description="Term ID")
    status: ChecklistStatus = Field(default=ChecklistStatus.OPEN)
    completed_by: str | None = Field(default=None, description="User completing the council")


class CouncilChecklistResponse(BaseModel):
    """Council checklist entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_period_id: str
    grade_id: str
    section_id: str
    term_id: str
    status: ChecklistStatus
    completed_by: str | None = None
    completed_at: datetime | None = None


# ============================================================================
# Validation and execution
# ============================================================================


class ClosureValidationResult(BaseModel):
    """Outcome of the pre-closure checks.

    Errors block the closure; warnings are informational.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ClosureExecuteRequest(BaseModel):
    """Request to close a period."""

    initiated_by: str | None = Field(default=None, description="User executing the closure")


class ClosureStats(BaseModel):
    """Counters accumulated while closing a period."""

    total_students: int = 0
    approved: int = 0
    with_pending_subjects: int = 0
    failed: int = 0
    new_inscriptions: int = 0
    pending_subjects_created: int = 0
    graduated: int = 0
    skipped: int = 0
    errored: int = 0


class ClosureExecutionResult(BaseModel):
    """Result of a closure run.

    rolled_back is set when the run failed after it started writing and
    everything was undone.
    """

    success: bool
    closure_id: str | None = None
    stats: ClosureStats | None = None
    errors: list[str] = Field(default_factory=list)
    log: list[dict[str, Any]] = Field(default_factory=list)
    rolled_back: bool = False


# ============================================================================
# Preview
# ============================================================================


class PreviewOutcome(BaseModel):
    """Predicted outcome of one student, computed without persisting."""

    inscription_id: str
    student_id: str
    student_name: str
    grade_id: str
    grade_name: str | None = None
    section_id: str | None = None
    final_average: float | None = None
    failed_subjects: int = 0
    status: OutcomeStatus
    promotion_grade_id: str | None = None
    promotion_grade_name: str | None = None
    graduated: bool = False
    failed_subject_ids: list[str] = Field(default_factory=list)
