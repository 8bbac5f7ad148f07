# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period outcome and pending subject models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from school_closure.models.common import OutcomeStatus, PendingSubjectStatus


class OutcomeResponse(BaseModel):
    """Persisted promotion decision of one inscription."""

    id: str
    inscription_id: str
    student_id: str
    student_name: str
    grade_id: str
    grade_name: str | None = None
    section_id: str | None = None
    section_name: str | None = None
    final_average: float | None = None
    failed_subjects: int = 0
    status: OutcomeStatus
    promotion_grade_id: str | None = None
    promotion_grade_name: str | None = None
    graduated_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class PendingSubjectResponse(BaseModel):
    """A subject owed by a student into a later inscription."""

    id: str
    new_inscription_id: str
    subject_id: str
    subject_name: str | None = None
    student_id: str | None = None
    student_name: str | None = None
    origin_period_id: str
    status: PendingSubjectStatus
    resolved_at: datetime | None = None
    updated_at: datetime | None = None


class ResolvePendingSubjectRequest(BaseModel):
    """Resolve a pending subject as passed or validated."""

    status: PendingSubjectStatus = Field(
        description="New status: aprobada or convalidada",
        examples=["aprobada", "convalidada"],
    )
