# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period outcome API endpoints.

This module provides endpoints for closure results:
- GET /{period_id}/outcomes - Outcomes of a period, optionally by status
- GET /{period_id}/pending-subjects - Subjects owed into a period
- POST /pending-subjects/{pending_subject_id}/resolve - Resolve an owed subject
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.api.dependencies import get_db
from school_closure.api.v1._ids import parse_id
from school_closure.domains.pending_subject import (
    InvalidPendingStatusError,
    PendingSubjectNotFoundError,
)
from school_closure.domains.period_closure import PeriodNotFoundError, PeriodOutcomeService
from school_closure.models.common import OutcomeStatus
from school_closure.models.period_outcome import (
    OutcomeResponse,
    PendingSubjectResponse,
    ResolvePendingSubjectRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> PeriodOutcomeService:
    return PeriodOutcomeService(db)


@router.get(
    "/{period_id}/outcomes",
    response_model=list[OutcomeResponse],
    summary="List period outcomes",
)
async def list_outcomes(
    period_id: str,
    outcome_status: Annotated[
        str | None, Query(alias="status", description="aprobado, materias_pendientes or reprobado")
    ] = None,
    db: AsyncSession = Depends(get_db),
) -> list[OutcomeResponse]:
    """List the promotion outcomes of a period.

    Raises:
        HTTPException: 400 for an invalid id or status, 404 if the period
            does not exist.
    """
    period_id = parse_id(period_id, "period id")

    status_filter = None
    if outcome_status:
        try:
            status_filter = OutcomeStatus(outcome_status)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid outcome status: {outcome_status}",
            )

    try:
        return await _get_service(db).get_outcomes(period_id, status_filter)
    except PeriodNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/{period_id}/pending-subjects",
    response_model=list[PendingSubjectResponse],
    summary="List pending subjects",
)
async def list_pending_subjects(
    period_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[PendingSubjectResponse]:
    period_id = parse_id(period_id, "period id")
    try:
        return await _get_service(db).get_pending_subjects(period_id)
    except PeriodNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/pending-subjects/{pending_subject_id}/resolve",
    response_model=PendingSubjectResponse,
    summary="Resolve pending subject",
)
async def resolve_pending_subject(
    pending_subject_id: str,
    data: ResolvePendingSubjectRequest,
    db: AsyncSession = Depends(get_db),
) -> PendingSubjectResponse:
    """Mark an owed subject as passed or validated.

    Raises:
        HTTPException: 400 for an invalid id or status, 404 if the pending
            subject does not exist.
    """
    pending_subject_id = parse_id(pending_subject_id, "pending subject id")
    try:
        return await _get_service(db).resolve_pending_subject(pending_subject_id, data.status)
    except InvalidPendingStatusError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PendingSubjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
