# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Period closure API endpoints.

This module provides endpoints for closing a school period:
- GET /{period_id}/status - Closure dashboard status
- POST /{period_id}/checklist - Create or update a council checklist entry
- GET /{period_id}/validate - Check closure preconditions
- GET /{period_id}/preview - Predicted outcomes, nothing is written
- POST /{period_id}/execute - Close the period

Execute always answers with the execution result body: 200 on success,
400 when validation fails or the period was already closed, 500 when the
run failed and was rolled back.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.api.dependencies import get_closure_settings, get_db
from school_closure.api.middleware.rate_limit import execute_limit, limiter
from school_closure.api.v1._ids import parse_id
from school_closure.core.config import ClosureSettings
from school_closure.domains.period_closure import (
    ClosureOrchestrator,
    ClosurePreviewService,
    ClosureStatusService,
    PeriodNotFoundError,
)
from school_closure.models.period_closure import (
    ClosureExecuteRequest,
    ClosureExecutionResult,
    ClosureStatusResponse,
    ClosureValidationResult,
    CouncilChecklistRequest,
    CouncilChecklistResponse,
    PreviewOutcome,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{period_id}/status",
    response_model=ClosureStatusResponse,
    summary="Get closure status",
)
async def get_closure_status(
    period_id: str,
    db: AsyncSession = Depends(get_db),
) -> ClosureStatusResponse:
    """Get checklist progress, term blocking and the latest closure of a period.

    Raises:
        HTTPException: 400 for an invalid id, 404 if the period does not exist.
    """
    period_id = parse_id(period_id, "period id")
    try:
        return await ClosureStatusService(db).get_status(period_id)
    except PeriodNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{period_id}/checklist",
    response_model=CouncilChecklistResponse,
    summary="Upsert council checklist entry",
)
async def upsert_checklist(
    period_id: str,
    data: CouncilChecklistRequest,
    db: AsyncSession = Depends(get_db),
) -> CouncilChecklistResponse:
    """Create or update the council checklist of a grade/section/term."""
    period_id = parse_id(period_id, "period id")
    try:
        return await ClosureStatusService(db).upsert_checklist_entry(period_id, data)
    except PeriodNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/{period_id}/validate",
    response_model=ClosureValidationResult,
    summary="Validate closure preconditions",
)
async def validate_closure(
    period_id: str,
    db: AsyncSession = Depends(get_db),
    settings: ClosureSettings = Depends(get_closure_settings),
) -> ClosureValidationResult:
    period_id = parse_id(period_id, "period id")
    return await ClosureOrchestrator(db, settings).validate(period_id)


@router.get(
    "/{period_id}/preview",
    response_model=list[PreviewOutcome],
    summary="Preview closure outcomes",
)
async def preview_closure(
    period_id: str,
    db: AsyncSession = Depends(get_db),
    settings: ClosureSettings = Depends(get_closure_settings),
) -> list[PreviewOutcome]:
    """Predict every student's outcome without writing anything.

    Raises:
        HTTPException: 400 for an invalid id, 404 if the period does not exist.
    """
    period_id = parse_id(period_id, "period id")
    try:
        return await ClosurePreviewService(db, settings).preview(period_id)
    except PeriodNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{period_id}/execute",
    response_model=ClosureExecutionResult,
    summary="Execute period closure",
    responses={
        400: {"model": ClosureExecutionResult, "description": "Validation failed or already closed"},
        500: {"model": ClosureExecutionResult, "description": "Closure rolled back"},
    },
)
@limiter.limit(execute_limit)
async def execute_closure(
    request: Request,
    period_id: str,
    data: ClosureExecuteRequest | None = None,
    db: AsyncSession = Depends(get_db),
    settings: ClosureSettings = Depends(get_closure_settings),
) -> ClosureExecutionResult | JSONResponse:
    """Close the period and roll its students into the next one.

    Args:
        request: HTTP request, used for rate limiting.
        period_id: Period to close.
        data: Optional request body with the initiating user.
        db: Database session.
        settings: Closure fallbacks.

    Returns:
        The execution result.
    """
    period_id = parse_id(period_id, "period id")
    initiated_by = data.initiated_by if data else None

    logger.info("Executing closure of period %s by %s", period_id, initiated_by)
    result = await ClosureOrchestrator(db, settings).execute(period_id, initiated_by)

    if result.success:
        return result

    status_code = (
        status.HTTP_500_INTERNAL_SERVER_ERROR
        if result.rolled_back
        else status.HTTP_400_BAD_REQUEST
    )
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
