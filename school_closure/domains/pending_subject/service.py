# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pending subject tracking.

This module provides the PendingSubjectTracker class for:
- Syncing the subjects a new inscription owes from the closed period
- Resolving an owed subject as passed (aprobada) or validated (convalidada)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.domains.grading import SubjectResult
from school_closure.infrastructure.database.models import PendingSubject
from school_closure.models.common import RESOLVABLE_PENDING_STATUSES, PendingSubjectStatus
from school_closure.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class PendingSubjectServiceError(Exception):
    """Base exception for pending subject errors."""

    pass


class PendingSubjectNotFoundError(PendingSubjectServiceError):
    """Raised when a pending subject does not exist."""

    pass


class InvalidPendingStatusError(PendingSubjectServiceError):
    """Raised when resolving to a status other than aprobada/convalidada."""

    pass


class PendingSubjectTracker:
    """Service for subjects owed across periods.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the tracker.

        Args:
            db: Async database session.
        """
        self.db = db

    async def sync(
        self,
        new_inscription_id: str,
        origin_period_id: str,
        subject_results: Iterable[SubjectResult],
    ) -> int:
        """Record the failed subjects as owed by the new inscription.

        Every failed subject becomes (or goes back to) a pendiente row keyed
        by (new_inscription_id, subject_id). When nothing failed, all owed
        subjects of the inscription are deleted.

        Args:
            new_inscription_id: Inscription in the next period.
            origin_period_id: Period where the subjects were failed.
            subject_results: Subject results of the closed inscription.

        Returns:
            Number of failed subjects recorded.
        """
        failed = [result for result in subject_results if result.failed]

        if not failed:
            await self.db.execute(
                delete(PendingSubject).where(
                    PendingSubject.new_inscription_id == new_inscription_id
                )
            )
            return 0

        existing_result = await self.db.execute(
            select(PendingSubject).where(
                PendingSubject.new_inscription_id == new_inscription_id,
                PendingSubject.subject_id.in_([r.subject_id for r in failed]),
            )
        )
        existing = {pending.subject_id: pending for pending in existing_result.scalars().all()}

        for result in failed:
            pending = existing.get(result.subject_id)
            if pending is None:
                pending = PendingSubject(
                    new_inscription_id=new_inscription_id,
                    subject_id=result.subject_id,
                )
                self.db.add(pending)
                existing[result.subject_id] = pending
            pending.origin_period_id = origin_period_id
            pending.status = PendingSubjectStatus.PENDING.value
            pending.resolved_at = None

        await self.db.flush()

        logger.debug(
            "Synced %d pending subjects for inscription %s",
            len(failed),
            new_inscription_id,
        )
        return len(failed)

    async def resolve(
        self,
        pending_subject_id: str,
        status: PendingSubjectStatus | str,
    ) -> PendingSubject:
        """Mark an owed subject as passed or validated.

        Raises:
            InvalidPendingStatusError: If status is not aprobada/convalidada.
            PendingSubjectNotFoundError: If the pending subject does not exist.
        """
        try:
            new_status = PendingSubjectStatus(status)
        except ValueError as e:
            raise InvalidPendingStatusError(f"Invalid pending subject status: {status}") from e
        if new_status not in RESOLVABLE_PENDING_STATUSES:
            raise InvalidPendingStatusError(f"Invalid pending subject status: {new_status.value}")

        pending = await self.db.get(PendingSubject, pending_subject_id)
        if pending is None:
            raise PendingSubjectNotFoundError(f"Pending subject not found: {pending_subject_id}")

        pending.status = new_status.value
        pending.resolved_at = utc_now()
        await self.db.flush()

        logger.info("Resolved pending subject %s as %s", pending.id, new_status.value)
        return pending
