# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Closure run parameters and period lookups.

Configuration is resolved once per run into a ClosureParameters object so
that every student of a closure is graded against the same values, even if
the settings table changes mid-run.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_closure.core.config import ClosureSettings, get_settings
from school_closure.infrastructure.database.models import SchoolPeriod, Setting

logger = logging.getLogger(__name__)

MIN_APPROVAL_KEY = "min_approval_grade"
MAX_FAILED_SUBJECTS_KEY = "max_failed_subjects"


@dataclass(frozen=True)
class ClosureParameters:
    """Values every student of a closure run is evaluated with.

    Attributes:
        min_approval: Minimum final score to pass a subject.
        default_min_average: Minimum average to be approved when the grade
            has no transition rule.
        max_failed_subjects: Failed subjects tolerated before failing the
            year, when the transition rule does not set its own limit.
    """

    min_approval: float = 10.0
    default_min_average: float = 10.0
    max_failed_subjects: int = 3

    @classmethod
    def from_settings(cls, settings: ClosureSettings) -> "ClosureParameters":
        return cls(
            min_approval=settings.min_approval_grade,
            default_min_average=settings.default_min_average,
            max_failed_subjects=settings.max_failed_subjects,
        )

    def to_snapshot(self) -> dict[str, Any]:
        return asdict(self)


def _parse_setting(key: str, raw: str | None, cast: type, default: Any) -> Any:
    if raw is None:
        return default
    try:
        return cast(raw.strip())
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid setting %s=%r, using %s", key, raw, default)
        return default


async def resolve_parameters(
    db: AsyncSession,
    settings: ClosureSettings | None = None,
) -> ClosureParameters:
    """Build the run parameters from the settings table.

    Keys missing from the table, or holding values that do not parse, fall
    back to the application ClosureSettings.

    Args:
        db: Async database session.
        settings: Fallback values; the application settings when omitted.

    Returns:
        Resolved closure parameters.
    """
    defaults = ClosureParameters.from_settings(settings or get_settings().closure)

    result = await db.execute(
        select(Setting.key, Setting.value).where(
            Setting.key.in_([MIN_APPROVAL_KEY, MAX_FAILED_SUBJECTS_KEY])
        )
    )
    stored = {row.key: row.value for row in result.all()}

    return ClosureParameters(
        min_approval=_parse_setting(
            MIN_APPROVAL_KEY, stored.get(MIN_APPROVAL_KEY), float, defaults.min_approval
        ),
        default_min_average=defaults.default_min_average,
        max_failed_subjects=_parse_setting(
            MAX_FAILED_SUBJECTS_KEY,
            stored.get(MAX_FAILED_SUBJECTS_KEY),
            int,
            defaults.max_failed_subjects,
        ),
    )


async def find_next_period(db: AsyncSession, period: SchoolPeriod) -> SchoolPeriod | None:
    """Return the inactive period with the smallest later start year."""
    result = await db.execute(
        select(SchoolPeriod)
        .where(
            SchoolPeriod.is_active.is_(False),
            SchoolPeriod.start_year > period.start_year,
            SchoolPeriod.id != period.id,
        )
        .order_by(SchoolPeriod.start_year, SchoolPeriod.end_year)
        .limit(1)
    )
    return result.scalar_one_or_none()
