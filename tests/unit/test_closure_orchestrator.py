# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the closure orchestrator."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from school_closure.domains.period_closure import (
    ClosureOrchestrator,
    ResultKind,
    StudentClosureResult,
    accumulate,
    escolaridad_for,
)
from school_closure.models.common import Escolaridad, OutcomeStatus
from school_closure.models.period_closure import ClosureStats, ClosureValidationResult


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.rollback = AsyncMock()
    db.commit = AsyncMock()
    return db


@pytest.fixture
def orchestrator(mock_db):
    """Create orchestrator with mock database."""
    return ClosureOrchestrator(db=mock_db)


def _result(kind, status=None, **kwargs) -> StudentClosureResult:
    return StudentClosureResult(
        kind=kind, inscription_id="ins-1", student_id="st-1", status=status, **kwargs
    )


class TestEscolaridad:
    """Tests for escolaridad_for."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (OutcomeStatus.APPROVED, Escolaridad.REGULAR),
            (OutcomeStatus.PENDING_SUBJECTS, Escolaridad.PENDING_SUBJECT),
            (OutcomeStatus.FAILED, Escolaridad.REPEATER),
        ],
    )
    def test_mapping(self, status, expected):
        """Test the next inscription's schooling status follows the outcome."""
        assert escolaridad_for(status) == expected


class TestAccumulate:
    """Tests for folding student results into statistics."""

    def test_success(self):
        """Test a promoted student counts status, inscription and pending subjects."""
        stats = ClosureStats(total_students=1)

        accumulate(
            stats,
            _result(
                ResultKind.SUCCESS,
                OutcomeStatus.PENDING_SUBJECTS,
                new_inscription_id="ins-2",
                pending_subjects_count=2,
            ),
        )

        assert stats.with_pending_subjects == 1
        assert stats.new_inscriptions == 1
        assert stats.pending_subjects_created == 2

    def test_graduated(self):
        """Test a graduate counts as approved without a new inscription."""
        stats = ClosureStats()

        accumulate(stats, _result(ResultKind.SUCCESS, OutcomeStatus.APPROVED, graduated=True))

        assert stats.approved == 1
        assert stats.graduated == 1
        assert stats.new_inscriptions == 0

    def test_skipped(self):
        """Test a skipped student keeps its status count but nothing else."""
        stats = ClosureStats()

        accumulate(stats, _result(ResultKind.SKIPPED, OutcomeStatus.FAILED))

        assert stats.failed == 1
        assert stats.skipped == 1
        assert stats.new_inscriptions == 0

    def test_failed(self):
        """Test an errored student only counts as errored."""
        stats = ClosureStats()

        accumulate(stats, _result(ResultKind.FAILED, error="boom"))

        assert stats.errored == 1
        assert stats.approved == stats.failed == stats.with_pending_subjects == 0


class TestLogEntry:
    """Tests for StudentClosureResult.to_log_entry."""

    def test_failed_entry(self):
        """Test a failed entry carries the error and the failed flag."""
        entry = _result(ResultKind.FAILED, error="boom").to_log_entry()

        assert entry == {
            "inscription_id": "ins-1",
            "student_id": "st-1",
            "result": "failed",
            "error": "boom",
            "failed": True,
        }

    def test_skipped_entry(self):
        """Test a skipped entry keeps its decision and the reason."""
        entry = _result(
            ResultKind.SKIPPED, OutcomeStatus.APPROVED, new_grade_id="g2", error="sin grado"
        ).to_log_entry()

        assert entry["skipped"] is True
        assert entry["status"] == "aprobado"
        assert entry["new_grade_id"] == "g2"
        assert "new_inscription_id" not in entry

    def test_success_entry(self):
        """Test a success entry names the new inscription."""
        entry = _result(
            ResultKind.SUCCESS, OutcomeStatus.APPROVED, new_inscription_id="ins-2"
        ).to_log_entry()

        assert entry["new_inscription_id"] == "ins-2"
        assert entry["graduated"] is False
        assert "error" not in entry


class TestExecute:
    """Tests for ClosureOrchestrator.execute control flow."""

    @pytest.mark.asyncio
    async def test_validation_failure_runs_nothing(self, orchestrator, mock_db, sample_period_id):
        """Test a failed validation returns its errors without running."""
        validation = ClosureValidationResult(valid=False, errors=["El periodo no está activo"])

        with patch.object(orchestrator, "_find_closed_closure", AsyncMock(return_value=None)), \
                patch.object(orchestrator, "validate", AsyncMock(return_value=validation)), \
                patch.object(orchestrator, "_run", AsyncMock()) as run:
            result = await orchestrator.execute(sample_period_id)

        assert result.success is False
        assert result.errors == ["El periodo no está activo"]
        assert result.rolled_back is False
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_closed(self, orchestrator, sample_period_id):
        """Test a closed period is refused before validation runs."""
        existing = MagicMock(id="closure-1")

        with patch.object(orchestrator, "validate", AsyncMock()) as validate, \
                patch.object(orchestrator, "_find_closed_closure", AsyncMock(return_value=existing)), \
                patch.object(orchestrator, "_run", AsyncMock()) as run:
            result = await orchestrator.execute(sample_period_id)

        assert result.success is False
        assert result.closure_id == "closure-1"
        assert "closure-1" in result.errors[0]
        run.assert_not_called()
        validate.assert_not_called()

    @pytest.mark.asyncio
    async def test_unexpected_error_rolls_back(self, orchestrator, mock_db, sample_period_id):
        """Test an unexpected error rolls the whole closure back."""
        with patch.object(
            orchestrator, "validate", AsyncMock(return_value=ClosureValidationResult(valid=True))
        ), patch.object(orchestrator, "_find_closed_closure", AsyncMock(return_value=None)), \
                patch.object(orchestrator, "_run", AsyncMock(side_effect=RuntimeError("db gone"))):
            result = await orchestrator.execute(sample_period_id)

        assert result.success is False
        assert result.rolled_back is True
        assert result.errors == ["db gone"]
        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_called()
