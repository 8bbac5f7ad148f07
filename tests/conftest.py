# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests
"""

from typing import Any

import pytest

from school_closure.core.config import clear_settings_cache
from school_closure.domains.period_closure import ClosureParameters


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "RATE_LIMIT_ENABLED": "false",
    }


@pytest.fixture
def clean_settings():
    """Clear the settings cache before and after a test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a SQLite database)"
    )


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def default_params() -> ClosureParameters:
    """Closure parameters with the application defaults."""
    return ClosureParameters(min_approval=10.0, default_min_average=10.0, max_failed_subjects=3)


@pytest.fixture
def sample_period_id() -> str:
    """Provide a sample period ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_inscription_id() -> str:
    """Provide a sample inscription ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def sample_checklist_data() -> dict[str, Any]:
    """Provide sample council checklist data for testing."""
    return {
        "grade_id": "550e8400-e29b-41d4-a716-446655440010",
        "section_id": "550e8400-e29b-41d4-a716-446655440011",
        "term_id": "550e8400-e29b-41d4-a716-446655440012",
        "status": "done",
        "completed_by": "550e8400-e29b-41d4-a716-446655440013",
    }
