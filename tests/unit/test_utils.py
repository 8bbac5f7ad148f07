# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for datetime and logging utilities."""

import logging
from datetime import datetime, timedelta, timezone

from school_closure.core.config import Settings
from school_closure.utils.datetime import ensure_utc, format_iso, time_since, utc_now
from school_closure.utils.logging import HANDLER_NAME, setup_logging


class TestDatetime:
    """Tests for UTC datetime helpers."""

    def test_utc_now_is_aware(self):
        """Test the current time carries the UTC timezone."""
        assert utc_now().tzinfo == timezone.utc

    def test_naive_values_are_taken_as_utc(self):
        """Test naive datetimes read from SQLite become aware UTC."""
        naive = datetime(2026, 7, 15, 12, 0)

        assert ensure_utc(naive) == datetime(2026, 7, 15, 12, 0, tzinfo=timezone.utc)

    def test_aware_values_are_converted(self):
        """Test other timezones are converted to UTC."""
        caracas = timezone(timedelta(hours=-4))

        assert format_iso(datetime(2026, 7, 15, 8, 0, tzinfo=caracas)) == "2026-07-15T12:00:00+00:00"
        assert format_iso(None) is None

    def test_time_since(self):
        """Test elapsed time is measured against now."""
        elapsed = time_since(utc_now() - timedelta(seconds=30))

        assert timedelta(seconds=29) < elapsed < timedelta(seconds=60)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_installs_single_handler(self):
        """Test repeated setup replaces its own handler instead of stacking."""
        settings = Settings(log_level="INFO")

        setup_logging(settings)
        setup_logging(settings)

        root = logging.getLogger()
        assert [h.get_name() for h in root.handlers].count(HANDLER_NAME) == 1
        assert root.level == logging.INFO
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

        for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
            root.removeHandler(handler)
