# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pending subject domain package.

This package tracks the subjects a student still owes from a previous
period and resolves them once passed or validated.
"""

from school_closure.domains.pending_subject.service import (
    InvalidPendingStatusError,
    PendingSubjectNotFoundError,
    PendingSubjectServiceError,
    PendingSubjectTracker,
)

__all__ = [
    "InvalidPendingStatusError",
    "PendingSubjectNotFoundError",
    "PendingSubjectServiceError",
    "PendingSubjectTracker",
]
