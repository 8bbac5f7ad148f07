# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Promotion domain package.

This package decides whether an inscription is approved, owes subjects or
failed, and which grade the student moves to.
"""

from school_closure.domains.promotion.engine import (
    PromotionDecision,
    PromotionDecisionEngine,
    PromotionEngineError,
    determine_status,
    resolve_limits,
)

__all__ = [
    "PromotionDecision",
    "PromotionDecisionEngine",
    "PromotionEngineError",
    "determine_status",
    "resolve_limits",
]
