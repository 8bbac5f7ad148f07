# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic request/response models and shared enumerations.

Modules:
    common: Status enumerations shared by ORM models, services and API.
    period_closure: Closure status, validation, execution and preview DTOs.
    period_outcome: Outcome and pending-subject read models.
"""
