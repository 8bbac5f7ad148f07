# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

Domains:
    grading: Final grade aggregation from qualifications and council points.
    promotion: Promotion decision and target grade for each inscription.
    pending_subject: Subjects owed across periods.
    period_closure: Closure validation, execution, preview and read models.
"""
