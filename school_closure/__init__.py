"""School period closure backend.

Grade aggregation, promotion decisioning, pending-subject tracking and the
transactional period closure that rolls a student cohort into the next
academic period.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
