# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Run the period closure API with uvicorn.

    python -m school_closure
"""

import uvicorn

from school_closure.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "school_closure.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        workers=1 if settings.api.reload else settings.api.workers,
        reload=settings.api.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
