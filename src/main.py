# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Run the ResultGate API with uvicorn.

Usage:
    python -m src.main
    resultgate-api
"""

import uvicorn

from src.core.config import get_settings


def main() -> None:
    """Start the API server using the API_* settings."""
    api = get_settings().api
    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=api.host,
        port=api.port,
        workers=1 if api.reload else api.workers,
        reload=api.reload,
    )


if __name__ == "__main__":
    main()
