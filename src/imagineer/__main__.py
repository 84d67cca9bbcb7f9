"""Run the API server: ``python -m imagineer`` or the ``imagineer`` script."""

from __future__ import annotations

import uvicorn

from imagineer.core.config import get_settings
from imagineer.core.logging import configure_logging


def main() -> None:
    """Start uvicorn with the application factory."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    uvicorn.run(
        "imagineer.api.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
