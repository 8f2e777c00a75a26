"""Application entrypoint."""

from __future__ import annotations

import uvicorn

from rollout_engine.api.app import create_app
from rollout_engine.config import get_settings
from rollout_engine.infrastructure.observability.logging import setup_logging
from rollout_engine.infrastructure.observability.tracing import setup_tracing


app = create_app()


def main() -> None:
    """Run the application."""
    settings = get_settings()
    setup_logging(settings.observability.log_level)
    setup_tracing(settings.observability)

    uvicorn.run(
        "rollout_engine.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.debug,
        log_level=settings.observability.log_level.lower(),
    )


if __name__ == "__main__":
    main()
