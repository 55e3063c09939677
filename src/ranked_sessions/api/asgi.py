"""ASGI entrypoint for the ranked sessions API.

Run with ``uvicorn --factory ranked_sessions.api.asgi:create_asgi_app`` so
settings are read when the server starts rather than at import time.
"""

import logging

from fastapi import FastAPI

from ranked_sessions.api.app import create_app
from ranked_sessions.config import Settings
from ranked_sessions.containers import build_container

logger = logging.getLogger(__name__)


def create_asgi_app(settings: Settings | None = None) -> FastAPI:
    """Build the container from settings and return the served app."""
    container = build_container(settings)
    app = create_app(container)
    logger.info(
        "Ranked sessions API ready (environment=%s, ranking_enabled=%s)",
        container.settings.environment,
        container.settings.ranking_enabled,
    )
    return app
