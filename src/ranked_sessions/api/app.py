"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from ranked_sessions.api.rankings import router as rankings_router
from ranked_sessions.app_logging import configure_logging
from ranked_sessions.containers import AppContainer
from ranked_sessions.errors import AppError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    app.include_router(rankings_router)

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.severity == "error":
            logger.error(
                "%s %s failed with %s: %s %s",
                request.method,
                request.url.path,
                exc.code,
                exc.message,
                exc.metadata,
            )
        else:
            logger.info(
                "%s %s rejected with %s: %s",
                request.method,
                request.url.path,
                exc.code,
                exc.message,
            )
        return JSONResponse(
            status_code=exc.status_code, content={"error": exc.to_dict()}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics(request: Request) -> PlainTextResponse:
        """Prometheus text exposition of the ranking counters."""
        state_container: AppContainer = request.app.state.container
        return PlainTextResponse(state_container.metrics.to_prometheus())

    @app.get("/metrics/json")
    async def metrics_json(request: Request) -> dict[str, dict[str, int]]:
        """Counters as JSON."""
        state_container: AppContainer = request.app.state.container
        return state_container.metrics.to_dict()

    return app
