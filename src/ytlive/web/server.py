"""
Web server for ytlive.

Provides the FastAPI application exposing the stream operator API. The app
owns one :class:`StreamRuntime`; its lifespan starts the reconciliation loop
and, on shutdown, stops live streams and the broadcaster.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..infra.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from ..runtime.context import StreamRuntime, build_runtime
from .api import streams

logger = logging.getLogger(__name__)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(runtime: StreamRuntime | None = None) -> FastAPI:
    """Create the FastAPI app around ``runtime`` (built from settings when omitted)."""
    runtime = runtime or build_runtime()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        runtime.start()
        logger.info("ytlive API started (%d streams loaded)", len(runtime.store))
        try:
            yield
        finally:
            runtime.shutdown()
            logger.info("ytlive API stopped")

    app = FastAPI(title="ytlive", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(422, exc)

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(InvalidTransitionError)
    async def _invalid_transition(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(409, exc)

    @app.get("/health")
    def health() -> dict[str, object]:
        return {
            "status": "ok",
            "version": __version__,
            "streams": len(runtime.store),
            "reconciler_running": runtime.reconciler.running,
        }

    app.include_router(streams.router)
    return app


def run_server(host: str = "127.0.0.1", port: int = 8420, runtime: StreamRuntime | None = None) -> None:
    app = create_app(runtime)
    logger.info("Starting ytlive API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_config=None)
