"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the orchestrator facade.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from plan_orchestrator import __version__
from plan_orchestrator.orchestrator.config import OrchestratorSettings
from plan_orchestrator.orchestrator.engine import Orchestrator
from plan_orchestrator.orchestrator.errors import (
    Conflict,
    InvalidDefinition,
    InvariantViolation,
    NotFound,
    OrchestratorError,
)
from plan_orchestrator.orchestrator.logging import configure_logging
from plan_orchestrator.server.router import router

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[OrchestratorError], int]] = [
    (NotFound, 404),
    (Conflict, 409),
    (InvariantViolation, 409),
    (InvalidDefinition, 422),
]


def _status_for(error: OrchestratorError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 400


def create_app(settings: OrchestratorSettings | None = None) -> FastAPI:
    settings = settings or OrchestratorSettings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Plan Orchestrator",
        version=__version__,
        description="REST API over the file-backed plan-to-execution orchestrator.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose settings and the facade for request handlers.
    app.state.settings = settings
    app.state.orchestrator = Orchestrator(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OrchestratorError)
    async def orchestrator_error(_request: Request, exc: OrchestratorError) -> JSONResponse:
        status = _status_for(exc)
        logger.info(
            "Request rejected",
            extra={"error": type(exc).__name__, "status": status, "detail": str(exc)},
        )
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    app.include_router(router, prefix="/api")
    return app
