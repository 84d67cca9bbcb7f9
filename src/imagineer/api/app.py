"""Application factory for the Imagineer REST API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from imagineer.analysis.resolution import ResolutionService
from imagineer.api.errors import register_error_handlers
from imagineer.api.routes import ROUTERS
from imagineer.auth.crypto import ApiKeyCipher
from imagineer.auth.oauth import GoogleOAuthClient
from imagineer.core.config import Settings, get_settings
from imagineer.core.logging import configure_logging, get_logger, log_context
from imagineer.enrichment.runner import EnrichmentRunner
from imagineer.storage.database import Database, get_database

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def request_context(request: Request, call_next) -> Response:
    """Bind request id, method and path to every log entry of a request."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    with log_context(request_id=request_id, method=request.method, path=request.url.path):
        response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    runner: EnrichmentRunner | None = None,
    oauth: GoogleOAuthClient | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create the FastAPI application.

    Every collaborator can be injected, which is how the tests swap in a
    temporary database, a scripted LLM and a fake Google client.

    Args:
        settings: Application settings, defaults to the environment.
        database: Database to use, defaults to the global instance.
        runner: Enrichment runner, defaults to one on ``database``.
        oauth: Google OAuth client.
        configure_logs: Set up structlog on startup.

    Returns:
        The configured application.
    """
    settings = settings or get_settings()
    db = database or get_database()
    cipher = ApiKeyCipher(
        settings.auth.encryption_key.get_secret_value() if settings.auth.encryption_key else None
    )
    runner = runner or EnrichmentRunner(db, cipher=cipher)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if configure_logs:
            configure_logging(level=settings.log_level, json_format=settings.log_json)
        logger.info(
            "Imagineer API starting",
            version=settings.app_version,
            database=str(db.db_path),
        )
        yield
        logger.info("Imagineer API stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Campaign management backend for tabletop RPG game masters",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.middleware("http")(request_context)

    app.state.settings = settings
    app.state.db = db
    app.state.cipher = cipher
    app.state.runner = runner
    app.state.resolution = ResolutionService(db, auto_enrich=runner.try_auto_enrich)
    app.state.oauth = oauth or GoogleOAuthClient(settings.auth)

    register_error_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    return app


__all__ = ["create_app", "request_context"]
