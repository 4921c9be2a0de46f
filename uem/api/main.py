"""UEM FastAPI application: entry point.

Start with:
    uvicorn uem.api.main:app --reload --host 0.0.0.0 --port 8000

Error logs are persisted to PostgreSQL when UEM_DB_LOG_ENABLED is on (the
default); with it off the service runs without a database and the error-log
routes answer with a configuration error.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from uem.api.middleware import ErrorHandlingMiddleware
from uem.api.rate_limit import limiter
from uem.config.settings import ErrorManagerSettings, load_settings
from uem.core.logger import configure
from uem.errors.definitions import build_store
from uem.errors.handlers import Mailer, build_default_handlers
from uem.errors.manager import ErrorManager
from uem.errors.testing import TestingConditionsManager
from uem.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure()
    settings: ErrorManagerSettings = app.state.settings
    manager: ErrorManager = app.state.error_manager

    owns_engine = False
    if app.state.session_factory is None and settings.database_logging.enabled:
        await ensure_database_exists()
        engine = build_engine()
        app.state.session_factory = build_session_factory(engine)
        await init_db()
        owns_engine = True

    if not manager.handlers:
        for handler in build_default_handlers(
            settings,
            manager.store,
            manager.formatter,
            app.state.testing_conditions,
            session_factory=app.state.session_factory,
            mailer=app.state.mailer,
            http_client=app.state.slack_client,
        ):
            manager.register_handler(handler)
    logger.info(
        "API: error manager ready (env=%s, handlers=%s)",
        settings.environment, [h.name() for h in manager.handlers],
    )

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    if owns_engine:
        await close_engine()
        logger.info("API: engine disposed")


def create_app(
    settings: Optional[ErrorManagerSettings] = None,
    *,
    errors: Optional[Mapping[str, Mapping[str, Any]]] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    mailer: Optional[Mailer] = None,
    slack_client: Optional[httpx.AsyncClient] = None,
    admin_api_key: Optional[str] = None,
) -> FastAPI:
    """Build the app. *errors* extends the bundled error definitions."""
    settings = settings or load_settings()

    app = FastAPI(
        title="UEM Error Manager API",
        version="1.0.0",
        description="Error definitions, simulation controls and the error-log dashboard.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.error_manager = ErrorManager(build_store(errors), settings=settings)
    app.state.testing_conditions = TestingConditionsManager(settings.environment)
    app.state.session_factory = session_factory
    app.state.mailer = mailer
    app.state.slack_client = slack_client

    # Rate limiter: UEM_RATE_LIMIT, default 60/minute; excess flows into the error pipeline
    app.state.limiter = limiter

    ErrorHandlingMiddleware(show_error_codes=settings.ui.show_error_codes).install(app)

    _allowed_origins = os.environ.get(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Optional API key authentication ──────────────────────────
    # With ADMIN_API_KEY set, /api/errors/* requires the header X-Api-Key: <value>.
    # Without it the check is skipped (dev/open mode).
    api_key = admin_api_key if admin_api_key is not None else os.environ.get("ADMIN_API_KEY", "")
    api_key = api_key.strip() or None

    @app.middleware("http")
    async def api_key_middleware(request: Request, call_next):
        if api_key and request.url.path.startswith("/api/errors"):
            if request.headers.get("X-Api-Key") != api_key:
                return JSONResponse(
                    status_code=401,
                    content={"detail": "Unauthorized: set X-Api-Key header"},
                )
        return await call_next(request)

    # ── Routers ──────────────────────────────────────────────────
    from uem.api.routers import definitions, error_logs, simulations

    app.include_router(definitions.router, prefix="/api")
    app.include_router(simulations.router, prefix="/api")
    app.include_router(error_logs.router, prefix="/api")

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
