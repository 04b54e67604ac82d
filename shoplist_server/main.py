from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shoplist_server.api.admin import router as admin_router
from shoplist_server.api.health import router as health_router
from shoplist_server.api.metrics_endpoint import router as metrics_router
from shoplist_server.api.users import router as users_router
from shoplist_server.core.config import Settings, load_settings
from shoplist_server.core.logging import setup_logging
from shoplist_server.db.engine import build_engine, build_session_factory, create_tables
from shoplist_server.middleware.metrics import MetricsMiddleware
from shoplist_server.middleware.request_context import (
    RequestContextMiddleware,
    install_request_id_filter,
)
from shoplist_server.repos.sql_user_repo import SqlUserDirectory
from shoplist_server.repos.user_repo import InMemoryUserDirectory, UserDirectory
from shoplist_server.services.auth_components import build_auth_components
from shoplist_server.services.errors import AuthError

logger = logging.getLogger(__name__)


def _auth_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    # Only the generic message leaves the process; the reason was logged
    # by the guard that raised.
    assert isinstance(exc, AuthError)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message},
        headers=headers,
    )


def create_app(
    settings: Settings | None = None,
    users: UserDirectory | None = None,
) -> FastAPI:
    """Build the application.

    Nothing touches the filesystem or the database here; secrets, the
    token ledger and the user directory are opened in the lifespan, so a
    misprovisioned secret stops the server before it accepts a request.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    install_request_id_filter()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        engine = None
        directory = users
        if directory is None and settings.database_url:
            engine = build_engine(settings.database_url)
            create_tables(engine)
            directory = SqlUserDirectory(build_session_factory(engine))
            logger.info("Using SQL user directory")
        elif directory is None:
            directory = InMemoryUserDirectory()
            logger.warning("DATABASE_URL not set; users are kept in memory only")

        app.state.auth = build_auth_components(settings, directory)
        try:
            yield
        finally:
            if engine is not None:
                engine.dispose()
            logger.info("shopping-list-server stopped")

    app = FastAPI(
        title="shopping-list-server",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.settings = settings
    app.add_exception_handler(AuthError, _auth_error_handler)

    # Last added runs first: RequestContext (outermost) -> Metrics -> route,
    # so every metric and log line already has a request ID.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(metrics_router)
    app.include_router(admin_router)
    app.include_router(health_router)
    app.include_router(users_router)

    logger.info(
        "shopping-list-server configured  env=%s log_level=%s port=%d docs=%s",
        settings.app_env,
        settings.log_level,
        settings.port,
        "on" if settings.is_dev else "off",
    )
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` on the configured port."""
    settings: Settings = app.state.settings
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)
