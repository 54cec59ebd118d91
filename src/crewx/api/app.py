"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crewx import __version__
from crewx.api.routes import (
    accounts_router,
    auth_router,
    dashboard_router,
    health_router,
    jobs_router,
    notifications_router,
    payouts_router,
)
from crewx.config import Settings, configure_logging, get_settings
from crewx.database import create_schema, dispose_db, init_db
from crewx.exceptions import (
    AuthenticationError,
    ConflictError,
    CrewXError,
    NotFoundError,
    PermissionDeniedError,
    QrRejectedError,
    ValidationError,
)
from crewx.services.qr_verifier import GeminiQrVerifier, QrVerifier
from crewx.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

# Checked in order; the first matching class decides the status code.
ERROR_STATUS: list[tuple[type[CrewXError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (QrRejectedError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
]


def status_for(exc: CrewXError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    if app.state.owns_database:
        await create_schema()
    yield
    # Shutdown
    if app.state.owns_database:
        await dispose_db()


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    qr_verifier: QrVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing ``session_factory`` binds the app to an existing database, whose
    schema and engine the caller then owns.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="CrewX API",
        description="Staffing marketplace bookkeeping: jobs, enrollments and payouts",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.owns_database = session_factory is None
    if session_factory is None:
        _, session_factory = init_db()
    app.state.session_factory = session_factory
    app.state.sessions = SessionManager(ttl_minutes=settings.session_ttl_minutes)
    app.state.qr_verifier = qr_verifier or GeminiQrVerifier.from_settings(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(CrewXError)
    async def crewx_exception_handler(request: Request, exc: CrewXError) -> JSONResponse:
        """Map domain errors to their HTTP status."""
        code = status_for(exc)
        if code >= 500:
            logger.error(
                "%s on %s %s: %s", exc.code, request.method, request.url.path, exc
            )
        return JSONResponse(status_code=code, content={"detail": exc.message, "code": exc.code})

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    for router in (
        auth_router,
        accounts_router,
        jobs_router,
        payouts_router,
        notifications_router,
        dashboard_router,
    ):
        app.include_router(router, prefix="/api/v1")

    return app
