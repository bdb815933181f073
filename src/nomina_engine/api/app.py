"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nomina_engine.api.routes import (
    auth_router,
    calendars_router,
    companies_router,
    employees_router,
    health_router,
    incidences_router,
    invitations_router,
    notifications_router,
    payroll_router,
    periods_router,
)
from nomina_engine.config import Settings, configure_logging, get_settings
from nomina_engine.database import close_db, init_db
from nomina_engine.errors import NominaError, translate_integrity_error

logger = logging.getLogger(__name__)


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": code, "message": message}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return body


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the engine for the app's settings; dispose it on shutdown."""
    settings: Settings = app.state.settings
    init_db(settings.database_url)
    logger.info("Database engine initialized (%s)", settings.environment)
    yield
    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Nomina Engine API",
        description="Payroll calendars, incidences and approvals for Mexican companies",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(NominaError)
    async def nomina_error_handler(request: Request, exc: NominaError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("VALIDATION_ERROR", "Datos de entrada inválidos", exc.errors()),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        error = translate_integrity_error(exc)
        return JSONResponse(
            status_code=error.status_code,
            content=error_body(error.code, error.message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("HTTP_ERROR", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        details = None
        if settings.is_development:
            details = {"exception": type(exc).__name__, "detail": str(exc)}
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("INTERNAL_ERROR", "Error interno del servidor", details),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router, prefix="/api")
    app.include_router(invitations_router, prefix="/api")
    app.include_router(companies_router, prefix="/api")
    app.include_router(calendars_router, prefix="/api")
    app.include_router(periods_router, prefix="/api")
    app.include_router(incidences_router, prefix="/api")
    app.include_router(payroll_router, prefix="/api")
    app.include_router(employees_router, prefix="/api")
    app.include_router(notifications_router, prefix="/api")

    return app
