# ==============================================================================
# MAIN APPLICATION - FastAPI Entry Point
# ==============================================================================
# Application factory with lifespan events, middleware, and routing
# ==============================================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from openai import AsyncOpenAI
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from agricsmart.api.router import api_router
from agricsmart.core.exceptions import AppException
from agricsmart.core.logging import setup_logging
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.database.factory import DatabaseFactory
from agricsmart.middleware.request_logger import RequestLoggerMiddleware
from agricsmart.realtime import ConnectionManager
from agricsmart.realtime.socket import router as socket_router
from agricsmart.schemas.base import HealthResponse
from agricsmart.services.advisory_service import AdvisoryService
from agricsmart.services.email_service import EmailService
from agricsmart.services.event_handlers import create_dispatcher

logger = logging.getLogger(__name__)


# ==============================================================================
# LIFESPAN MANAGEMENT
# ==============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    - Startup: connect the database (unless one was injected), build the
      outbox dispatcher and start it when the worker is enabled
    - Shutdown: stop the dispatcher, close connections we opened
    """
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    owns_database = app.state.database is None
    if owns_database:
        app.state.database = await DatabaseFactory.initialize()

    app.state.dispatcher = create_dispatcher(app.state.database, app.state.email)
    if settings.OUTBOX_WORKER_ENABLED:
        app.state.dispatcher.start()

    yield

    logger.info("Shutting down application...")
    await app.state.dispatcher.stop()
    if owns_database:
        await DatabaseFactory.shutdown(app.state.database)
        app.state.database = None
    logger.info("Application shutdown complete")


# ==============================================================================
# APPLICATION FACTORY
# ==============================================================================

def create_app(
    database: Optional[BaseDatabaseAdapter] = None,
    advisory_client: Optional[AsyncOpenAI] = None,
    email_service: Optional[EmailService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database: Connected adapter to use instead of opening one from
            settings; the caller keeps ownership
        advisory_client: OpenAI client override for the advisory service
        email_service: Mail sender override

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
    )

    app.state.database = database
    app.state.realtime = ConnectionManager()
    app.state.email = email_service or EmailService()
    app.state.advisory = AdvisoryService(client=advisory_client)
    app.state.dispatcher = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggerMiddleware)

    register_exception_handlers(app)

    app.include_router(api_router)
    app.include_router(socket_router)

    register_health_endpoints(app)

    return app


# ==============================================================================
# EXCEPTION HANDLERS
# ==============================================================================

def _error(status_code: int, message: str, code: str, details: Optional[dict] = None) -> JSONResponse:
    content = {"success": False, "error": message, "code": code}
    if details:
        content["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure with the same error envelope."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request,
        exc: AppException,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg"),
            }
            for err in exc.errors()
        ]
        first = errors[0] if errors else {"field": "", "message": "Invalid request"}
        message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
        return _error(
            status.HTTP_400_BAD_REQUEST,
            message,
            "VALIDATION_ERROR",
            {"validation_errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        response = _error(exc.status_code, str(exc.detail), "HTTP_ERROR")
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(PyMongoError)
    async def database_exception_handler(
        request: Request,
        exc: PyMongoError,
    ) -> JSONResponse:
        logger.error(f"Database error on {request.url.path}: {exc}")
        return _error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Database temporarily unavailable",
            "DATABASE_ERROR",
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception(f"Unexpected error: {exc}")
        details = {"detail": str(exc)} if settings.DEBUG else None
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
            details,
        )


# ==============================================================================
# HEALTH ENDPOINTS
# ==============================================================================

def register_health_endpoints(app: FastAPI) -> None:
    """Register health check endpoints."""

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        summary="Health check",
        description="Check application and database health.",
    )
    async def health_check(request: Request) -> HealthResponse:
        database = request.app.state.database
        db_healthy = database is not None and await database.health_check()

        return HealthResponse(
            status="healthy" if db_healthy else "degraded",
            version=settings.APP_VERSION,
            database="connected" if db_healthy else "disconnected",
        )

    @app.get(
        "/",
        tags=["Health"],
        summary="Root endpoint",
        description="Welcome message and API information.",
    )
    async def root() -> dict:
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs" if settings.DEBUG else "Disabled in production",
            "health": "/health",
        }


# Create application instance
app = create_app()


# ==============================================================================
# DEVELOPMENT RUNNER
# ==============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agricsmart.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
