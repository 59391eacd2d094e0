"""
FastAPI application entry point for Cheerboard.

This module creates the FastAPI application with:
- CORS middleware for the web frontend
- Lifespan wiring of the process cache, document store and store gateway
- Exception handlers mapping service errors to HTTP responses
- Health check and API routers under /api
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cheerboard import __version__
from cheerboard.api import admin, events, performers, users
from cheerboard.config.settings import AppSettings, get_settings
from cheerboard.services.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    StoreUnavailableError,
    ValidationError,
)
from cheerboard.store import DocumentStore, StoreGateway, create_store
from cheerboard.utils.cache import Clock, MemoryCache, utc_now
from cheerboard.utils.logging_config import get_logger, init_logging


# Most specific first; subclasses of an unlisted ServiceError fall back to 500
ERROR_RESPONSES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN, "Permission Denied"),
    (InvalidTransitionError, status.HTTP_409_CONFLICT, "Invalid Transition"),
    (ConflictError, status.HTTP_409_CONFLICT, "Conflict"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "Validation Error"),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE, "Store Unavailable"),
]


# Exception handlers


async def service_exception_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    Handle service-layer errors.

    Args:
        request: HTTP request
        exc: ServiceError raised by a service

    Returns:
        JSON response with the mapped status code and the error message
    """
    logger = get_logger("api")
    for error_type, status_code, label in ERROR_RESPONSES:
        if isinstance(exc, error_type):
            break
    else:
        status_code, label = status.HTTP_500_INTERNAL_SERVER_ERROR, "Service Error"

    log = logger.error if status_code >= 500 else logger.warning
    log(
        label,
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error": exc.message,
        },
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": label, "message": exc.message},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all other unhandled exceptions.

    Returns:
        JSON response with generic error message
    """
    logger = get_logger("api")
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later.",
        }
    )


def create_app(
    store: Optional[DocumentStore] = None,
    cache: Optional[MemoryCache] = None,
    settings: Optional[AppSettings] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        store: Document store to use (default: built from settings.store_url
            at startup and closed at shutdown)
        cache: Process cache (default: a new MemoryCache)
        settings: Application settings (default: get_settings())
        clock: Callable returning the current aware datetime

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan.

        - Startup: create the cache, document store and store gateway
        - Shutdown: close a store this application created
        """
        logger = get_logger("api")
        logger.info("Starting cheerboard API")

        app_store = store if store is not None else create_store(settings.store_url)
        app.state.settings = settings
        app.state.clock = clock
        app.state.cache = cache if cache is not None else MemoryCache(clock=clock)
        app.state.store = app_store
        app.state.gateway = StoreGateway(
            app_store,
            timeout_seconds=settings.store_timeout_seconds,
            max_attempts=settings.store_max_attempts,
            retry_delay_seconds=settings.store_retry_delay_seconds,
        )
        logger.info(
            "Application state initialized",
            extra={"store": type(app_store).__name__},
        )

        yield

        logger.info("Shutting down cheerboard API")
        if store is None:
            await app_store.close()

    app = FastAPI(
        title="Cheerboard API",
        description="Moderated catalog of cheerleader performers and fan support events, "
                    "with map browsing and per-user favorites.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, Any]:
        """Health status and application information."""
        return {
            "status": "healthy",
            "service": "cheerboard",
            "version": __version__,
        }

    app.include_router(performers.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(users.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root() -> Dict[str, str]:
        """API metadata and documentation links."""
        return {
            "message": "Cheerboard API",
            "version": __version__,
            "docs": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        }

    return app


# Initialize logging before creating app
init_logging()

app = create_app()
