"""
FastAPI Main Application
Factory Inventory API Service
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from inventory_api import __version__
from inventory_api.api.v1.router import api_router
from inventory_api.core.config import settings
from inventory_api.core.container import ServiceContainer, build_container
from inventory_api.core.database import build_engine, build_session_factory, init_database
from inventory_api.core.exceptions import InventoryAPIError, PermissionDenied
from inventory_api.core.logging import setup_logging
from inventory_api.middleware.logging import LoggingMiddleware
from inventory_api.middleware.security import SecurityHeadersMiddleware
from inventory_api.services.bootstrap_admin import bootstrap_permission_store

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    container: ServiceContainer = app.state.container
    owns_engine: bool = app.state.owns_engine

    logger.info("Starting Factory Inventory API Service", version=__version__)
    try:
        if container.engine is not None:
            await init_database(container.engine)
        async with container.session_factory() as session:
            await bootstrap_permission_store(session)
    except Exception as e:
        logger.error("Startup failed", error=str(e), exc_info=True)
        raise

    yield

    logger.info("Shutting down Factory Inventory API Service")
    container.cache.invalidate_all()
    if owns_engine and container.engine is not None:
        await container.engine.dispose()


def _error_body(request: Request, message: str, **extra) -> dict:
    body = {"success": False, "message": message, **extra}
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["request_id"] = request_id
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PermissionDenied)
    async def permission_denied_handler(request: Request, exc: PermissionDenied):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, required_permission=exc.required_permission),
        )

    @app.exception_handler(InventoryAPIError)
    async def inventory_error_handler(request: Request, exc: InventoryAPIError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message, error_type=type(exc).__name__)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "An unexpected error occurred"),
        )


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Without a container one is built from settings, owning its own engine.
    Tests pass a container wired to an isolated database.
    """
    owns_engine = container is None
    if container is None:
        engine = build_engine()
        container = build_container(build_session_factory(engine), engine)

    app = FastAPI(
        title="Factory Inventory API",
        description="Authentication and authorization for the factory inventory system",
        version=__version__,
        docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.owns_engine = owns_engine

    # CORS must wrap everything else so preflight requests are answered
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
        max_age=600,
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Factory Inventory API Service",
            "version": __version__,
            "docs": "/docs" if settings.ENVIRONMENT == "development" else "disabled",
            "health": "/api/v1/health/",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "inventory_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower()
    )
