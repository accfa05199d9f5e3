"""
FastAPI Application Factory

Creates and configures the analytics API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from portal_analytics.analytics import AnalyticsError, DataSourceUnavailableError
from portal_analytics.config import Settings, get_settings
from portal_analytics.config.logging import configure_logging
from portal_analytics.database import Database, create_database
from .middleware import RateLimitMiddleware, RequestLoggingMiddleware, SecurityHeadersMiddleware
from .routes import buyers_router, dashboards_router, health_router

logger = structlog.get_logger(__name__)


async def data_source_unavailable_handler(request: Request, exc: DataSourceUnavailableError) -> JSONResponse:
    logger.error(
        "Data source unavailable",
        path=request.url.path,
        source=exc.source,
        business_id=exc.business_id,
        error=str(exc.original_error) if exc.original_error else None,
    )
    return JSONResponse(
        status_code=503,
        content={"error": "data_source_unavailable", "source": exc.source},
        headers={"Retry-After": "30"},
    )


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    logger.error("Analytics error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "analytics_error", "message": str(exc)})


def create_api_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to environment settings)
        database: Pre-built database; created from settings at startup when omitted

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        logger.info("Starting Portal Analytics API", environment=settings.app_env, version=settings.version)

        owns_database = database is None
        app.state.database = database or create_database(settings)
        try:
            await app.state.database.connect()
        except Exception as e:
            # Readiness probe reports the outage; the process stays up
            logger.warning("Database not reachable at startup", error=str(e))

        yield

        logger.info("Shutting down...")
        if owns_database:
            await app.state.database.dispose()

    app = FastAPI(
        title="Portal Analytics API",
        description="Revenue, trend and fulfillment analytics for marketplace businesses",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(DataSourceUnavailableError, data_source_unavailable_handler)
    app.add_exception_handler(AnalyticsError, analytics_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(dashboards_router, prefix="/api/v1/dashboards", tags=["Dashboards"])
    app.include_router(buyers_router, prefix="/api/v1/buyers", tags=["Buyers"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint"""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs" if settings.is_development else None,
        }

    return app
