"""
FastAPI application entry point.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from manos_gateway.api.routes import api_router
from manos_gateway.core.config import settings
from manos_gateway.core.exceptions import register_exception_handlers
from manos_gateway.core.logging import RequestLoggingMiddleware, setup_logging
from manos_gateway.core.metrics import PrometheusMiddleware, metrics_endpoint, update_service_health
from manos_gateway.core.rate_limit import limiter, rate_limit_exceeded_handler
from manos_gateway.core.sentry import init_sentry
from manos_gateway.services.upstream import (
    get_backend_client,
    get_external_client,
    get_optimizer_client,
)

# Setup logging
setup_logging(
    level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    json_format=not settings.DEBUG,
)

logger = logging.getLogger(__name__)

# Initialize Sentry (if configured)
init_sentry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting application...")
    settings.validate_production_settings()

    # Initial health check of upstream services
    await _check_upstream_services()

    logger.info("Application started successfully")
    yield
    # Shutdown
    logger.info("Application shutdown complete")


async def _check_upstream_services():
    """Check and report health of upstream services on startup."""
    clients = {
        "backend": get_backend_client(),
        "external": get_external_client(),
        "optimizer": get_optimizer_client(),
    }

    results = await asyncio.gather(*(client.health_check() for client in clients.values()))

    for name, healthy in zip(clients, results):
        update_service_health(name, healthy)
        if healthy:
            logger.info(f"{name} service: healthy")
        else:
            logger.warning(f"{name} service: unhealthy ({clients[name].base_url})")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Backend-for-frontend gateway for delivery route planning and tracking",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        lifespan=lifespan,
    )

    # Standardized exception handlers (must be registered first)
    register_exception_handlers(app)

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Prometheus metrics middleware
    if settings.METRICS_ENABLED:
        app.add_middleware(PrometheusMiddleware)

    # Request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # Metrics endpoint (outside API prefix)
    if settings.METRICS_ENABLED:
        app.add_api_route(
            settings.METRICS_PATH,
            metrics_endpoint,
            methods=["GET"],
            include_in_schema=False,
        )

    logger.info(f"Application configured: {settings.APP_NAME} v{settings.APP_VERSION}")

    return app


app = create_app()


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_PREFIX}/docs",
        "metrics": settings.METRICS_PATH if settings.METRICS_ENABLED else None,
    }
