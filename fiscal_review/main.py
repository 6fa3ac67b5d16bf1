"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fiscal_review.config import settings
from fiscal_review.api.errors import register_error_handlers
from fiscal_review.api.router import api_router
from fiscal_review.models.database import close_db
from fiscal_review.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # Startup
    setup_logging()

    # Sentry init if configured
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
        )

    logger.info(
        "service_started",
        version=settings.APP_VERSION,
        panel_quorum=settings.PANEL_QUORUM,
        database_configured=bool(settings.DATABASE_URL),
    )

    yield

    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Fiscal Review & Sign-off",
        description="Panel review, diligence tracking and sign-off of monthly financial reports.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics endpoint
    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    register_error_handlers(app)

    # Include all API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()
