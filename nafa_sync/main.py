"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn nafa_sync.main:app --reload

For production:
    gunicorn nafa_sync.main:app -w 2 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from . import __version__
from .api.routes import health, webhooks
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the configuration state on startup so a missing secret shows
    up in the deploy logs instead of in the first failed sync.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "NAFA audit sync starting",
        extra={
            "version": __version__,
            "r2_mock_mode": settings.r2_mock_mode,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    # Shutdown
    logger.info("NAFA audit sync shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    This function is called once at startup (in production) or
    multiple times (in tests with different configurations).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Syncs NAFA audit files from Monday.com to Close CRM.

        When a file is uploaded to the NAFA file column on the Credit Audits
        board, Monday calls `POST /webhooks/monday` and the service:

        1. Downloads the file from Monday.com
        2. Uploads it to Close CRM (two-step: init, then S3)
        3. Stores a copy in Cloudflare R2 for public hosting
        4. Updates the Close lead's custom field with the R2 public URL
        5. Creates a Close note with the file attachment
        """,
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        webhooks.router,
        prefix="/webhooks",
        tags=["Webhooks"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - service info."""
        return {
            "message": "NAFA Audit Sync",
            "version": __version__,
            "webhook": "/webhooks/monday",
            "health": "/health",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        The webhook route handles its own failures; this covers anything
        raised while resolving dependencies or in other routes. We log the
        full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return PlainTextResponse("Internal error", status_code=500)

    logger.info(
        "FastAPI application created",
        extra={"title": settings.api_title, "version": __version__}
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "nafa_sync.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
