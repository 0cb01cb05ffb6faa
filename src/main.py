"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn src.main:app --reload

For production:
    gunicorn src.main:app -w 1 -k uvicorn.workers.UvicornWorker

Run a single worker: the listing cache lives in process memory and is not
shared between workers.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import GalleryAPIError
from .api.routes import gallery, health, upload
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Makes sure the staging directory exists and reports configuration
    problems on startup.
    """
    # Startup
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "Media Gallery API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {
                "storage": settings.storage_mock_mode,
                "transcoder": settings.transcoder_mock_mode,
            }
        }
    )

    Path(settings.staging_dir).mkdir(parents=True, exist_ok=True)

    # Validate configuration
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    # Shutdown
    logger.info("Media Gallery API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Media gallery backend.

        ## Endpoints

        - `POST /upload`: upload up to 10 images/videos (multipart field `media`)
        - `GET /gallery?limit=10&offset=0`: paginated presigned URLs, newest first

        ## Authentication

        HTTP Basic. The password is the shared `AUTH_PASSWORD` secret.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(upload.router, tags=["Upload"])
    app.include_router(gallery.router, tags=["Gallery"])

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - service info."""
        return {
            "message": "Media Gallery API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(GalleryAPIError)
    async def gallery_error_handler(request: Request, exc: GalleryAPIError):
        """Render expected failures as {"error": message}."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return a generic message.
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

        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
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
        "src.main:app",
        host="0.0.0.0",
        port=3000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
