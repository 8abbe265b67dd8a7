"""
FastAPI application entry point.

create_app(settings) builds the collaborators once, stores them on
app.state and wires routes, middleware and exception handlers. Nothing
is created at import time; run it through uvicorn's factory mode.

For local development:
    uvicorn tubely.main:create_app --factory --reload

For production:
    gunicorn "tubely.main:create_app()" -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api.dependencies import build_services
from .api.middleware import UploadSizeLimitMiddleware
from .api.routes import health, uploads, videos
from .config.settings import Settings, get_settings
from .core.media.errors import MediaError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.services.settings

    logger.info(
        "Tubely API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "s3": settings.s3_mock_mode,
                "video_processor": settings.video_processor_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Requests that need the missing pieces fail; health endpoints report it
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Tubely API shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Configuration to build the app from. Defaults to the
            environment via get_settings().
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level.upper(),
    )

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Video hosting backend.

        ## Workflow

        1. **Create a draft**: `POST /api/videos`
        2. **Upload the video**: `POST /api/video_upload/{video_id}`
           - MP4 only, up to 1 GiB
           - Remuxed for fast start and stored under an orientation prefix
        3. **Upload a thumbnail**: `POST /api/thumbnail_upload/{video_id}`
        4. **Watch**: `GET /api/videos/{video_id}` returns a presigned URL

        ## Authentication

        Write endpoints require a JWT in the `Authorization: Bearer` header.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    services = build_services(settings)
    app.state.services = services

    app.add_middleware(
        UploadSizeLimitMiddleware,
        limits={
            "/api/video_upload": settings.max_video_upload_bytes,
            "/api/thumbnail_upload": settings.max_thumbnail_upload_bytes,
        },
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        videos.router,
        prefix="/api/videos",
        tags=["Videos"],
    )

    app.include_router(
        uploads.router,
        prefix="/api",
        tags=["Uploads"],
    )

    app.mount(
        "/assets",
        StaticFiles(directory=services.assets.root),
        name="assets",
    )

    @app.exception_handler(MediaError)
    async def media_error_handler(request: Request, exc: MediaError) -> JSONResponse:
        """
        Map taxonomy errors to their HTTP status.

        Server-side failures get the class's generic message; the detail
        (stderr, SDK errors) only goes to the log.
        """
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "error": type(exc).__name__,
                    "detail": exc.message,
                },
                exc_info=exc,
            )
            detail = exc.default_message
        else:
            detail = exc.message

        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": detail},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
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
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "tubely.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8091,
        reload=True,
        log_level=settings.log_level.lower(),
    )
