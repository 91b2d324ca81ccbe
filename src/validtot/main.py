"""
ValidToT Backend Application

Image-choice voting posts with exactly-once votes per voter.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from validtot import __version__
from validtot.api.deps import ANON_TOKEN_HEADER
from validtot.api.v1 import router as api_v1_router
from validtot.core.config import settings
from validtot.core.errors import ValidtotError, VotingClosedError
from validtot.core.events import create_start_app_handler, create_stop_app_handler

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    await create_start_app_handler(app)()
    yield
    # Shutdown
    await create_stop_app_handler(app)()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=settings.APP_NAME,
        description="Image-choice voting posts",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", ANON_TOKEN_HEADER],
        expose_headers=[ANON_TOKEN_HEADER],
    )

    application.include_router(api_v1_router, prefix="/api/v1")

    @application.exception_handler(ValidtotError)
    async def validtot_exception_handler(request: Request, exc: ValidtotError) -> JSONResponse:
        """Map domain errors to their HTTP status and user-facing message."""
        content: dict = {"detail": exc.message, "error_type": type(exc).__name__}
        if isinstance(exc, VotingClosedError):
            content["state"] = exc.state
        if exc.status_code >= 500:
            logger.warning("request_failed", error_type=type(exc).__name__, path=request.url.path)
        return JSONResponse(status_code=exc.status_code, content=content)

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Catch unhandled exceptions so error responses still pass through
        the CORS middleware as structured JSON.
        """
        logger.exception(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "An internal server error occurred. Please try again later.",
                "error_type": type(exc).__name__ if settings.DEBUG else "InternalServerError",
            },
        )

    @application.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for load balancers and monitoring."""
        return {"status": "healthy", "service": "validtot-api"}

    return application


app = create_application()


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
    }


def run() -> None:
    """Serve the API with uvicorn (``validtot-api`` console script)."""
    uvicorn.run("validtot.main:app", host="0.0.0.0", port=8000, log_config=None)
