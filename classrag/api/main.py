"""
FastAPI application with assembled routers.

Initializes FastAPI app with all API routers and configures uvicorn server.

Dependencies: fastapi, classrag.api.routers, uvicorn
System role: API entry point with router assembly and server launch
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classrag.api.deps.dependencies import get_service_cache
from classrag.configs import get_settings
from classrag.core.exceptions import ClassRagException, ValidationError
from classrag.models.common import ErrorResponse
from classrag.observability import configure_logging

from .routers import documents_router, health_router, search_router

SHUTDOWN_DRAIN_TIMEOUT_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    cache = get_service_cache()
    configure_logging(cache.settings.log_level)
    logger = logging.getLogger(__name__)

    # Startup
    logger.info("Pre-warming service cache...")
    _ = cache.document_service
    _ = cache.retrieval_service
    logger.info("Service cache pre-warmed")

    yield

    # Shutdown: let detached processing finish before the loop closes
    await cache.runner.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT_SECONDS)
    cache.clear()
    logger.info("Service cache cleared")


async def classrag_exception_handler(request: Request, exc: ClassRagException) -> JSONResponse:
    """Map domain errors that escaped a router to a JSON error body."""
    status_code = 400 if isinstance(exc, ValidationError) else 500
    if status_code == 500:
        logging.getLogger(__name__).error(
            f"{__name__}:classrag_exception_handler - Unhandled {type(exc).__name__}: {exc}",
            extra={"path": request.url.path},
        )
    body = ErrorResponse(error=exc.message, details=exc.details or None)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Returns:
        FastAPI: Configured application instance with all routers registered
    """
    app = FastAPI(
        title="ClassRAG API",
        description="Document ingestion and hybrid retrieval for class materials",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClassRagException, classrag_exception_handler)

    # Register all routers with /api/v1 prefix for versioning
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")
    app.include_router(search_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "classrag.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
