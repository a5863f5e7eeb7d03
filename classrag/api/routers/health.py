"""
Health check API endpoints.

Routes: GET /health, GET /health/db

Dependencies: classrag.boundary.db, classrag.configs
System role: Health check HTTP API
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from classrag.api.deps import get_settings_dependency
from classrag.boundary.db import get_async_db
from classrag.configs import Settings
from classrag.models.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check(
    settings: Settings = Depends(get_settings_dependency),
) -> HealthResponse:
    """Basic health check."""
    return HealthResponse(status="healthy", environment=settings.environment)


@router.get("/db", response_model=HealthResponse)
async def health_check_db(
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings_dependency),
):
    """Database health check; 503 when the database cannot be reached."""
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"{__name__}:health_check_db - Database unreachable: {e}")
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                environment=settings.environment,
                database="unreachable",
            ).model_dump(),
        )
    return HealthResponse(status="healthy", environment=settings.environment, database="ok")
