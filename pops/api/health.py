"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pops.api.deps import get_registry, get_session
from pops.services.env_registry import EnvironmentRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    environments: int


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    session: Annotated[AsyncSession, Depends(get_session)],
    registry: Annotated[EnvironmentRegistry, Depends(get_registry)],
) -> HealthResponse:
    """Health check endpoint for monitoring."""
    db_status = "ok"
    env_count = 0
    try:
        await session.execute(text("SELECT 1"))
        env_count = len(await registry.list())
    except Exception:
        logger.warning("Health check database query failed", exc_info=True)
        db_status = "error"

    return HealthResponse(
        status="ok" if db_status == "ok" else "degraded",
        version="0.1.0",
        database=db_status,
        environments=env_count,
    )
