"""
Health check endpoints.

Liveness and readiness probes. Readiness also reports which schema
revision the database is at.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spellbinder.db.database import get_session
from spellbinder.db.migrations import current_revision, head_revision

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str | None = None
    schema_revision: str | None = None
    latest_schema_revision: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check. Does not touch the database."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """
    Readiness check.

    Ready once the database answers and is at the newest schema revision.
    Returns 503 otherwise.
    """
    latest = head_revision()
    try:
        conn = await session.connection()
        revision = await conn.run_sync(current_revision)
    except SQLAlchemyError:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not ready", database="disconnected", latest_schema_revision=latest
        )

    if revision != latest:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not ready",
            database="connected",
            schema_revision=revision,
            latest_schema_revision=latest,
        )
    return HealthResponse(
        status="ready", database="connected", schema_revision=revision, latest_schema_revision=latest
    )
