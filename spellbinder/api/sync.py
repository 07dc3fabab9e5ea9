"""
Sync API endpoints.

Starts the card and image sync jobs and reports their progress. Jobs run
as background tasks after the response is sent; clients poll the progress
endpoint until the status leaves in_progress.
"""

import logging
from datetime import datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spellbinder.config import settings
from spellbinder.db import (
    claim_sync_job,
    count_card_images,
    get_session,
    get_session_factory,
    get_sync_status,
    list_sync_statuses,
)
from spellbinder.jobs.sync_cards import run_card_sync
from spellbinder.jobs.sync_images import run_image_sync
from spellbinder.models.sync import SyncDataType, SyncState, completion_percentage
from spellbinder.services.auth import AdminUser, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


class SyncTriggerResponse(BaseModel):
    """Response model for starting a sync job."""

    success: bool
    message: str | None = None
    processed: int | None = None
    failed: int | None = None
    skipped: int | None = None
    error: str | None = None


class ImageSyncProgressModel(BaseModel):
    total_needing_images: int
    total_with_images: int
    status: SyncState
    last_sync: datetime | None = None
    records_processed: int = 0
    completion_percentage: float = 0.0


class ImageSyncProgressResponse(BaseModel):
    """Response model for image sync progress."""

    success: bool
    progress: ImageSyncProgressModel | None = None
    error: str | None = None


class SyncStatusModel(BaseModel):
    data_type: str
    status: str
    last_sync: datetime | None = None
    records_processed: int = 0
    error_message: str = ""


class SyncStatusListResponse(BaseModel):
    statuses: list[SyncStatusModel]


async def _start_job(
    session: AsyncSession, data_type: SyncDataType, started_by: str
) -> SyncTriggerResponse | None:
    """
    Claim the status row for a job.

    Returns a refusal when the job is already running, None when the caller
    may schedule it.
    """
    stale_after = timedelta(minutes=settings.sync_stale_after_minutes)
    if not await claim_sync_job(session, data_type, stale_after):
        label = data_type.value.rstrip("s").capitalize()
        return SyncTriggerResponse(success=False, error=f"{label} sync already in progress")

    # Commit before the background job opens its own session
    await session.commit()
    logger.info("%s sync started by %s", data_type.value, started_by)
    return None


@router.post("/images", response_model=SyncTriggerResponse)
async def trigger_image_sync(
    admin: AdminUser,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(get_session)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> SyncTriggerResponse:
    """
    Start downloading missing card images.

    Refused with success=false while an image sync is in progress.
    """
    refusal = await _start_job(session, SyncDataType.IMAGES, admin.user_id)
    if refusal is not None:
        return refusal

    background_tasks.add_task(run_image_sync, session_factory)
    return SyncTriggerResponse(success=True, message="Image sync started")


@router.get("/images/progress", response_model=ImageSyncProgressResponse)
async def image_sync_progress(
    _user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ImageSyncProgressResponse:
    """
    Report image sync progress.

    Status is not_started until the image job has run once.
    """
    with_images, needing_images = await count_card_images(session)
    row = await get_sync_status(session, SyncDataType.IMAGES)

    return ImageSyncProgressResponse(
        success=True,
        progress=ImageSyncProgressModel(
            total_needing_images=needing_images,
            total_with_images=with_images,
            status=SyncState(row.status) if row else SyncState.NOT_STARTED,
            last_sync=row.last_sync if row else None,
            records_processed=row.records_processed if row else 0,
            completion_percentage=completion_percentage(with_images, needing_images),
        ),
    )


@router.post("/cards", response_model=SyncTriggerResponse)
async def trigger_card_sync(
    admin: AdminUser,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(get_session)],
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> SyncTriggerResponse:
    """
    Start the Scryfall bulk card sync.

    Refused with success=false while a card sync is in progress.
    """
    refusal = await _start_job(session, SyncDataType.CARDS, admin.user_id)
    if refusal is not None:
        return refusal

    background_tasks.add_task(run_card_sync, session_factory)
    return SyncTriggerResponse(success=True, message="Card sync started")


@router.get("/status", response_model=SyncStatusListResponse)
async def sync_statuses(
    _user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SyncStatusListResponse:
    """Status of every sync job that has run at least once."""
    rows = await list_sync_statuses(session)
    return SyncStatusListResponse(
        statuses=[
            SyncStatusModel(
                data_type=row.data_type,
                status=row.status,
                last_sync=row.last_sync,
                records_processed=row.records_processed,
                error_message=row.error_message or "",
            )
            for row in rows
        ]
    )
