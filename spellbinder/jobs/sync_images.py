"""
Card image synchronization.

Downloads the display image of every card that has no stored image file
and records the file name on the card. Progress is tracked in the
``images`` sync status row, which the progress endpoint reports.
"""

import asyncio
import logging
import re
from pathlib import Path

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spellbinder.config import configure_logging, settings
from spellbinder.db.database import async_session_factory
from spellbinder.db.operations import get_card, get_cards_needing_images, update_sync_status
from spellbinder.models.card import best_image_uri
from spellbinder.models.db import CardDB
from spellbinder.models.sync import ImageSyncResult, SyncDataType, SyncState

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def image_file_name(card: CardDB, image_url: str) -> str:
    """
    File name for a card image: ``<safe name>_<scryfall id prefix>.<ext>``.

    The extension follows the URL (png, webp), defaulting to jpg.
    """
    extension = "jpg"
    if ".png" in image_url:
        extension = "png"
    elif ".webp" in image_url:
        extension = "webp"

    safe_name = _UNSAFE_CHARS.sub("_", card.name or "unknown")[:50]
    return f"{safe_name}_{card.scryfall_id[:8]}.{extension}"


async def download_image(
    client: httpx.AsyncClient,
    url: str,
    retries: int,
    retry_delay: float,
    log: logging.Logger = logger,
) -> bytes | None:
    """
    Download one image, retrying on HTTP errors.

    Returns:
        Image bytes, or None once every attempt has failed.
    """
    for attempt in range(retries + 1):
        try:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as e:
            log.warning(
                "Failed to download %s (attempt %d/%d): %s", url, attempt + 1, retries + 1, e
            )
            if attempt < retries:
                await asyncio.sleep(retry_delay)
    return None


def _final_state(processed: int, failed: int) -> SyncState:
    if failed == 0:
        return SyncState.SUCCESS
    if processed > 0:
        return SyncState.PARTIAL
    return SyncState.FAILED


async def _record_failure(
    session_factory: async_sessionmaker[AsyncSession], processed: int, message: str
) -> None:
    async with session_factory() as session:
        await update_sync_status(
            session, SyncDataType.IMAGES, SyncState.FAILED, processed, error_message=message
        )
        await session.commit()


async def run_image_sync(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    client: httpx.AsyncClient | None = None,
    image_dir: Path | None = None,
    limit: int | None = None,
    log: logging.Logger = logger,
) -> ImageSyncResult:
    """
    Download images for cards that have none.

    Cards without any image URI are skipped. The final status is success
    when nothing failed, partial when some downloads failed, and failed when
    every attempted download failed or the job itself broke. The status never
    stays in_progress once the job returns, even when it is cancelled.

    Args:
        session_factory: Session factory for status and card updates
        client: HTTP client. One is created (and closed) when omitted.
        image_dir: Where image files are written
        limit: Max number of cards to process in this run
        log: Logger for job progress

    Returns:
        Counts of processed, failed and skipped cards.
    """
    image_dir = image_dir or settings.image_dir

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            headers={
                "User-Agent": settings.user_agent,
                "Accept": "image/jpeg,image/png,image/webp,image/*",
            },
            follow_redirects=True,
            timeout=settings.image_download_timeout,
        )

    processed = failed = skipped = 0
    try:
        async with session_factory() as session:
            cards = await get_cards_needing_images(session, limit)
            await update_sync_status(session, SyncDataType.IMAGES, SyncState.IN_PROGRESS)
            await session.commit()

        log.info("Starting image sync for %d cards", len(cards))
        image_dir.mkdir(parents=True, exist_ok=True)
        for card in cards:
            url = best_image_uri(card.image_uris)
            if not url:
                skipped += 1
                continue

            content = await download_image(
                client,
                url,
                retries=settings.image_download_retries,
                retry_delay=settings.image_retry_delay,
                log=log,
            )
            if content is None:
                failed += 1
                continue

            file_name = image_file_name(card, url)
            path = image_dir / file_name
            path.write_bytes(content)

            async with session_factory() as session:
                record = await get_card(session, card.id)
                if record is None:
                    # Removed from the catalog while we were downloading
                    log.info("Card %s is gone, discarding %s", card.scryfall_id, file_name)
                    path.unlink(missing_ok=True)
                    skipped += 1
                    continue
                record.image_file = file_name
                processed += 1
                await update_sync_status(
                    session, SyncDataType.IMAGES, SyncState.IN_PROGRESS, processed
                )
                await session.commit()

        state = _final_state(processed, failed)
        error = f"{failed} images failed to download" if failed else None
        async with session_factory() as session:
            await update_sync_status(
                session, SyncDataType.IMAGES, state, processed, error_message=error
            )
            await session.commit()

    except (SQLAlchemyError, OSError) as e:
        message = f"Image sync failed: {e}"
        log.error("Image sync failed: %s", e)
        await _record_failure(session_factory, processed, message)
        return ImageSyncResult(
            success=False, processed=processed, failed=failed, skipped=skipped, error=message
        )
    except asyncio.CancelledError:
        log.warning("Image sync cancelled after %d images", processed)
        await _record_failure(session_factory, processed, "Image sync cancelled")
        raise
    except Exception as e:
        message = f"Image sync failed: {e}"
        log.exception("Image sync failed unexpectedly")
        await _record_failure(session_factory, processed, message)
        return ImageSyncResult(
            success=False, processed=processed, failed=failed, skipped=skipped, error=message
        )
    finally:
        if owns_client:
            await client.aclose()

    log.info(
        "Image sync finished (%s): %d processed, %d failed, %d skipped",
        state.value,
        processed,
        failed,
        skipped,
    )
    return ImageSyncResult(
        success=state is not SyncState.FAILED,
        message=f"Downloaded {processed} images",
        processed=processed,
        failed=failed,
        skipped=skipped,
        error=error,
    )


def main() -> None:
    """CLI entry point for running the image sync."""
    configure_logging()
    asyncio.run(run_image_sync())


if __name__ == "__main__":
    main()
