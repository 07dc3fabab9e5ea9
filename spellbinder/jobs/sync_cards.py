"""
Bulk card synchronization.

Downloads Scryfall's default-cards bulk data and upserts it into the card
catalog in batches, together with the oracle text index and price history.
Can be run as a standalone script or started from the sync API.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spellbinder.config import configure_logging, settings
from spellbinder.db.database import async_session_factory
from spellbinder.db.operations import (
    get_cards_by_scryfall_ids,
    insert_missing_oracle_texts,
    record_prices,
    update_sync_status,
)
from spellbinder.models.card import PriceObservation
from spellbinder.models.db import CardDB
from spellbinder.models.sync import SyncDataType, SyncState
from spellbinder.services.scryfall import (
    card_fields,
    fetch_bulk_cards,
    is_importable,
    price_observation,
)

logger = logging.getLogger(__name__)


async def process_batch(
    session: AsyncSession,
    cards: list[dict[str, Any]],
    log: logging.Logger = logger,
) -> tuple[int, int]:
    """
    Upsert one batch of Scryfall cards.

    Cards missing an id, name or set are skipped.

    Returns:
        Tuple of (cards processed, price rows added)
    """
    importable = [card for card in cards if is_importable(card)]
    skipped = len(cards) - len(importable)
    if skipped:
        log.info("Skipping %d cards with missing required fields", skipped)

    existing = await get_cards_by_scryfall_ids(session, (c["id"] for c in importable))
    now = datetime.now(UTC)

    oracle_texts: dict[str, str] = {}
    observations: list[tuple[CardDB, PriceObservation]] = []

    for card in importable:
        fields = card_fields(card)
        record = existing.get(fields["scryfall_id"])
        if record is None:
            record = CardDB(scryfall_id=fields["scryfall_id"])
            session.add(record)
            existing[fields["scryfall_id"]] = record

        for key, value in fields.items():
            setattr(record, key, value)
        record.last_updated = now

        if fields["oracle_id"] and fields["oracle_text"]:
            oracle_texts.setdefault(fields["oracle_id"], fields["oracle_text"])
        observations.append((record, price_observation(card)))

    # Flush first so new cards have ids for their price rows
    await session.flush()
    await insert_missing_oracle_texts(session, oracle_texts)
    prices_added = await record_prices(
        session, {record.id: observation for record, observation in observations}
    )

    return len(importable), prices_added


async def _record_failure(
    session_factory: async_sessionmaker[AsyncSession], processed: int, message: str
) -> None:
    async with session_factory() as session:
        await update_sync_status(
            session, SyncDataType.CARDS, SyncState.FAILED, processed, error_message=message
        )
        await session.commit()


async def run_card_sync(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    client: httpx.AsyncClient | None = None,
    batch_size: int | None = None,
    log: logging.Logger = logger,
) -> int:
    """
    Run the full bulk card sync.

    Status for ``cards`` moves to in_progress, is updated after every batch,
    and ends as success or failed, also when the job is cancelled.
    ``prices`` is marked success with the number of price rows added.

    Returns:
        Number of cards processed (0 on failure)
    """
    batch_size = batch_size or settings.sync_batch_size

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            headers={"User-Agent": settings.user_agent},
            follow_redirects=True,
            timeout=30.0,
        )

    processed = 0
    prices_added = 0
    try:
        async with session_factory() as session:
            await update_sync_status(session, SyncDataType.CARDS, SyncState.IN_PROGRESS)
            await session.commit()

        log.info("Starting bulk card data synchronization...")
        cards = await fetch_bulk_cards(client)
        log.info("Downloaded %d cards", len(cards))

        total_batches = (len(cards) + batch_size - 1) // batch_size
        for start in range(0, len(cards), batch_size):
            batch_number = start // batch_size + 1
            async with session_factory() as session:
                batch_processed, batch_prices = await process_batch(
                    session, cards[start : start + batch_size], log
                )
                processed += batch_processed
                prices_added += batch_prices
                await update_sync_status(
                    session, SyncDataType.CARDS, SyncState.IN_PROGRESS, processed
                )
                await session.commit()
            log.info("Processed batch %d/%d (%d cards so far)", batch_number, total_batches, processed)

        async with session_factory() as session:
            await update_sync_status(session, SyncDataType.CARDS, SyncState.SUCCESS, processed)
            await update_sync_status(
                session, SyncDataType.PRICES, SyncState.SUCCESS, prices_added
            )
            await session.commit()

    except (httpx.HTTPError, ValueError, SQLAlchemyError) as e:
        message = f"Bulk sync failed: {e}"
        log.error("Bulk sync failed: %s", e)
        await _record_failure(session_factory, processed, message)
        return 0
    except asyncio.CancelledError:
        log.warning("Bulk sync cancelled after %d cards", processed)
        await _record_failure(session_factory, processed, "Bulk sync cancelled")
        raise
    except Exception as e:
        log.exception("Bulk sync failed unexpectedly")
        await _record_failure(session_factory, processed, f"Bulk sync failed: {e}")
        return 0
    finally:
        if owns_client:
            await client.aclose()

    log.info("Bulk card data sync completed: %d cards processed", processed)
    return processed


def main() -> None:
    """CLI entry point for running the card sync."""
    configure_logging()
    asyncio.run(run_card_sync())


if __name__ == "__main__":
    main()
