"""
Database CRUD operations.

Provides async functions for reading and writing cards, prices, oracle
texts, sync status and collection entries.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import RowMapping, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from spellbinder.models.card import PriceObservation
from spellbinder.models.db import (
    CardDB,
    CardPriceDB,
    CollectionEntryDB,
    OracleTextDB,
    SyncStatusDB,
    card_collection_view,
)
from spellbinder.models.sync import STORED_SYNC_STATES, SyncDataType, SyncState

# --- Card Operations ---


async def get_card(session: AsyncSession, card_id: int) -> CardDB | None:
    """Get a card by internal id."""
    return await session.get(CardDB, card_id)


async def get_cards_by_scryfall_ids(
    session: AsyncSession, scryfall_ids: Iterable[str]
) -> dict[str, CardDB]:
    """Map scryfall_id -> card for the ids that exist."""
    ids = list(scryfall_ids)
    if not ids:
        return {}
    result = await session.execute(select(CardDB).where(CardDB.scryfall_id.in_(ids)))
    return {card.scryfall_id: card for card in result.scalars()}


async def insert_missing_oracle_texts(session: AsyncSession, texts: dict[str, str]) -> int:
    """
    Add oracle texts for oracle ids not yet indexed.

    Existing rows are left untouched; oracle text is shared across printings.

    Returns:
        Number of rows inserted.
    """
    if not texts:
        return 0
    result = await session.execute(
        select(OracleTextDB.oracle_id).where(OracleTextDB.oracle_id.in_(list(texts)))
    )
    existing = set(result.scalars())

    added = 0
    for oracle_id, oracle_text in texts.items():
        if oracle_id in existing:
            continue
        session.add(OracleTextDB(oracle_id=oracle_id, oracle_text=oracle_text))
        added += 1

    await session.flush()
    return added


async def count_card_images(session: AsyncSession) -> tuple[int, int]:
    """
    Count cards with and without a stored image file.

    Returns:
        Tuple of (with_images, needing_images).
    """
    result = await session.execute(
        select(
            func.count(CardDB.image_file),
            func.count(CardDB.id) - func.count(CardDB.image_file),
        )
    )
    with_images, needing = result.one()
    return int(with_images), int(needing)


async def get_cards_needing_images(session: AsyncSession, limit: int | None = None) -> list[CardDB]:
    """Cards that have no stored image file, oldest first."""
    stmt = select(CardDB).where(CardDB.image_file.is_(None)).order_by(CardDB.id)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


# --- Price Operations ---


async def get_latest_prices(
    session: AsyncSession, card_ids: Iterable[int]
) -> dict[int, CardPriceDB]:
    """Newest price row for each card id that has one."""
    ids = list(card_ids)
    if not ids:
        return {}
    result = await session.execute(
        select(CardPriceDB)
        .where(CardPriceDB.card_id.in_(ids))
        .order_by(CardPriceDB.card_id, CardPriceDB.last_updated.desc(), CardPriceDB.id.desc())
    )
    latest: dict[int, CardPriceDB] = {}
    for price in result.scalars():
        latest.setdefault(price.card_id, price)
    return latest


def _same_prices(row: CardPriceDB, observation: PriceObservation) -> bool:
    return (
        row.price_usd == observation.usd
        and row.price_usd_foil == observation.usd_foil
        and row.price_eur == observation.eur
        and row.price_tix == observation.tix
    )


async def record_prices(session: AsyncSession, observations: dict[int, PriceObservation]) -> int:
    """
    Append a price row for each card whose prices changed.

    Empty observations and unchanged prices add nothing.

    Returns:
        Number of price rows added.
    """
    latest = await get_latest_prices(session, observations)
    now = datetime.now(UTC)

    added = 0
    for card_id, observation in observations.items():
        if observation.is_empty():
            continue
        current = latest.get(card_id)
        if current is not None and _same_prices(current, observation):
            continue
        session.add(
            CardPriceDB(
                card_id=card_id,
                price_usd=observation.usd,
                price_usd_foil=observation.usd_foil,
                price_eur=observation.eur,
                price_tix=observation.tix,
                last_updated=now,
            )
        )
        added += 1

    await session.flush()
    return added


# --- Sync Status Operations ---


async def get_sync_status(session: AsyncSession, data_type: SyncDataType) -> SyncStatusDB | None:
    """Get the status row for a data type. None if that job never ran."""
    result = await session.execute(
        select(SyncStatusDB).where(SyncStatusDB.data_type == data_type.value)
    )
    return result.scalar_one_or_none()


async def list_sync_statuses(session: AsyncSession) -> list[SyncStatusDB]:
    result = await session.execute(select(SyncStatusDB).order_by(SyncStatusDB.data_type))
    return list(result.scalars().all())


async def update_sync_status(
    session: AsyncSession,
    data_type: SyncDataType,
    status: SyncState,
    records_processed: int = 0,
    error_message: str | None = None,
) -> SyncStatusDB:
    """
    Insert or update the status row for a data type.

    There is at most one row per data type. ``last_sync`` is set to now and
    the error message is cleared unless one is given.
    """
    if status not in STORED_SYNC_STATES:
        msg = f"Cannot store sync status '{status.value}'"
        raise ValueError(msg)

    row = await get_sync_status(session, data_type)
    if row is None:
        row = SyncStatusDB(data_type=data_type.value)
        session.add(row)

    row.status = status.value
    row.records_processed = records_processed
    row.last_sync = datetime.now(UTC)
    row.error_message = (error_message or "")[:1000]

    await session.flush()
    return row


async def claim_sync_job(
    session: AsyncSession, data_type: SyncDataType, stale_after: timedelta | None = None
) -> bool:
    """
    Mark a job in_progress unless it already is.

    The check and the write happen in one statement, so of two concurrent
    callers only one gets True. An in_progress row whose ``last_sync`` is
    older than ``stale_after`` belongs to a job that died and can be claimed.
    """
    now = datetime.now(UTC)
    claimable = SyncStatusDB.status != SyncState.IN_PROGRESS.value
    if stale_after is not None:
        claimable = or_(claimable, SyncStatusDB.last_sync < now - stale_after)

    result = await session.execute(
        update(SyncStatusDB)
        .where(SyncStatusDB.data_type == data_type.value, claimable)
        .values(
            status=SyncState.IN_PROGRESS.value,
            records_processed=0,
            last_sync=now,
            error_message="",
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        return True

    if await get_sync_status(session, data_type) is not None:
        return False

    # First run for this data type; a concurrent first run wins the unique key
    try:
        async with session.begin_nested():
            session.add(
                SyncStatusDB(
                    data_type=data_type.value,
                    status=SyncState.IN_PROGRESS.value,
                    records_processed=0,
                    last_sync=now,
                    error_message="",
                )
            )
    except IntegrityError:
        return False
    return True


# --- Collection Operations ---


async def list_collection(session: AsyncSession, user_id: str) -> list[RowMapping]:
    """A user's collection entries joined with card data, ordered by card name."""
    view = card_collection_view
    result = await session.execute(
        select(view).where(view.c.collection_user == user_id).order_by(view.c.name, view.c.id)
    )
    return list(result.mappings().all())


async def get_collection_entry(session: AsyncSession, entry_id: int) -> CollectionEntryDB | None:
    return await session.get(CollectionEntryDB, entry_id)


async def create_collection_entry(
    session: AsyncSession, user_id: str, card_id: int, **fields: Any
) -> CollectionEntryDB:
    """Add an ownership record. Caller checks that the card exists."""
    entry = CollectionEntryDB(user_id=user_id, card_id=card_id, **fields)
    session.add(entry)
    await session.flush()
    return entry


async def update_collection_entry(
    session: AsyncSession, entry: CollectionEntryDB, changes: dict[str, Any]
) -> CollectionEntryDB:
    for field, value in changes.items():
        setattr(entry, field, value)
    await session.flush()
    return entry


async def delete_collection_entry(session: AsyncSession, entry: CollectionEntryDB) -> None:
    await session.delete(entry)
    await session.flush()
