"""
Collection API endpoints.

Ownership records for the authenticated user. Entries can only be read,
changed or removed by the user who owns them.
"""

from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from spellbinder.db import (
    create_collection_entry,
    delete_collection_entry,
    get_card,
    get_collection_entry,
    list_collection,
    update_collection_entry,
)
from spellbinder.db.database import get_session
from spellbinder.models.card import best_image_uri
from spellbinder.models.collection import MAX_NOTES_LENGTH, Condition
from spellbinder.models.db import CollectionEntryDB
from spellbinder.models.errors import NotFoundError, UnauthorizedError
from spellbinder.services.auth import CurrentUser, Principal

router = APIRouter(prefix="/api/collection", tags=["collection"])


class CollectionEntryResponse(BaseModel):
    """Response model for one owned card."""

    id: int
    card_id: int
    scryfall_id: str
    name: str
    set_code: str
    set_name: str = ""
    rarity: str
    type_line: str
    colors: list[str] = Field(default_factory=list)
    image_uri: str = ""
    image_file: str = ""
    price_usd: float | None = None
    quantity: int
    condition: str
    foil: bool = False
    acquired_date: date | None = None
    notes: str = ""


class CollectionResponse(BaseModel):
    """Response model for a user's collection."""

    user_id: str
    entries: list[CollectionEntryResponse]
    total_cards: int = 0
    unique_cards: int = 0


class CollectionEntryCreateRequest(BaseModel):
    card_id: int
    quantity: int = Field(default=1, ge=1)
    condition: Condition = "NM"
    foil: bool = False
    acquired_date: date | None = None
    notes: str = Field(default="", max_length=MAX_NOTES_LENGTH)


class CollectionEntryUpdateRequest(BaseModel):
    """
    Partial update. Omitted fields are left unchanged.

    Only ``acquired_date`` can be cleared with an explicit null.
    """

    quantity: int | None = Field(default=None, ge=1)
    condition: Condition | None = None
    foil: bool | None = None
    acquired_date: date | None = None
    notes: str | None = Field(default=None, max_length=MAX_NOTES_LENGTH)

    @field_validator("quantity", "condition", "foil", "notes")
    @classmethod
    def not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


class EntryIdResponse(BaseModel):
    id: int
    deleted: bool = False


def _entry_response(row: Any) -> CollectionEntryResponse:
    return CollectionEntryResponse(
        id=row["id"],
        card_id=row["card_id"],
        scryfall_id=row["scryfall_id"],
        name=row["name"],
        set_code=row["set_code"],
        set_name=row["set_name"] or "",
        rarity=row["rarity"],
        type_line=row["type_line"],
        colors=list(row["colors"] or []),
        image_uri=best_image_uri(row["image_uris"]),
        image_file=row["image_file"] or "",
        price_usd=row["price_usd"],
        quantity=row["collection_quantity"],
        condition=row["collection_condition"],
        foil=bool(row["collection_foil"]),
        acquired_date=row["collection_acquired_date"],
        notes=row["collection_notes"] or "",
    )


async def _owned_entry(session: AsyncSession, principal: Principal, entry_id: int) -> CollectionEntryDB:
    entry = await get_collection_entry(session, entry_id)
    if entry is None:
        raise NotFoundError(f"Collection entry {entry_id} not found")
    if entry.user_id != principal.user_id:
        raise UnauthorizedError("Collection entry belongs to another user")
    return entry


async def _entry_from_view(session: AsyncSession, user_id: str, entry_id: int) -> CollectionEntryResponse:
    for row in await list_collection(session, user_id):
        if row["id"] == entry_id:
            return _entry_response(row)
    raise NotFoundError(f"Collection entry {entry_id} not found")


@router.get("", response_model=CollectionResponse)
async def get_my_collection(
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionResponse:
    """List the caller's collection, ordered by card name."""
    entries = [_entry_response(row) for row in await list_collection(session, user.user_id)]
    return CollectionResponse(
        user_id=user.user_id,
        entries=entries,
        total_cards=sum(e.quantity for e in entries),
        unique_cards=len({e.card_id for e in entries}),
    )


@router.post("", response_model=CollectionEntryResponse, status_code=201)
async def add_collection_entry(
    user: CurrentUser,
    request: CollectionEntryCreateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionEntryResponse:
    """Add a card to the caller's collection. Returns 404 for an unknown card."""
    if await get_card(session, request.card_id) is None:
        raise NotFoundError(f"Card {request.card_id} not found")

    entry = await create_collection_entry(
        session,
        user.user_id,
        request.card_id,
        quantity=request.quantity,
        condition=request.condition,
        foil=request.foil,
        acquired_date=request.acquired_date,
        notes=request.notes,
    )
    return await _entry_from_view(session, user.user_id, entry.id)


@router.patch("/{entry_id}", response_model=CollectionEntryResponse)
async def edit_collection_entry(
    entry_id: int,
    user: CurrentUser,
    request: CollectionEntryUpdateRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionEntryResponse:
    """Update fields of an owned entry."""
    entry = await _owned_entry(session, user, entry_id)
    await update_collection_entry(session, entry, request.model_dump(exclude_unset=True))
    return await _entry_from_view(session, user.user_id, entry_id)


@router.delete("/{entry_id}", response_model=EntryIdResponse)
async def remove_collection_entry(
    entry_id: int,
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> EntryIdResponse:
    """Delete an owned entry."""
    entry = await _owned_entry(session, user, entry_id)
    await delete_collection_entry(session, entry)
    return EntryIdResponse(id=entry_id, deleted=True)
