"""
Card search endpoint.

Returns one page of the card catalog filtered by the query string.
"""

from dataclasses import asdict
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from spellbinder.config import settings
from spellbinder.db.database import get_session
from spellbinder.services.auth import CurrentUser
from spellbinder.services.card_search import CardSearchParams, parse_colors, search_cards

router = APIRouter(prefix="/api/cards", tags=["cards"])


class CardResponse(BaseModel):
    """Response model for a card search result."""

    id: int
    scryfall_id: str
    oracle_text: str = ""
    name: str
    set_code: str
    set_name: str = ""
    rarity: str
    mana_cost: str = ""
    type_line: str
    colors: list[str] = Field(default_factory=list)
    image_uri: str = ""
    image_uri_small: str = ""
    image_file: str = ""
    price_usd: float | None = None
    last_updated: datetime | None = None


class CardSearchResponse(BaseModel):
    """One page of search results. No total count is computed."""

    items: list[CardResponse]


@router.get("", response_model=CardSearchResponse)
async def search(
    _user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_session)],
    page: Annotated[int, Query()] = 1,
    page_size: Annotated[int | None, Query(alias="pageSize")] = None,
    search_text: Annotated[str | None, Query(alias="searchText")] = None,
    set_code: str | None = None,
    type_line: str | None = None,
    rarity: str | None = None,
    colors: Annotated[str | None, Query(description="Comma-separated, e.g. U,B")] = None,
) -> CardSearchResponse:
    """
    Search the card catalog.

    searchText matches cards whose oracle text equals it or whose name
    contains it. colors matches cards sharing at least one listed color.
    Every supplied filter must hold.
    """
    params = CardSearchParams(
        page=page,
        page_size=page_size if page_size is not None else settings.default_page_size,
        search_text=search_text or None,
        set_code=set_code or None,
        type_line=type_line or None,
        rarity=rarity or None,
        colors=parse_colors(colors),
        max_page_size=settings.max_page_size,
    )
    cards = await search_cards(session, params)
    return CardSearchResponse(items=[CardResponse(**asdict(card)) for card in cards])
