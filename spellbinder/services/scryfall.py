"""
Scryfall bulk data access.

Fetches the default-cards bulk file and maps Scryfall card objects onto
catalog fields.

Bulk data: https://scryfall.com/docs/api/bulk-data
"""

import logging
from datetime import date
from typing import Any, TypedDict

import httpx

from spellbinder.config import settings
from spellbinder.models.card import VALID_RARITIES, PriceObservation, color_key

logger = logging.getLogger(__name__)


class CardFields(TypedDict):
    """Catalog columns derived from one Scryfall card object."""

    scryfall_id: str
    oracle_id: str | None
    name: str
    lang: str
    set_code: str
    set_name: str
    collector_number: str
    rarity: str
    mana_cost: str
    cmc: float
    type_line: str
    oracle_text: str
    colors: list[str]
    color_key: str
    image_uris: dict[str, str]
    rank: int | None
    released_at: date | None


def _normalize_rarity(rarity: str | None) -> str:
    """Normalize rarity to a known value, defaulting to common."""
    return rarity if rarity in VALID_RARITIES else "common"


def _parse_price(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _front_face(card: dict[str, Any]) -> dict[str, Any]:
    faces = card.get("card_faces") or []
    return faces[0] if faces else {}


def is_importable(card: dict[str, Any]) -> bool:
    """A card needs an id, a name and a set to enter the catalog."""
    return bool(card.get("id") and card.get("name") and card.get("set"))


def card_fields(card: dict[str, Any]) -> CardFields:
    """
    Map a Scryfall card object to catalog fields.

    Double-faced cards without top-level images, colors or text fall back
    to their front face.
    """
    front = _front_face(card)
    colors = card.get("colors")
    if colors is None:
        colors = front.get("colors") or []

    return CardFields(
        scryfall_id=card["id"],
        oracle_id=card.get("oracle_id"),
        name=card["name"],
        lang=card.get("lang") or "en",
        set_code=card["set"],
        set_name=card.get("set_name") or "",
        collector_number=card.get("collector_number") or "",
        rarity=_normalize_rarity(card.get("rarity")),
        mana_cost=card.get("mana_cost") or front.get("mana_cost") or "",
        cmc=float(card.get("cmc") or 0),
        type_line=card.get("type_line") or front.get("type_line") or "",
        oracle_text=card.get("oracle_text") or front.get("oracle_text") or "",
        colors=list(colors),
        color_key=color_key(colors),
        image_uris=dict(card.get("image_uris") or front.get("image_uris") or {}),
        rank=card.get("edhrec_rank"),
        released_at=_parse_date(card.get("released_at")),
    )


def price_observation(card: dict[str, Any]) -> PriceObservation:
    """Prices offered for a card. Unparseable values count as absent."""
    prices = card.get("prices") or {}
    return PriceObservation(
        usd=_parse_price(prices.get("usd")),
        usd_foil=_parse_price(prices.get("usd_foil")),
        eur=_parse_price(prices.get("eur")),
        tix=_parse_price(prices.get("tix")),
    )


async def fetch_bulk_cards(client: httpx.AsyncClient) -> list[dict[str, Any]]:
    """
    Download the default-cards bulk file.

    Args:
        client: HTTP client used for both the metadata and the download

    Returns:
        List of Scryfall card objects.

    Raises:
        ValueError: If the metadata has no download URI or the file is not a list
        httpx.HTTPError: If a request fails
    """
    response = await client.get(settings.scryfall_bulk_url)
    response.raise_for_status()
    download_uri = response.json().get("download_uri")
    if not download_uri:
        raise ValueError("Bulk data download URI not found in response")

    logger.info("Downloading bulk card data from %s", download_uri)
    # File is ~80MB
    response = await client.get(download_uri, timeout=300.0)
    response.raise_for_status()
    cards = response.json()
    if not isinstance(cards, list):
        raise ValueError("Invalid bulk data format - expected a list of cards")

    return cards
