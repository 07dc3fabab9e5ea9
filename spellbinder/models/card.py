from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

VALID_RARITIES = frozenset({"common", "uncommon", "rare", "mythic", "special", "bonus"})

# Canonical color order used for the scalar color key.
COLOR_ORDER = "WUBRG"
COLORLESS = "C"

# Preference order when picking the display image.
IMAGE_URI_PREFERENCE = ("normal", "png", "art_crop", "border_crop", "large", "small")


def color_key(colors: Iterable[str] | None) -> str:
    """
    Build the canonical scalar form of a color list.

    Letters are upper-cased, de-duplicated and ordered WUBRG.
    Colorless cards get an empty key.

    Example: ["B", "u"] -> "UB"
    """
    present = {c.strip().upper() for c in colors or ()}
    return "".join(c for c in COLOR_ORDER if c in present)


def best_image_uri(image_uris: Mapping[str, str] | None) -> str:
    """Return the preferred display image URI, or "" if none is present."""
    if not image_uris:
        return ""
    for key in IMAGE_URI_PREFERENCE:
        uri = image_uris.get(key)
        if uri:
            return uri
    return ""


def small_image_uri(image_uris: Mapping[str, str] | None) -> str:
    if not image_uris:
        return ""
    return image_uris.get("small") or ""


@dataclass(frozen=True, slots=True)
class PriceObservation:
    """Prices seen for a card in one sync run. None means no price offered."""

    usd: float | None = None
    usd_foil: float | None = None
    eur: float | None = None
    tix: float | None = None

    def is_empty(self) -> bool:
        return self.usd is None and self.usd_foil is None and self.eur is None and self.tix is None


@dataclass(frozen=True, slots=True)
class CardProjection:
    """
    A card as returned by search.

    Attributes:
        id: Internal card id
        scryfall_id: Scryfall per-printing id
        colors: Color letters as stored (e.g. ["U", "B"])
        image_uri: Preferred display image URL, "" when unknown
        image_uri_small: Small image URL, "" when unknown
        image_file: Locally stored image file name, "" when not downloaded
        price_usd: Newest recorded USD price, None when never priced
    """

    id: int
    scryfall_id: str
    oracle_text: str
    name: str
    set_code: str
    set_name: str
    rarity: str
    mana_cost: str
    type_line: str
    colors: list[str]
    image_uri: str
    image_uri_small: str
    image_file: str
    price_usd: float | None
    last_updated: datetime | None
