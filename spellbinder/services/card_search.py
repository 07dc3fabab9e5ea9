"""
Card search.

Translates optional, independent filters into a single SELECT over the
card catalog, left-joined to the oracle text index, ordered by rank and
paginated with LIMIT/OFFSET.

Filter semantics:
- search_text: the oracle text equals the search text exactly, OR the card
  name contains it (case-sensitive).
- set_code, type_line, rarity: exact match.
- colors: intersection. A card matches when any of its colors is among the
  requested ones. "C" requests colorless cards.

Filters are AND-ed; leaving one out never changes another's predicate.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, Integer, Select, and_, case, or_, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.compiler import SQLCompiler
from sqlalchemy.sql.functions import FunctionElement

from spellbinder.db.operations import get_latest_prices
from spellbinder.models.card import (
    COLOR_ORDER,
    COLORLESS,
    VALID_RARITIES,
    CardProjection,
    best_image_uri,
    small_image_uri,
)
from spellbinder.models.db import CardDB, OracleTextDB
from spellbinder.models.errors import InvalidParameterError, QueryExecutionError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# Largest OFFSET a signed 64-bit SQL integer can hold
MAX_OFFSET = 2**63 - 1


class substring_position(FunctionElement[int]):
    """
    1-based position of a substring, 0 when absent. Case-sensitive.

    Rendered as instr() on SQLite and strpos() on PostgreSQL.
    """

    type = Integer()
    name = "substring_position"
    inherit_cache = True


@compiles(substring_position)
def _compile_instr(element: substring_position, compiler: SQLCompiler, **kw: object) -> str:
    return f"instr({compiler.process(element.clauses, **kw)})"


@compiles(substring_position, "postgresql")
def _compile_strpos(element: substring_position, compiler: SQLCompiler, **kw: object) -> str:
    return f"strpos({compiler.process(element.clauses, **kw)})"


def parse_colors(raw: str | None) -> tuple[str, ...]:
    """
    Parse a comma-separated color list.

    Letters are trimmed and upper-cased, blanks and duplicates dropped,
    and the result ordered WUBRG with colorless last.

    Raises:
        InvalidParameterError: If a value is not W, U, B, R, G or C
    """
    if not raw:
        return ()

    requested: set[str] = set()
    for part in raw.split(","):
        color = part.strip().upper()
        if not color:
            continue
        if color not in COLOR_ORDER and color != COLORLESS:
            raise InvalidParameterError("colors", f"unknown color '{part.strip()}'")
        requested.add(color)

    return tuple(c for c in COLOR_ORDER + COLORLESS if c in requested)


@dataclass(frozen=True)
class CardSearchParams:
    """
    Validated search request.

    Empty strings count as "not supplied" for every text filter.

    Raises:
        InvalidParameterError: On non-positive page or page size, a page
            size above the maximum, a page beyond the addressable range, or
            an unknown rarity
    """

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    search_text: str | None = None
    set_code: str | None = None
    type_line: str | None = None
    rarity: str | None = None
    colors: tuple[str, ...] = field(default_factory=tuple)
    max_page_size: int = MAX_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page < 1:
            raise InvalidParameterError("page", "must be a positive integer")
        if self.page_size < 1:
            raise InvalidParameterError("pageSize", "must be a positive integer")
        if self.page_size > self.max_page_size:
            raise InvalidParameterError("pageSize", f"must not exceed {self.max_page_size}")
        if self.offset > MAX_OFFSET:
            raise InvalidParameterError("page", "is too large")
        if self.rarity and self.rarity not in VALID_RARITIES:
            raise InvalidParameterError("rarity", f"unknown rarity '{self.rarity}'")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def _color_predicate(colors: tuple[str, ...]) -> ColumnElement[bool]:
    clauses: list[ColumnElement[bool]] = []
    for color in colors:
        if color == COLORLESS:
            clauses.append(CardDB.color_key == "")
        else:
            clauses.append(CardDB.color_key.contains(color))
    return or_(*clauses)


def filter_predicates(params: CardSearchParams) -> list[ColumnElement[bool]]:
    """One predicate per supplied filter, in a fixed order."""
    predicates: list[ColumnElement[bool]] = []

    if params.search_text:
        predicates.append(
            or_(
                OracleTextDB.oracle_text == params.search_text,
                substring_position(CardDB.name, params.search_text) > 0,
            )
        )
    if params.set_code:
        predicates.append(CardDB.set_code == params.set_code)
    if params.type_line:
        predicates.append(CardDB.type_line == params.type_line)
    if params.rarity:
        predicates.append(CardDB.rarity == params.rarity)
    if params.colors:
        predicates.append(_color_predicate(params.colors))

    return predicates


def build_card_search_query(params: CardSearchParams) -> Select[tuple[CardDB]]:
    """
    Build the search SELECT for one page.

    Ordering: exact name match first (only with search text), then rank
    ascending with unranked cards last, then name, then id.
    """
    stmt = (
        select(CardDB)
        .outerjoin(OracleTextDB, OracleTextDB.oracle_id == CardDB.oracle_id)
        .where(and_(true(), *filter_predicates(params)))
    )

    ordering = []
    if params.search_text:
        ordering.append(case((CardDB.name == params.search_text, 0), else_=1))
    ordering.extend([CardDB.rank.asc().nulls_last(), CardDB.name, CardDB.id])

    return stmt.order_by(*ordering).limit(params.page_size).offset(params.offset)


def _to_projection(card: CardDB, price_usd: float | None) -> CardProjection:
    return CardProjection(
        id=card.id,
        scryfall_id=card.scryfall_id,
        oracle_text=card.oracle_text or "",
        name=card.name,
        set_code=card.set_code,
        set_name=card.set_name or "",
        rarity=card.rarity,
        mana_cost=card.mana_cost or "",
        type_line=card.type_line,
        colors=list(card.colors or []),
        image_uri=best_image_uri(card.image_uris),
        image_uri_small=small_image_uri(card.image_uris),
        image_file=card.image_file or "",
        price_usd=price_usd,
        last_updated=card.last_updated,
    )


async def search_cards(session: AsyncSession, params: CardSearchParams) -> list[CardProjection]:
    """
    Run a card search and return one page of projections.

    A page past the end of the results is an empty list.

    Raises:
        QueryExecutionError: If the database fails
    """
    try:
        result = await session.execute(build_card_search_query(params))
        cards = list(result.scalars().all())
        prices = await get_latest_prices(session, [card.id for card in cards])
    except SQLAlchemyError as e:
        logger.error("Card search failed: %s", e)
        raise QueryExecutionError("Card search failed", detail=str(e)) from e

    return [
        _to_projection(card, prices[card.id].price_usd if card.id in prices else None)
        for card in cards
    ]
