from spellbinder.services.auth import Principal, authenticate
from spellbinder.services.card_search import (
    CardSearchParams,
    build_card_search_query,
    parse_colors,
    search_cards,
)

__all__ = [
    "CardSearchParams",
    "Principal",
    "authenticate",
    "build_card_search_query",
    "parse_colors",
    "search_cards",
]
