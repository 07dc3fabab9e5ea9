from spellbinder.api.cards import router as cards_router
from spellbinder.api.collection import router as collection_router
from spellbinder.api.health import router as health_router
from spellbinder.api.sync import router as sync_router

__all__ = [
    "cards_router",
    "collection_router",
    "health_router",
    "sync_router",
]
