from spellbinder.db.database import get_session, get_session_factory, init_db
from spellbinder.db.operations import (
    claim_sync_job,
    count_card_images,
    create_collection_entry,
    delete_collection_entry,
    get_card,
    get_cards_by_scryfall_ids,
    get_cards_needing_images,
    get_collection_entry,
    get_latest_prices,
    get_sync_status,
    insert_missing_oracle_texts,
    list_collection,
    list_sync_statuses,
    record_prices,
    update_collection_entry,
    update_sync_status,
)

__all__ = [
    "claim_sync_job",
    "count_card_images",
    "create_collection_entry",
    "delete_collection_entry",
    "get_card",
    "get_cards_by_scryfall_ids",
    "get_cards_needing_images",
    "get_collection_entry",
    "get_latest_prices",
    "get_session",
    "get_session_factory",
    "get_sync_status",
    "init_db",
    "insert_missing_oracle_texts",
    "list_collection",
    "list_sync_statuses",
    "record_prices",
    "update_collection_entry",
    "update_sync_status",
]
