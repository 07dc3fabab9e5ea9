from spellbinder.models.card import (
    COLOR_ORDER,
    COLORLESS,
    VALID_RARITIES,
    CardProjection,
    PriceObservation,
    best_image_uri,
    color_key,
    small_image_uri,
)
from spellbinder.models.errors import (
    ErrorKind,
    InvalidParameterError,
    NotFoundError,
    QueryExecutionError,
    SpellBinderError,
    SyncJobError,
    SyncNetworkError,
    UnauthenticatedError,
    UnauthorizedError,
)
from spellbinder.models.sync import (
    ImageSyncProgress,
    ImageSyncResult,
    SyncDataType,
    SyncState,
    completion_percentage,
)

__all__ = [
    "COLORLESS",
    "COLOR_ORDER",
    "VALID_RARITIES",
    "CardProjection",
    "ErrorKind",
    "ImageSyncProgress",
    "ImageSyncResult",
    "InvalidParameterError",
    "NotFoundError",
    "PriceObservation",
    "QueryExecutionError",
    "SpellBinderError",
    "SyncDataType",
    "SyncJobError",
    "SyncNetworkError",
    "SyncState",
    "UnauthenticatedError",
    "UnauthorizedError",
    "best_image_uri",
    "color_key",
    "completion_percentage",
    "small_image_uri",
]
