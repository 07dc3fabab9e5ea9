from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class SyncDataType(str, Enum):
    """Kinds of data kept in sync with Scryfall. One status row each."""

    CARDS = "cards"
    SETS = "sets"
    PRICES = "prices"
    IMAGES = "images"


class SyncState(str, Enum):
    """Status of a sync job. NOT_STARTED is never stored, only reported."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


STORED_SYNC_STATES = frozenset(
    {SyncState.IN_PROGRESS, SyncState.SUCCESS, SyncState.FAILED, SyncState.PARTIAL}
)


@dataclass(frozen=True, slots=True)
class ImageSyncProgress:
    """Snapshot of the image sync job as reported by the progress endpoint."""

    total_needing_images: int
    total_with_images: int
    status: SyncState
    last_sync: datetime | None
    records_processed: int
    completion_percentage: float

    @property
    def in_progress(self) -> bool:
        return self.status is SyncState.IN_PROGRESS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageSyncProgress":
        """Build from the JSON ``progress`` object. Raises KeyError/ValueError on bad input."""
        last_sync = data.get("last_sync")
        return cls(
            total_needing_images=int(data["total_needing_images"]),
            total_with_images=int(data["total_with_images"]),
            status=SyncState(data["status"]),
            last_sync=datetime.fromisoformat(last_sync) if last_sync else None,
            records_processed=int(data.get("records_processed") or 0),
            completion_percentage=float(data.get("completion_percentage") or 0.0),
        )


@dataclass(frozen=True, slots=True)
class ImageSyncResult:
    """Outcome of a trigger request or of one run of the image job."""

    success: bool
    message: str | None = None
    processed: int | None = None
    failed: int | None = None
    skipped: int | None = None
    error: str | None = None


def completion_percentage(with_images: int, needing_images: int) -> float:
    """Share of cards that have an image, rounded to one decimal. 0.0 for an empty catalog."""
    total = with_images + needing_images
    if total == 0:
        return 0.0
    return round(with_images * 100 / total, 1)
