from datetime import datetime

import pytest

from spellbinder.models.card import (
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
    UnauthenticatedError,
    UnauthorizedError,
)
from spellbinder.models.sync import ImageSyncProgress, SyncState, completion_percentage


class TestColorKey:
    def test_orders_wubrg(self) -> None:
        assert color_key(["G", "b", "U"]) == "UBG"

    def test_deduplicates(self) -> None:
        assert color_key(["R", "R"]) == "R"

    def test_colorless(self) -> None:
        assert color_key([]) == ""
        assert color_key(None) == ""


class TestImageUris:
    def test_preference_order(self) -> None:
        uris = {"small": "s", "large": "l", "art_crop": "a"}

        assert best_image_uri(uris) == "a"

    def test_normal_preferred(self) -> None:
        assert best_image_uri({"png": "p", "normal": "n"}) == "n"

    def test_missing(self) -> None:
        assert best_image_uri(None) == ""
        assert best_image_uri({"normal": ""}) == ""
        assert small_image_uri({"normal": "n"}) == ""
        assert small_image_uri({"small": "s"}) == "s"


class TestPriceObservation:
    def test_empty(self) -> None:
        assert PriceObservation().is_empty()
        assert not PriceObservation(tix=0.01).is_empty()


class TestCardProjection:
    def test_immutable(self) -> None:
        card = CardProjection(
            id=1,
            scryfall_id="abc",
            oracle_text="",
            name="Shock",
            set_code="M19",
            set_name="Core Set 2019",
            rarity="common",
            mana_cost="{R}",
            type_line="Instant",
            colors=["R"],
            image_uri="",
            image_uri_small="",
            image_file="",
            price_usd=None,
            last_updated=None,
        )
        with pytest.raises(AttributeError):
            card.name = "Bolt"  # type: ignore[misc]


class TestCompletionPercentage:
    def test_empty_catalog(self) -> None:
        assert completion_percentage(0, 0) == 0.0

    def test_rounds_to_one_decimal(self) -> None:
        assert completion_percentage(1, 2) == 33.3
        assert completion_percentage(2, 1) == 66.7

    def test_complete(self) -> None:
        assert completion_percentage(5, 0) == 100.0


class TestImageSyncProgress:
    def test_from_dict(self) -> None:
        progress = ImageSyncProgress.from_dict(
            {
                "total_needing_images": 3,
                "total_with_images": 7,
                "status": "in_progress",
                "last_sync": "2024-05-01T12:00:00",
                "records_processed": 7,
                "completion_percentage": 70.0,
            }
        )

        assert progress.in_progress
        assert progress.last_sync == datetime(2024, 5, 1, 12, 0)

    def test_unknown_status(self) -> None:
        with pytest.raises(ValueError):
            ImageSyncProgress.from_dict(
                {"total_needing_images": 0, "total_with_images": 0, "status": "paused"}
            )


class TestErrors:
    @pytest.mark.parametrize(
        ("error", "status", "kind"),
        [
            (InvalidParameterError("page", "bad"), 400, ErrorKind.INVALID_PARAMETER),
            (UnauthenticatedError("no"), 401, ErrorKind.UNAUTHENTICATED),
            (UnauthorizedError("no"), 403, ErrorKind.UNAUTHORIZED),
            (NotFoundError("gone"), 404, ErrorKind.NOT_FOUND),
            (QueryExecutionError("db"), 500, ErrorKind.QUERY_EXECUTION_FAILURE),
        ],
    )
    def test_status_and_kind(self, error: SpellBinderError, status: int, kind: ErrorKind) -> None:
        assert error.status_code == status
        assert error.kind is kind

    def test_invalid_parameter_message(self) -> None:
        error = InvalidParameterError("pageSize", "must be a positive integer")

        assert error.parameter == "pageSize"
        assert str(error) == "Invalid parameter 'pageSize': must be a positive integer"
