"""Tests for the sync trigger and progress endpoints."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest
import respx
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from spellbinder.api import sync as sync_api
from spellbinder.config import settings
from spellbinder.db.database import get_session
from spellbinder.db.operations import get_sync_status, update_sync_status
from spellbinder.main import app
from spellbinder.models.sync import SyncDataType, SyncState

BULK_URL = "https://bulk.example/default-cards.json"


@pytest.fixture
def record_jobs(monkeypatch: pytest.MonkeyPatch) -> list:
    """Replace the image job with one that only records that it was scheduled."""
    started: list = []

    async def fake_image_sync(session_factory) -> None:
        started.append(session_factory)

    monkeypatch.setattr(sync_api, "run_image_sync", fake_image_sync)
    return started


class TestImageSyncTrigger:
    async def test_requires_admin(self, client: AsyncClient, user_headers) -> None:
        response = await client.post("/api/sync/images", headers=user_headers)

        assert response.status_code == 403
        assert response.json()["kind"] == "unauthorized"

    async def test_requires_token(self, client: AsyncClient) -> None:
        response = await client.post("/api/sync/images")

        assert response.status_code == 401

    async def test_starts_job(
        self, client: AsyncClient, admin_headers, add_card, session_factory
    ) -> None:
        """The background job runs to completion and records its status."""
        await add_card(image_uris={})

        response = await client.post("/api/sync/images", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Image sync started"

        async with session_factory() as session:
            status = await get_sync_status(session, SyncDataType.IMAGES)
        assert status is not None
        assert status.status == SyncState.SUCCESS.value

    async def test_refused_while_in_progress(
        self, client: AsyncClient, admin_headers, session_factory
    ) -> None:
        async with session_factory() as session:
            await update_sync_status(session, SyncDataType.IMAGES, SyncState.IN_PROGRESS, 7)
            await session.commit()

        response = await client.post("/api/sync/images", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert "already in progress" in data["error"]

        async with session_factory() as session:
            status = await get_sync_status(session, SyncDataType.IMAGES)
        assert status.status == SyncState.IN_PROGRESS.value
        assert status.records_processed == 7

    async def test_stale_in_progress_job_can_be_restarted(
        self, client: AsyncClient, admin_headers, session_factory, record_jobs
    ) -> None:
        """A job whose status stopped moving long ago is treated as dead."""
        async with session_factory() as session:
            row = await update_sync_status(session, SyncDataType.IMAGES, SyncState.IN_PROGRESS, 7)
            row.last_sync = datetime.now(UTC) - timedelta(hours=2)
            await session.commit()

        response = await client.post("/api/sync/images", headers=admin_headers)

        assert response.json()["success"] is True
        assert len(record_jobs) == 1

        async with session_factory() as session:
            status = await get_sync_status(session, SyncDataType.IMAGES)
        assert status.status == SyncState.IN_PROGRESS.value
        assert status.records_processed == 0


class TestConcurrentTriggers:
    async def test_first_run_starts_one_job(
        self, client: AsyncClient, admin_headers, record_jobs
    ) -> None:
        responses = await asyncio.gather(
            client.post("/api/sync/images", headers=admin_headers),
            client.post("/api/sync/images", headers=admin_headers),
        )

        assert [r.status_code for r in responses] == [200, 200]
        assert sorted(r.json()["success"] for r in responses) == [False, True]
        assert len(record_jobs) == 1

    async def test_rerun_starts_one_job(
        self, client: AsyncClient, admin_headers, session_factory, record_jobs
    ) -> None:
        async with session_factory() as session:
            await update_sync_status(session, SyncDataType.IMAGES, SyncState.SUCCESS, 3)
            await session.commit()

        responses = await asyncio.gather(
            client.post("/api/sync/images", headers=admin_headers),
            client.post("/api/sync/images", headers=admin_headers),
        )

        assert sorted(r.json()["success"] for r in responses) == [False, True]
        assert len(record_jobs) == 1


class TestImageSyncProgress:
    async def test_not_started(self, client: AsyncClient, user_headers, add_card) -> None:
        await add_card()

        response = await client.get("/api/sync/images/progress", headers=user_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        progress = data["progress"]
        assert progress["status"] == "not_started"
        assert progress["total_needing_images"] == 1
        assert progress["total_with_images"] == 0
        assert progress["last_sync"] is None
        assert progress["records_processed"] == 0
        assert progress["completion_percentage"] == 0.0

    async def test_reports_counts_and_status(
        self, client: AsyncClient, user_headers, add_card, session_factory
    ) -> None:
        await add_card(image_file="a.jpg")
        await add_card()
        await add_card()
        async with session_factory() as session:
            await update_sync_status(session, SyncDataType.IMAGES, SyncState.PARTIAL, 1)
            await session.commit()

        response = await client.get("/api/sync/images/progress", headers=user_headers)

        progress = response.json()["progress"]
        assert progress["status"] == "partial"
        assert progress["total_with_images"] == 1
        assert progress["total_needing_images"] == 2
        assert progress["records_processed"] == 1
        assert progress["completion_percentage"] == 33.3
        assert progress["last_sync"] is not None

    async def test_empty_catalog(self, client: AsyncClient, user_headers) -> None:
        response = await client.get("/api/sync/images/progress", headers=user_headers)

        assert response.json()["progress"]["completion_percentage"] == 0.0


class TestCardSyncTrigger:
    async def test_requires_admin(self, client: AsyncClient, other_headers) -> None:
        response = await client.post("/api/sync/cards", headers=other_headers)

        assert response.status_code == 403

    async def test_runs_bulk_sync(
        self, client: AsyncClient, admin_headers, user_headers, monkeypatch
    ) -> None:
        monkeypatch.setattr(settings, "scryfall_bulk_url", "https://api.example/bulk-data")
        bulk = [
            {
                "id": "11111111-aaaa-bbbb-cccc-000000000001",
                "oracle_id": "o-1",
                "name": "Lightning Bolt",
                "set": "lea",
                "rarity": "common",
                "type_line": "Instant",
                "oracle_text": "Lightning Bolt deals 3 damage to any target.",
                "colors": ["R"],
                "prices": {"usd": "2.50"},
            }
        ]

        with respx.mock:
            respx.get("https://api.example/bulk-data").mock(
                return_value=httpx.Response(200, json={"download_uri": BULK_URL})
            )
            respx.get(BULK_URL).mock(return_value=httpx.Response(200, json=bulk))

            response = await client.post("/api/sync/cards", headers=admin_headers)

        assert response.json() == {
            "success": True,
            "message": "Card sync started",
            "processed": None,
            "failed": None,
            "skipped": None,
            "error": None,
        }

        statuses = (await client.get("/api/sync/status", headers=user_headers)).json()["statuses"]
        by_type = {s["data_type"]: s for s in statuses}
        assert by_type["cards"]["status"] == "success"
        assert by_type["cards"]["records_processed"] == 1
        assert by_type["prices"]["records_processed"] == 1

        cards = (await client.get("/api/cards", headers=user_headers)).json()["items"]
        assert [(c["name"], c["price_usd"]) for c in cards] == [("Lightning Bolt", 2.5)]


class TestSyncStatusList:
    async def test_empty(self, client: AsyncClient, user_headers) -> None:
        response = await client.get("/api/sync/status", headers=user_headers)

        assert response.status_code == 200
        assert response.json() == {"statuses": []}

    async def test_lists_rows(self, client: AsyncClient, user_headers, session_factory) -> None:
        async with session_factory() as session:
            await update_sync_status(
                session, SyncDataType.IMAGES, SyncState.FAILED, error_message="disk full"
            )
            await session.commit()

        response = await client.get("/api/sync/status", headers=user_headers)

        [row] = response.json()["statuses"]
        assert row["data_type"] == "images"
        assert row["status"] == "failed"
        assert row["error_message"] == "disk full"


class TestDatabaseErrors:
    @pytest.mark.parametrize(
        "path", ["/api/sync/images/progress", "/api/sync/status", "/api/collection"]
    )
    async def test_rendered_as_query_failure(self, auth_settings, user_headers, path: str) -> None:
        async def override_get_session_broken():
            mock_session = AsyncMock()
            mock_session.execute.side_effect = OperationalError(
                "SELECT 1", {}, Exception("database is locked")
            )
            yield mock_session

        app.dependency_overrides[get_session] = override_get_session_broken

        try:
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.get(path, headers=user_headers)
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Database query failed",
            "kind": "query_execution_failure",
        }
