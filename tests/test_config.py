"""Tests for settings loaded from the environment."""

import json
import logging

import pytest
from sqlalchemy import create_engine, inspect

from spellbinder.config import Settings, settings
from spellbinder.jobs import migrate


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SPELLBINDER_API_KEYS", raising=False)
        settings = Settings(_env_file=None)

        assert settings.app_name == "Spell Binder"
        assert settings.api_keys == {}
        assert settings.default_page_size == 10
        assert settings.max_page_size == 100
        assert settings.image_download_retries == 2

    def test_reads_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPELLBINDER_API_KEYS", json.dumps({"secret": "alice"}))
        monkeypatch.setenv("SPELLBINDER_ADMIN_USERS", json.dumps(["alice"]))
        monkeypatch.setenv("SPELLBINDER_MAX_PAGE_SIZE", "50")

        settings = Settings(_env_file=None)

        assert settings.api_keys == {"secret": "alice"}
        assert settings.admin_users == {"alice"}
        assert settings.max_page_size == 50


class TestMigrateCommand:
    def test_upgrade_to_target(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture, tmp_path
    ) -> None:
        db_path = tmp_path / "cli.db"
        monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{db_path}")
        caplog.set_level(logging.INFO, logger="spellbinder")

        migrate.main(["upgrade", "--target", "0002_sync_status"])

        engine = create_engine(f"sqlite:///{db_path}")
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        assert {"cards", "oracle_texts", "sync_status", "alembic_version"} <= tables
        assert "collections" not in tables
        assert "Upgrade to 0002_sync_status complete" in caplog.text

    def test_downgrade_needs_target(self) -> None:
        with pytest.raises(SystemExit):
            migrate.main(["downgrade"])

    def test_rejects_unknown_direction(self) -> None:
        with pytest.raises(SystemExit):
            migrate.main(["sideways"])
