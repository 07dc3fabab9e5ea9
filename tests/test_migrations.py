"""Tests for the Alembic schema revisions."""

import pytest
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine

from spellbinder.db import migrations
from spellbinder.db.migrations import alembic_config, current_revision, head_revision
from spellbinder.models.db import Base

REVISIONS = [
    "0001_card_catalog",
    "0002_sync_status",
    "0003_collections",
    "0004_card_prices",
    "0005_card_collection_view",
    "0006_decks",
]


@pytest.fixture
async def empty_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    yield engine
    await engine.dispose()


async def table_names(engine) -> set[str]:
    async with engine.connect() as conn:
        return set(await conn.run_sync(lambda c: inspect(c).get_table_names()))


async def view_names(engine) -> set[str]:
    async with engine.connect() as conn:
        return set(await conn.run_sync(lambda c: inspect(c).get_view_names()))


async def revision_of(engine) -> str | None:
    async with engine.connect() as conn:
        return await conn.run_sync(current_revision)


async def insert_card(engine) -> None:
    async with engine.begin() as conn:
        await conn.execute(
            text(
                "INSERT INTO cards (id, scryfall_id, name, lang, set_code, set_name,"
                " collector_number, rarity, mana_cost, cmc, type_line, oracle_text,"
                " colors, color_key, image_uris) VALUES (1, 'abc', 'Shock', 'en', 'M19',"
                " 'Core Set 2019', '156', 'common', '{R}', 1, 'Instant', '', '[\"R\"]',"
                " 'R', '{}')"
            )
        )


class TestRevisionHistory:
    def test_single_linear_history(self) -> None:
        script = ScriptDirectory.from_config(alembic_config())

        history = [rev.revision for rev in script.walk_revisions("base", "heads")]

        assert list(reversed(history)) == REVISIONS
        assert script.get_heads() == [REVISIONS[-1]]
        assert head_revision() == REVISIONS[-1]

    def test_every_revision_is_reversible(self) -> None:
        script = ScriptDirectory.from_config(alembic_config())

        for rev in script.walk_revisions():
            assert callable(rev.module.upgrade)
            assert callable(rev.module.downgrade)


class TestUpgrade:
    async def test_upgrade_creates_converged_schema(self, empty_engine) -> None:
        await migrations.upgrade(empty_engine)

        assert await table_names(empty_engine) == set(Base.metadata.tables) | {"alembic_version"}
        assert await view_names(empty_engine) == {"card_collection"}
        assert await revision_of(empty_engine) == REVISIONS[-1]

    async def test_upgrade_is_idempotent(self, empty_engine) -> None:
        await migrations.upgrade(empty_engine)
        before = await table_names(empty_engine)

        await migrations.upgrade(empty_engine)

        assert await table_names(empty_engine) == before
        assert await revision_of(empty_engine) == REVISIONS[-1]

    async def test_upgrade_to_target(self, empty_engine) -> None:
        await migrations.upgrade(empty_engine, "0002_sync_status")

        tables = await table_names(empty_engine)
        assert {"cards", "oracle_texts", "sync_status"} <= tables
        assert "collections" not in tables
        assert await revision_of(empty_engine) == "0002_sync_status"

    async def test_collection_checks_are_enforced(self, empty_engine) -> None:
        await migrations.upgrade(empty_engine)
        await insert_card(empty_engine)

        for quantity, condition in [(0, "NM"), (1, "MINT")]:
            with pytest.raises(IntegrityError):
                async with empty_engine.begin() as conn:
                    await conn.execute(
                        text(
                            "INSERT INTO collections (user_id, card_id, quantity, condition,"
                            " foil, notes) VALUES ('alice', 1, :quantity, :condition, 0, '')"
                        ),
                        {"quantity": quantity, "condition": condition},
                    )

    async def test_view_reads_collection_rows(self, empty_engine) -> None:
        await migrations.upgrade(empty_engine)

        await insert_card(empty_engine)

        async with empty_engine.begin() as conn:
            await conn.execute(
                text(
                    "INSERT INTO collections (user_id, card_id, quantity, condition, foil, notes)"
                    " VALUES ('alice', 1, 3, 'NM', 0, '')"
                )
            )
            rows = (
                await conn.execute(
                    text("SELECT name, collection_user, collection_quantity FROM card_collection")
                )
            ).all()

        assert [tuple(row) for row in rows] == [("Shock", "alice", 3)]


class TestDowngrade:
    async def test_downgrade_to_base(self, empty_engine) -> None:
        await migrations.upgrade(empty_engine)

        await migrations.downgrade(empty_engine, "base")

        assert await table_names(empty_engine) == {"alembic_version"}
        assert await view_names(empty_engine) == set()
        assert await revision_of(empty_engine) is None

    async def test_downgrade_to_target(self, empty_engine) -> None:
        await migrations.upgrade(empty_engine)

        await migrations.downgrade(empty_engine, "0004_card_prices")

        assert "card_collection" not in await view_names(empty_engine)
        tables = await table_names(empty_engine)
        assert "card_prices" in tables
        assert "decks" not in tables
        assert await revision_of(empty_engine) == "0004_card_prices"

    async def test_round_trip(self, empty_engine) -> None:
        """Downgrade then upgrade restores the same schema."""
        await migrations.upgrade(empty_engine)
        before = await table_names(empty_engine)

        await migrations.downgrade(empty_engine, "0001_card_catalog")
        await migrations.upgrade(empty_engine)

        assert await table_names(empty_engine) == before
        assert "card_collection" in await view_names(empty_engine)

    async def test_current_revision_of_empty_database(self, empty_engine) -> None:
        assert await revision_of(empty_engine) is None
        assert await table_names(empty_engine) == set()
