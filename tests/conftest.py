from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from spellbinder.config import settings
from spellbinder.db import migrations
from spellbinder.db.database import get_session, get_session_factory
from spellbinder.main import app
from spellbinder.models.card import color_key
from spellbinder.models.db import CardDB, OracleTextDB

USER_TOKEN = "user-token"
OTHER_TOKEN = "other-token"
ADMIN_TOKEN = "admin-token"

USER_HEADERS = {"Authorization": f"Bearer {USER_TOKEN}"}
OTHER_HEADERS = {"Authorization": f"Bearer {OTHER_TOKEN}"}
ADMIN_HEADERS = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
async def async_engine():
    """In-memory SQLite engine with every migration applied."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await migrations.upgrade(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_card(session_factory) -> Callable[..., Awaitable[int]]:
    """
    Insert a card (and its oracle text) and return its id.

    Keyword arguments override the defaults.
    """
    counter = {"n": 0}

    async def _add(**overrides: Any) -> int:
        counter["n"] += 1
        n = counter["n"]
        values: dict[str, Any] = {
            "scryfall_id": f"{n:08d}-0000-0000-0000-000000000000",
            "oracle_id": f"oracle-{n}",
            "name": f"Card {n:03d}",
            "set_code": "TST",
            "set_name": "Test Set",
            "rarity": "common",
            "mana_cost": "{1}",
            "type_line": "Instant",
            "oracle_text": f"Rules text {n}",
            "colors": [],
            "image_uris": {},
            "rank": n,
        }
        values.update(overrides)
        values.setdefault("color_key", color_key(values["colors"]))

        async with session_factory() as session:
            card = CardDB(**values)
            session.add(card)
            if values["oracle_id"] and values["oracle_text"]:
                session.add(
                    OracleTextDB(oracle_id=values["oracle_id"], oracle_text=values["oracle_text"])
                )
            await session.commit()
            return card.id

    return _add


@pytest.fixture
def auth_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Known API tokens, one admin, and a scratch image directory."""
    monkeypatch.setattr(
        settings,
        "api_keys",
        {USER_TOKEN: "alice", OTHER_TOKEN: "bob", ADMIN_TOKEN: "admin"},
    )
    monkeypatch.setattr(settings, "admin_users", {"admin"})
    monkeypatch.setattr(settings, "image_dir", tmp_path / "images")


@pytest.fixture
async def client(session_factory, auth_settings):
    """Provide an async test client with overridden database session."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> dict[str, str]:
    return dict(USER_HEADERS)


@pytest.fixture
def other_headers() -> dict[str, str]:
    return dict(OTHER_HEADERS)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)
