"""
Schema migrations.

Revisions live in ``spellbinder/migrations/versions`` and are run by
Alembic. These helpers run them on an already-configured async engine,
which is how the app migrates at startup and how tests build databases.
From a shell, use ``alembic upgrade head`` or ``spellbinder-migrate``.
"""

from collections.abc import Callable
from functools import cache
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

SCRIPT_LOCATION = Path(__file__).resolve().parent.parent / "migrations"


def alembic_config() -> Config:
    """Alembic config pointing at the packaged revisions. No ini file needed."""
    config = Config()
    config.set_main_option("script_location", str(SCRIPT_LOCATION))
    return config


@cache
def head_revision() -> str | None:
    """Newest revision id."""
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def current_revision(conn: Connection) -> str | None:
    """Revision the database is at, None before the first migration."""
    return MigrationContext.configure(conn).get_current_revision()


def _run(conn: Connection, operation: Callable[[Config, str], None], revision: str) -> None:
    config = alembic_config()
    config.attributes["connection"] = conn
    operation(config, revision)


async def upgrade(engine: AsyncEngine, revision: str = "head") -> None:
    """Apply pending revisions up to ``revision`` in one transaction."""
    async with engine.begin() as conn:
        await conn.run_sync(_run, command.upgrade, revision)


async def downgrade(engine: AsyncEngine, revision: str) -> None:
    """Revert applied revisions down to ``revision`` ("base" reverts all)."""
    async with engine.begin() as conn:
        await conn.run_sync(_run, command.downgrade, revision)
