"""
Apply or revert schema migrations against SPELLBINDER_DATABASE_URL.

    python -m spellbinder.jobs.migrate upgrade [--target REV]
    python -m spellbinder.jobs.migrate downgrade --target REV

Same as ``alembic upgrade``/``alembic downgrade`` but needs no alembic.ini.
"""

import argparse
import logging

from alembic import command

from spellbinder.config import configure_logging
from spellbinder.db.migrations import alembic_config

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Spell Binder schema migrations")
    parser.add_argument("direction", choices=["upgrade", "downgrade"])
    parser.add_argument(
        "--target",
        default=None,
        help='revision to stop at (upgrade defaults to "head"; "base" reverts everything)',
    )
    args = parser.parse_args(argv)

    if args.direction == "downgrade" and args.target is None:
        parser.error("downgrade needs --target")

    configure_logging()
    config = alembic_config()
    if args.direction == "upgrade":
        target = args.target or "head"
        command.upgrade(config, target)
    else:
        target = args.target
        command.downgrade(config, target)

    logger.info("%s to %s complete", args.direction.capitalize(), target)


if __name__ == "__main__":
    main()
