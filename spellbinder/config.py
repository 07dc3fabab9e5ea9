import logging
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="SPELLBINDER_")

    app_name: str = "Spell Binder"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "postgresql+asyncpg://localhost:5432/spellbinder"

    # Bearer token -> user id. JSON object when set from the environment.
    api_keys: dict[str, str] = {}
    admin_users: set[str] = set()

    scryfall_bulk_url: str = "https://api.scryfall.com/bulk-data/default-cards"
    user_agent: str = "SpellBinder/1.0"
    sync_batch_size: int = 1000
    # A job whose status has not moved for this long is treated as dead
    sync_stale_after_minutes: int = 60

    image_dir: Path = Path("data/images")
    image_download_timeout: float = 30.0
    image_download_retries: int = 2
    image_retry_delay: float = 5.0

    default_page_size: int = 10
    max_page_size: int = 100


settings = Settings()


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once, at process start."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
