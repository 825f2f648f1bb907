"""
Runtime configuration for worldable.

Settings are read once from the environment and can be overridden per call
(the CLI passes ``--db`` through ``WorldableSettings.model_copy``).

Environment variables:
- ``WORLDABLE_DB``: path to the SQLite database file
- ``WORLDABLE_TABLE_<COMPONENT>``: override one table name (e.g. ``WORLDABLE_TABLE_COUNTRIES``)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .exceptions import InvalidComponentError

logger = logging.getLogger(__name__)

# Local cache directory
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "worldable"
DEFAULT_DB_PATH = DEFAULT_CACHE_DIR / "world.db"

DEFAULT_TABLES: dict[str, str] = {
    "continents": "world_continents",
    "subregions": "world_subregions",
    "countries": "world_countries",
    "states": "world_states",
    "cities": "world_cities",
    "languages": "world_languages",
    "currencies": "world_currencies",
    "timezones": "world_timezones",
    "worldables": "worldables",  # The polymorphic pivot table
}

_DATASET_BASE = "https://raw.githubusercontent.com/ritechoice23/countries-states-cities-database/master/json"
_WORLD_BASE = "https://raw.githubusercontent.com/ritechoice23/world/master/resources/json"

DEFAULT_DATASET_URLS: dict[str, str] = {
    "countries": f"{_DATASET_BASE}/countries.json",
    "states": f"{_DATASET_BASE}/states.json",
    "cities": f"{_DATASET_BASE}/cities.json.gz",
    "languages": f"{_WORLD_BASE}/languages.json",
    "currencies": f"{_WORLD_BASE}/currencies.json",
}

# Ledger tables, not configurable
MIGRATIONS_TABLE = "world_migrations"
INSTALLATION_STATE_TABLE = "world_installation_state"


class WorldableSettings(BaseModel):
    """Resolved configuration for one process."""

    db_path: Path = DEFAULT_DB_PATH
    tables: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_TABLES))
    dataset_urls: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_DATASET_URLS))
    http_timeout: float = 30.0
    large_http_timeout: float = 180.0
    rollback_on_error: bool = False

    def table(self, component: str) -> str:
        """Return the configured table name for a component."""
        try:
            return self.tables[component]
        except KeyError:
            raise InvalidComponentError(component, list(self.tables)) from None

    def dataset_url(self, component: str) -> str:
        try:
            return self.dataset_urls[component]
        except KeyError:
            raise InvalidComponentError(component, list(self.dataset_urls)) from None

    @classmethod
    def from_env(cls) -> "WorldableSettings":
        """Build settings from ``WORLDABLE_*`` environment variables."""
        tables = dict(DEFAULT_TABLES)
        for component in DEFAULT_TABLES:
            override = os.environ.get(f"WORLDABLE_TABLE_{component.upper()}")
            if override:
                tables[component] = override.strip()

        db_env = os.environ.get("WORLDABLE_DB")
        db_path = Path(db_env).expanduser() if db_env else DEFAULT_DB_PATH

        rollback = os.environ.get("WORLDABLE_ROLLBACK_ON_ERROR", "").strip().lower() in {"1", "true", "yes", "on"}

        return cls(db_path=db_path, tables=tables, rollback_on_error=rollback)


_settings: Optional[WorldableSettings] = None


def get_settings(db_path: Optional[str | Path] = None) -> WorldableSettings:
    """
    Get process-wide settings, optionally pointing at a different database.

    Args:
        db_path: Explicit database path (wins over WORLDABLE_DB)

    Returns:
        WorldableSettings instance
    """
    global _settings
    if _settings is None:
        _settings = WorldableSettings.from_env()
        logger.debug(f"Loaded settings: db_path={_settings.db_path}")

    if db_path is not None:
        return _settings.model_copy(update={"db_path": Path(db_path)})
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the environment is read again."""
    global _settings
    _settings = None
