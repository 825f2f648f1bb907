"""
Shared test fixtures for worldable.

Provides fresh temp databases, a small hand-built world (two countries with
one state and one city each), mocked dataset downloads, and resets the
module-level connection pool and settings between tests.
"""

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import orjson
import pytest

from worldable.config import DEFAULT_DATASET_URLS, WorldableSettings
from worldable.models import CityMetadata, CountryMetadata, StateMetadata
from worldable.schema import apply_migration
from worldable.seeders import ContinentSeeder, SubregionSeeder
from worldable.store import WorldDatabase


# ---------------------------------------------------------------------------
# Singleton reset (autouse) -- clears module-level caches every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_module_singletons(monkeypatch):
    """Close pooled connections and forget cached settings after each test."""
    import worldable.config as _config
    import worldable.store as _store

    monkeypatch.delenv("WORLDABLE_DB", raising=False)
    _config.reset_settings()

    yield

    for conn in _store._shared_connections.values():
        conn.close()
    _store._shared_connections.clear()
    _config.reset_settings()


# ---------------------------------------------------------------------------
# Database path & instances
# ---------------------------------------------------------------------------

@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Return a path to a fresh temporary database file."""
    return tmp_path / "test_world.db"


@pytest.fixture
def settings(db_path: Path) -> WorldableSettings:
    return WorldableSettings(db_path=db_path)


@pytest.fixture
def db(settings: WorldableSettings) -> WorldDatabase:
    """Empty WorldDatabase (ledger tables only)."""
    return WorldDatabase(settings=settings)


def create_tables(db: WorldDatabase, *components: str) -> None:
    """Create component tables the same way an install run does."""
    for component in components:
        apply_migration(db.conn, component, db.settings.tables, batch=1)


@pytest.fixture
def world_db(db: WorldDatabase) -> WorldDatabase:
    """
    Database with every table and a small world:

    continents + subregions from static data, Nigeria and the United States,
    Lagos and California states, Ikeja and Los Angeles cities, one language,
    one currency and one timezone.
    """
    create_tables(db, *db.settings.tables)
    ContinentSeeder(db).run()
    SubregionSeeder(db).run()

    continents = db.build_map("continents", "name")
    subregions = db.build_map("subregions", "name")

    ng = db.upsert(db.table("countries"), ["iso_code"], {
        "name": "Nigeria",
        "iso_code": "NG",
        "iso_code_3": "NGA",
        "calling_code": "+234",
        "continent_id": continents["Africa"],
        "subregion_id": subregions["Western Africa"],
        "metadata": CountryMetadata(capital="Abuja", continent_name="Africa", subregion_name="Western Africa").to_json(),
    })
    us = db.upsert(db.table("countries"), ["iso_code"], {
        "name": "United States",
        "iso_code": "US",
        "iso_code_3": "USA",
        "calling_code": "+1",
        "continent_id": continents["North America"],
        "subregion_id": subregions["Northern America"],
        "metadata": CountryMetadata(capital="Washington", continent_name="North America", subregion_name="Northern America").to_json(),
    })
    db.commit()

    lagos = db.add_state("Lagos", country_id=ng, code="LA", metadata=StateMetadata(country_code="NG", country_name="Nigeria"))
    california = db.add_state("California", country_id=us, code="CA", metadata=StateMetadata(country_code="US", country_name="United States"))
    db.add_city("Ikeja", ng, lagos.id, 6.6018, 3.3515, CityMetadata(country_code="NG", state_code="LA"))
    db.add_city("Los Angeles", us, california.id, 34.0522, -118.2437, CityMetadata(country_code="US", state_code="CA"))

    db.insert_or_ignore(db.table("languages"), [{"name": "English", "iso_code": "en", "native_name": "English"}])
    db.insert_or_ignore(db.table("currencies"), [{"name": "Nigerian Naira", "code": "NGN", "symbol": "₦"}])
    db.insert_or_ignore(db.table("timezones"), [{
        "name": "West Africa Time",
        "zone_name": "Africa/Lagos",
        "gmt_offset": 3600,
        "gmt_offset_name": "UTC+01:00",
        "abbreviation": "WAT",
    }])
    return db


# ---------------------------------------------------------------------------
# Dataset downloads
# ---------------------------------------------------------------------------

COUNTRIES_DATASET: list[dict[str, Any]] = [
    {
        "name": "Nigeria",
        "iso2": "NG",
        "iso3": "NGA",
        "phonecode": "234",
        "capital": "Abuja",
        "region": "Africa",
        "subregion": "Western Africa",
        "currency": "NGN",
        "population": "",
        "timezones": [{"zoneName": "Africa/Lagos"}],
        "emojiU": "U+1F1F3 U+1F1EC",
    },
    {
        "name": "United States",
        "iso2": "US",
        "iso3": "USA",
        "phonecode": "+1",
        "region": "North America",
        "subregion": "Northern America",
    },
    {"name": "Nowhere", "iso2": "", "iso3": ""},
]

STATES_DATASET: list[dict[str, Any]] = [
    {"name": "Lagos", "state_code": "LA", "country_code": "NG", "country_name": "Nigeria", "type": "state"},
    {"name": "Kano", "state_code": "KN", "country_code": "NG", "country_name": "Nigeria", "type": "state"},
    {"name": "California", "state_code": "CA", "country_code": "US", "country_name": "United States"},
]

CITIES_DATASET: list[dict[str, Any]] = [
    {"name": "Ikeja", "state_code": "LA", "country_code": "NG", "latitude": "6.6018", "longitude": "3.3515"},
    {"name": "Kano", "state_code": "KN", "country_code": "NG", "latitude": "12.0", "longitude": "8.5167"},
    {"name": "Los Angeles {LA}", "state_code": "CA", "country_code": "US", "latitude": "95.0", "longitude": "-118.2437"},
]

LANGUAGES_DATASET = [
    {"code": "en", "name": "English", "name_native": "English"},
    {"code": "yo", "name": "Yoruba", "name_native": "Yorùbá"},
    {"code": "", "name": "Broken"},
]

CURRENCIES_DATASET = {
    "NGN": {"name": "Nigerian Naira", "symbol": "NGN", "symbol_native": "₦"},
    "USD": {"name": "US Dollar", "symbol": "$"},
}


def make_response(content: bytes, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    return resp


@pytest.fixture
def datasets() -> dict[str, bytes]:
    """Component -> raw dataset body served by ``mock_client``."""
    return {
        "countries": orjson.dumps(COUNTRIES_DATASET),
        "states": orjson.dumps(STATES_DATASET),
        "cities": orjson.dumps(CITIES_DATASET),
        "languages": orjson.dumps(LANGUAGES_DATASET),
        "currencies": orjson.dumps(CURRENCIES_DATASET),
    }


@pytest.fixture
def mock_client(datasets: dict[str, bytes]) -> MagicMock:
    """MagicMock standing in for httpx.Client, serving ``datasets`` by URL."""
    components_by_url = {url: component for component, url in DEFAULT_DATASET_URLS.items()}

    def _get(url: str, **kwargs):
        component = components_by_url.get(url)
        if component not in datasets:
            return make_response(b"Not Found", status_code=404)
        return make_response(datasets[component])

    client = MagicMock()
    client.get.side_effect = _get
    return client


@pytest.fixture
def make_tables():
    """The ``create_tables`` helper, for tests that build their own schema."""
    return create_tables
