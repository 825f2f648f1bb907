"""
Seeders: one per component, each filling its table from static data or a
remote dataset.

Remote seeders stream the downloaded array through the extractor, resolve
parent references with lookup maps built once per run, and keep the parent's
natural key in the row metadata. A row whose parent is not installed yet is
still inserted (with a NULL reference) and counted as an orphan; the linkers
backfill it later.
"""

import logging
from typing import Any, Optional

import orjson
from pydantic import ValidationError

from .components import DEFAULT_REGISTRY, ComponentRegistry
from .exceptions import SeedingError
from .extractor import (
    estimate_record_count,
    iter_named_records,
    sanitize_latitude,
    sanitize_longitude,
)
from .models import CityMetadata, CountryMetadata, SeedResult, StateMetadata, SubregionMetadata, decode_json
from .seed_data import SUBREGIONS, continent_rows, timezone_rows
from .sources import load_json_text
from .store import WorldDatabase

logger = logging.getLogger(__name__)

STATE_BATCH_SIZE = 500
CITY_BATCH_SIZE = 1000

LINK_HINT = "Run 'worldable link' after installing dependencies to establish relationships."


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Seeder:
    """Base class. Subclasses set ``component`` and implement ``run``."""

    component: str = ""

    def __init__(self, db: WorldDatabase, client: Optional[Any] = None):
        self.db = db
        self.client = client

    @property
    def table(self) -> str:
        return self.db.table(self.component)

    def run(self) -> SeedResult:
        raise NotImplementedError

    def _download(self, timeout: Optional[float] = None) -> str:
        settings = self.db.settings
        return load_json_text(
            settings.dataset_url(self.component),
            client=self.client,
            timeout=timeout or settings.http_timeout,
        )

    def _report_orphans(self, result: SeedResult) -> None:
        for parent, count in result.details.items():
            if count:
                logger.warning(f"{count:,} {self.component} without {parent} links ({parent} not installed)")
        if result.orphaned:
            logger.warning(LINK_HINT)


# =============================================================================
# STATIC SEEDERS
# =============================================================================


class ContinentSeeder(Seeder):
    component = "continents"

    def run(self) -> SeedResult:
        inserted = 0
        for row in continent_rows():
            self.db.upsert(self.table, ["code"], row)
            inserted += 1
        self.db.commit()
        logger.info(f"Seeded {inserted} continents")
        return SeedResult(component=self.component, inserted=inserted)


class SubregionSeeder(Seeder):
    component = "subregions"

    def run(self) -> SeedResult:
        continent_map = self.db.build_map("continents", "name")
        inserted = 0
        orphaned = 0

        for name, code, continent in SUBREGIONS:
            continent_id = continent_map.get(continent)
            if continent_id is None:
                orphaned += 1
            self.db.upsert(
                self.table,
                ["name"],
                {
                    "name": name,
                    "code": code,
                    "continent_id": continent_id,
                    "data": SubregionMetadata(continent_name=continent).to_json(),
                },
            )
            inserted += 1

        self.db.commit()
        logger.info(f"Seeded {inserted} subregions")
        result = SeedResult(
            component=self.component, inserted=inserted, orphaned=orphaned, details={"continents": orphaned}
        )
        self._report_orphans(result)
        return result


class TimezoneSeeder(Seeder):
    component = "timezones"

    def run(self) -> SeedResult:
        inserted = self.db.insert_or_ignore(self.table, timezone_rows())
        logger.info(f"Seeded {inserted} timezones")
        return SeedResult(component=self.component, inserted=inserted)


# =============================================================================
# REMOTE SEEDERS
# =============================================================================


class CountrySeeder(Seeder):
    component = "countries"

    def run(self) -> SeedResult:
        text = self._download()
        logger.info(f"Processing approximately {estimate_record_count(text):,} countries")

        continent_map = self.db.build_map("continents", "name")
        subregion_map = self.db.build_map("subregions", "name")

        inserted = 0
        orphan_continent = 0
        orphan_subregion = 0
        orphaned = 0

        for record in iter_named_records(text):
            iso2 = _clean(record.get("iso2"))
            iso3 = _clean(record.get("iso3"))
            if not iso2 or not iso3:
                logger.debug(f"Skipping country without ISO codes: {record.get('name')}")
                continue

            region = _clean(record.get("region"))
            subregion = _clean(record.get("subregion"))
            continent_id = continent_map.get(region) if region else None
            subregion_id = subregion_map.get(subregion) if subregion else None

            try:
                metadata = CountryMetadata(
                    capital=record.get("capital"),
                    native=record.get("native"),
                    nationality=record.get("nationality"),
                    tld=record.get("tld"),
                    numeric_code=_clean(record.get("numeric_code")),
                    population=record.get("population"),
                    currency_name=record.get("currency_name"),
                    currency_symbol=record.get("currency_symbol"),
                    timezones=record.get("timezones") or [],
                    translations=record.get("translations") or {},
                    emoji=record.get("emoji"),
                    emojiU=record.get("emojiU"),
                    currency_code=record.get("currency"),
                    continent_name=region,
                    subregion_name=subregion,
                )
            except ValidationError as e:
                logger.debug(f"Skipping malformed country record {record.get('name')}: {e}")
                continue
            phonecode = _clean(record.get("phonecode"))

            self.db.upsert(
                self.table,
                ["iso_code"],
                {
                    "name": str(record["name"]).strip(),
                    "iso_code": iso2.upper(),
                    "iso_code_3": iso3.upper(),
                    "calling_code": f"+{phonecode.lstrip('+')}" if phonecode else None,
                    "continent_id": continent_id,
                    "subregion_id": subregion_id,
                    "metadata": metadata.to_json(),
                },
            )
            inserted += 1

            missing_continent = region is not None and continent_id is None
            missing_subregion = subregion is not None and subregion_id is None
            orphan_continent += missing_continent
            orphan_subregion += missing_subregion
            orphaned += missing_continent or missing_subregion

            if inserted % 100 == 0:
                self.db.commit()

        self.db.commit()
        if inserted == 0:
            raise SeedingError(self.component, "dataset contained no usable country records")

        logger.info(f"Seeded {inserted:,} countries")
        result = SeedResult(
            component=self.component,
            inserted=inserted,
            orphaned=orphaned,
            details={"continents": orphan_continent, "subregions": orphan_subregion},
        )
        self._report_orphans(result)
        return result


class StateSeeder(Seeder):
    component = "states"

    def _existing_keys(self) -> set[tuple]:
        keys: set[tuple] = set()
        for row in self.db.iter_rows(self.component):
            country_code = decode_json(row["metadata"]).get("country_code")
            keys.add((country_code, row["code"], row["name"]))
        return keys

    def run(self) -> SeedResult:
        text = self._download()
        logger.info(f"Processing approximately {estimate_record_count(text):,} states")

        country_map = self.db.build_map("countries", "iso_code")
        existing = self._existing_keys()

        inserted = 0
        seen = 0
        orphaned = 0
        batch: list[dict] = []

        for record in iter_named_records(text):
            seen += 1
            name = str(record["name"]).strip()
            code = _clean(record.get("state_code"))
            country_code = _clean(record.get("country_code"))
            key = (country_code, code, name)
            if key in existing:
                continue

            try:
                metadata = StateMetadata(
                    latitude=_clean(record.get("latitude")),
                    longitude=_clean(record.get("longitude")),
                    type=record.get("type"),
                    country_code=country_code,
                    country_name=record.get("country_name"),
                )
            except ValidationError as e:
                logger.debug(f"Skipping malformed state record {name}: {e}")
                continue
            existing.add(key)

            country_id = country_map.get(country_code) if country_code else None
            if country_id is None:
                orphaned += 1

            batch.append(
                {
                    "country_id": country_id,
                    "name": name,
                    "code": code,
                    "metadata": metadata.to_json(),
                }
            )

            if len(batch) >= STATE_BATCH_SIZE:
                inserted += self.db.insert_or_ignore(self.table, batch, batch_size=STATE_BATCH_SIZE)
                batch = []

        if batch:
            inserted += self.db.insert_or_ignore(self.table, batch, batch_size=STATE_BATCH_SIZE)

        if seen == 0:
            raise SeedingError(self.component, "dataset contained no usable state records")

        logger.info(f"Seeded {inserted:,} states")
        result = SeedResult(
            component=self.component, inserted=inserted, orphaned=orphaned, details={"countries": orphaned}
        )
        self._report_orphans(result)
        return result


class CitySeeder(Seeder):
    component = "cities"

    def _existing_keys(self) -> set[tuple]:
        keys: set[tuple] = set()
        for row in self.db.iter_rows(self.component):
            meta = decode_json(row["metadata"])
            keys.add((meta.get("country_code"), meta.get("state_code"), row["name"]))
        return keys

    def run(self) -> SeedResult:
        text = self._download(timeout=self.db.settings.large_http_timeout)
        logger.info(f"Processing approximately {estimate_record_count(text):,} cities")

        country_map = self.db.build_map("countries", "iso_code")
        state_map = self.db.build_composite_map("states", ["country_id", "code"])
        existing = self._existing_keys()

        inserted = 0
        seen = 0
        orphan_country = 0
        orphan_state = 0
        orphaned = 0
        batch: list[dict] = []

        for record in iter_named_records(text):
            seen += 1
            name = str(record["name"]).strip()
            country_code = _clean(record.get("country_code"))
            state_code = _clean(record.get("state_code"))
            key = (country_code, state_code, name)
            if key in existing:
                continue
            existing.add(key)

            country_id = country_map.get(country_code) if country_code else None
            state_id = None
            if country_id is not None and state_code:
                state_id = state_map.get(f"{country_id}_{state_code}")

            missing_country = country_id is None
            missing_state = state_id is None and state_code is not None
            orphan_country += missing_country
            orphan_state += missing_state
            orphaned += missing_country or missing_state

            batch.append(
                {
                    "country_id": country_id,
                    "state_id": state_id,
                    "name": name,
                    "latitude": sanitize_latitude(record.get("latitude")),
                    "longitude": sanitize_longitude(record.get("longitude")),
                    "metadata": CityMetadata(country_code=country_code, state_code=state_code).to_json(),
                }
            )

            if len(batch) >= CITY_BATCH_SIZE:
                inserted += self.db.insert_or_ignore(self.table, batch, batch_size=CITY_BATCH_SIZE)
                batch = []
                if inserted % 50_000 < CITY_BATCH_SIZE:
                    logger.info(f"Inserted {inserted:,} cities...")

        if batch:
            inserted += self.db.insert_or_ignore(self.table, batch, batch_size=CITY_BATCH_SIZE)

        if seen == 0:
            raise SeedingError(self.component, "dataset contained no usable city records")

        logger.info(f"Seeded {inserted:,} cities")
        result = SeedResult(
            component=self.component,
            inserted=inserted,
            orphaned=orphaned,
            details={"countries": orphan_country, "states": orphan_state},
        )
        self._report_orphans(result)
        return result


class LanguageSeeder(Seeder):
    component = "languages"

    def run(self) -> SeedResult:
        text = self._download()
        try:
            languages = orjson.loads(text)
        except orjson.JSONDecodeError as e:
            raise SeedingError(self.component, f"malformed language data: {e}") from e
        if not languages or not isinstance(languages, list):
            raise SeedingError(self.component, "no language data found in the response")

        inserted = 0
        for language in languages:
            if not isinstance(language, dict):
                continue
            code = _clean(language.get("code"))
            name = _clean(language.get("name"))
            if not code or not name:
                continue
            self.db.upsert(
                self.table,
                ["iso_code"],
                {"name": name, "iso_code": code, "native_name": _clean(language.get("name_native"))},
            )
            inserted += 1

        self.db.commit()
        logger.info(f"Seeded {inserted} languages")
        return SeedResult(component=self.component, inserted=inserted)


class CurrencySeeder(Seeder):
    component = "currencies"

    def run(self) -> SeedResult:
        text = self._download()
        try:
            currencies = orjson.loads(text)
        except orjson.JSONDecodeError as e:
            raise SeedingError(self.component, f"malformed currency data: {e}") from e
        if not currencies or not isinstance(currencies, dict):
            raise SeedingError(self.component, "no currency data found in the response")

        inserted = 0
        for code, currency in currencies.items():
            currency = currency if isinstance(currency, dict) else {}
            self.db.upsert(
                self.table,
                ["code"],
                {
                    "name": _clean(currency.get("name")) or code,
                    "code": code,
                    "symbol": _clean(currency.get("symbol_native")) or _clean(currency.get("symbol")) or "",
                },
            )
            inserted += 1

        self.db.commit()
        logger.info(f"Seeded {inserted} currencies")
        return SeedResult(component=self.component, inserted=inserted)


SEEDER_CLASSES: dict[str, type[Seeder]] = {
    cls.__name__: cls
    for cls in (
        ContinentSeeder,
        SubregionSeeder,
        CountrySeeder,
        StateSeeder,
        CitySeeder,
        LanguageSeeder,
        CurrencySeeder,
        TimezoneSeeder,
    )
}


def create_seeder(
    component: str,
    db: WorldDatabase,
    client: Optional[Any] = None,
    registry: ComponentRegistry = DEFAULT_REGISTRY,
) -> Optional[Seeder]:
    """Instantiate the seeder registered for a component (None for worldables)."""
    name = registry.seeder_of(component)
    if name is None:
        return None
    return SEEDER_CLASSES[name](db, client=client)
