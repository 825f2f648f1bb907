"""
Pydantic records for world entities, their metadata, and ledger rows.

Metadata columns are JSON in the database but typed here: each entity with a
parent reference carries a small metadata model holding the denormalized
parent name/code that the linkers use to backfill foreign keys.
"""

import logging
from datetime import datetime
from typing import Any, ClassVar, Optional, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

M = TypeVar("M", bound="EntityMetadata")


def decode_json(raw: Any) -> dict[str, Any]:
    """Decode a JSON column value into a dict, tolerating null and garbage."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        decoded = orjson.loads(raw)
    except orjson.JSONDecodeError:
        logger.debug(f"Ignoring undecodable JSON column value: {str(raw)[:80]}")
        return {}
    return decoded if isinstance(decoded, dict) else {}


def encode_json(data: Optional[dict[str, Any]]) -> Optional[str]:
    """Encode a dict for a JSON column (None and {} both become NULL)."""
    if not data:
        return None
    return orjson.dumps(data).decode("utf-8")


# =============================================================================
# METADATA
# =============================================================================


class EntityMetadata(BaseModel):
    """Base for structured metadata blobs. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_json(self) -> Optional[str]:
        return encode_json(self.model_dump(exclude_none=True, by_alias=True))

    @classmethod
    def from_json(cls: type[M], raw: Any) -> M:
        data = decode_json(raw)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Invalid {cls.__name__} payload, using empty metadata: {e}")
            return cls()


class SubregionMetadata(EntityMetadata):
    continent_name: Optional[str] = None


class CountryMetadata(EntityMetadata):
    capital: Optional[str] = None
    native: Optional[str] = None
    nationality: Optional[str] = None
    tld: Optional[str] = None
    numeric_code: Optional[str] = None
    population: Optional[int] = None
    currency_name: Optional[str] = None
    currency_symbol: Optional[str] = None
    currency_code: Optional[str] = None
    timezones: list[Any] = Field(default_factory=list)
    translations: dict[str, Any] = Field(default_factory=dict)
    emoji: Optional[str] = None
    emoji_u: Optional[str] = Field(default=None, alias="emojiU")
    continent_name: Optional[str] = None
    subregion_name: Optional[str] = None

    @field_validator("population", mode="before")
    @classmethod
    def _coerce_population(cls, value: Any) -> Optional[int]:
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class StateMetadata(EntityMetadata):
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    type: Optional[str] = None
    country_code: Optional[str] = None
    country_name: Optional[str] = None


class CityMetadata(EntityMetadata):
    country_code: Optional[str] = None
    state_code: Optional[str] = None


# =============================================================================
# ENTITIES
# =============================================================================


class WorldEntity(BaseModel):
    """Common fields for every world entity row."""

    model_config = ConfigDict(from_attributes=True)

    # Stable tag used as the target-type discriminator on the worldables table
    entity_tag: ClassVar[str] = ""
    component: ClassVar[str] = ""

    id: Optional[int] = None
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any) -> "WorldEntity":
        """Build a record from a sqlite3.Row (or mapping)."""
        data = {key: row[key] for key in row.keys()}
        return cls.model_validate(data)


class Continent(WorldEntity):
    entity_tag: ClassVar[str] = "continent"
    component: ClassVar[str] = "continents"

    code: str


class Subregion(WorldEntity):
    entity_tag: ClassVar[str] = "subregion"
    component: ClassVar[str] = "subregions"

    code: str
    continent_id: Optional[int] = None
    data: SubregionMetadata = Field(default_factory=SubregionMetadata)

    @classmethod
    def from_row(cls, row: Any) -> "Subregion":
        data = {key: row[key] for key in row.keys()}
        data["data"] = SubregionMetadata.from_json(data.get("data"))
        return cls.model_validate(data)


class Country(WorldEntity):
    entity_tag: ClassVar[str] = "country"
    component: ClassVar[str] = "countries"

    iso_code: str
    iso_code_3: str
    calling_code: Optional[str] = None
    continent_id: Optional[int] = None
    subregion_id: Optional[int] = None
    metadata: CountryMetadata = Field(default_factory=CountryMetadata)

    @property
    def capital(self) -> Optional[str]:
        return self.metadata.capital

    @classmethod
    def from_row(cls, row: Any) -> "Country":
        data = {key: row[key] for key in row.keys()}
        data["metadata"] = CountryMetadata.from_json(data.get("metadata"))
        return cls.model_validate(data)


class State(WorldEntity):
    entity_tag: ClassVar[str] = "state"
    component: ClassVar[str] = "states"

    code: Optional[str] = None
    country_id: Optional[int] = None
    metadata: StateMetadata = Field(default_factory=StateMetadata)

    @classmethod
    def from_row(cls, row: Any) -> "State":
        data = {key: row[key] for key in row.keys()}
        data["metadata"] = StateMetadata.from_json(data.get("metadata"))
        return cls.model_validate(data)


class City(WorldEntity):
    entity_tag: ClassVar[str] = "city"
    component: ClassVar[str] = "cities"

    country_id: Optional[int] = None
    state_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    metadata: CityMetadata = Field(default_factory=CityMetadata)

    @classmethod
    def from_row(cls, row: Any) -> "City":
        data = {key: row[key] for key in row.keys()}
        data["metadata"] = CityMetadata.from_json(data.get("metadata"))
        return cls.model_validate(data)


class Language(WorldEntity):
    entity_tag: ClassVar[str] = "language"
    component: ClassVar[str] = "languages"

    iso_code: str
    native_name: Optional[str] = None


class Currency(WorldEntity):
    entity_tag: ClassVar[str] = "currency"
    component: ClassVar[str] = "currencies"

    code: str
    symbol: Optional[str] = None


class Timezone(WorldEntity):
    entity_tag: ClassVar[str] = "timezone"
    component: ClassVar[str] = "timezones"

    zone_name: str
    gmt_offset: int
    gmt_offset_name: str
    abbreviation: str


# =============================================================================
# PIVOT AND LEDGER
# =============================================================================


def _split_key(key: str) -> list[str]:
    return [part for part in key.split(".") if part]


class WorldableLink(BaseModel):
    """One row of the polymorphic worldables pivot table."""

    id: Optional[int] = None
    worldable_type: str
    worldable_id: int
    world_entity_type: str
    world_entity_id: int
    group: Optional[str] = None
    meta: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any) -> "WorldableLink":
        data = {key: row[key] for key in row.keys()}
        data["meta"] = decode_json(data.get("meta")) or None
        return cls.model_validate(data)

    def get_meta(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Get the whole meta dict, or one (dotted) key."""
        if key is None:
            return self.meta or {}
        current: Any = self.meta or {}
        for part in _split_key(key):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def has_meta(self, key: str) -> bool:
        return self.get_meta(key) is not None

    def set_meta(self, key: str | dict[str, Any], value: Any = None) -> "WorldableLink":
        if isinstance(key, dict):
            self.meta = dict(key)
            return self
        meta = dict(self.meta or {})
        parts = _split_key(key)
        current = meta
        for part in parts[:-1]:
            nested = current.get(part)
            if not isinstance(nested, dict):
                nested = {}
            nested = dict(nested)
            current[part] = nested
            current = nested
        if parts:
            current[parts[-1]] = value
        self.meta = meta
        return self

    def merge_meta(self, meta: dict[str, Any]) -> "WorldableLink":
        self.meta = {**(self.meta or {}), **meta}
        return self

    def remove_meta(self, key: str) -> "WorldableLink":
        meta = dict(self.meta or {})
        parts = _split_key(key)
        current: Any = meta
        for part in parts[:-1]:
            if not isinstance(current, dict) or part not in current:
                return self
            current[part] = dict(current[part]) if isinstance(current[part], dict) else current[part]
            current = current[part]
        if parts and isinstance(current, dict):
            current.pop(parts[-1], None)
        self.meta = meta
        return self


class InstallationState(BaseModel):
    """Per-component operations ledger row."""

    component: str
    installed: bool = True
    installed_at: Optional[datetime] = None
    last_seeded_at: Optional[datetime] = None
    record_count: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Any) -> "InstallationState":
        data = {key: row[key] for key in row.keys()}
        data["metadata"] = decode_json(data.get("metadata"))
        data["installed"] = bool(data.get("installed"))
        return cls.model_validate(data)


class LinkerResult(BaseModel):
    """Outcome of one linker run."""

    component: str
    linked: int = 0
    not_found: int = 0
    total: int = 0
    details: dict[str, int] = Field(default_factory=dict)

    @property
    def has_orphans(self) -> bool:
        return self.total > 0

    @property
    def all_linked(self) -> bool:
        return self.linked == self.total and self.not_found == 0

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 100.0
        return round(self.linked / self.total * 100, 2)


class SeedResult(BaseModel):
    """Outcome of one seeder run."""

    component: str
    inserted: int = 0
    orphaned: int = 0
    details: dict[str, int] = Field(default_factory=dict)
