"""
World entity types and their natural-key resolvers.

Each entity type is registered once, here, under the stable tag stored in the
worldables table's ``world_entity_type`` column. A resolver turns loosely
typed input into an entity row with a fixed precedence:

1. an instance of the entity's model is returned as-is
2. an int, or a string of digits, is looked up by primary key
3. any other string is tried against the type's natural keys in order
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pycountry

from .models import City, Continent, Country, Currency, Language, State, Subregion, Timezone, WorldEntity
from .store import WorldDatabase

logger = logging.getLogger(__name__)

Resolver = Callable[[WorldDatabase, Any], Optional[WorldEntity]]


def _by_id(db: WorldDatabase, component: str, model: type[WorldEntity], value: Any) -> tuple[bool, Optional[WorldEntity]]:
    """Handle the instance and numeric cases. Returns (handled, entity)."""
    if isinstance(value, model):
        return True, value
    if isinstance(value, bool):
        return True, None
    if isinstance(value, int):
        return True, db.get(component, value)
    if isinstance(value, str) and value.strip().isdigit():
        return True, db.get(component, int(value.strip()))
    if not isinstance(value, str) or not value.strip():
        return True, None
    return False, None


def _first(db: WorldDatabase, component: str, lookups: list[tuple[str, Any]]) -> Optional[WorldEntity]:
    for column, value in lookups:
        entity = db.find_by(component, column, value)
        if entity is not None:
            return entity
    return None


def _country_via_pycountry(value: str) -> Optional[str]:
    """Normalize a common country name or code to its alpha-2 code."""
    try:
        country = pycountry.countries.lookup(value)
        return country.alpha_2
    except LookupError:
        pass
    try:
        matches = pycountry.countries.search_fuzzy(value)
    except LookupError:
        return None
    return matches[0].alpha_2 if matches else None


def resolve_continent(db: WorldDatabase, value: Any) -> Optional[Continent]:
    handled, entity = _by_id(db, "continents", Continent, value)
    if handled:
        return entity  # type: ignore[return-value]
    value = value.strip()
    return _first(db, "continents", [("name", value), ("code", value.upper())])  # type: ignore[return-value]


def resolve_subregion(db: WorldDatabase, value: Any) -> Optional[Subregion]:
    handled, entity = _by_id(db, "subregions", Subregion, value)
    if handled:
        return entity  # type: ignore[return-value]
    value = value.strip()
    return _first(db, "subregions", [("code", value.upper()), ("name", value)])  # type: ignore[return-value]


def resolve_country(db: WorldDatabase, value: Any) -> Optional[Country]:
    handled, entity = _by_id(db, "countries", Country, value)
    if handled:
        return entity  # type: ignore[return-value]
    value = value.strip()
    country = _first(
        db,
        "countries",
        [("name", value), ("iso_code", value.upper()), ("iso_code_3", value.upper())],
    )
    if country is not None or not db.has_component("countries"):
        return country  # type: ignore[return-value]

    alpha_2 = _country_via_pycountry(value)
    if alpha_2:
        logger.debug(f"Resolved country '{value}' via pycountry to {alpha_2}")
        return db.find_by("countries", "iso_code", alpha_2)  # type: ignore[return-value]
    return None


def resolve_state(db: WorldDatabase, value: Any) -> Optional[State]:
    handled, entity = _by_id(db, "states", State, value)
    if handled:
        return entity  # type: ignore[return-value]
    value = value.strip()
    return _first(db, "states", [("name", value), ("code", value.upper())])  # type: ignore[return-value]


def resolve_city(db: WorldDatabase, value: Any) -> Optional[City]:
    handled, entity = _by_id(db, "cities", City, value)
    if handled:
        return entity  # type: ignore[return-value]
    return _first(db, "cities", [("name", value.strip())])  # type: ignore[return-value]


def resolve_language(db: WorldDatabase, value: Any) -> Optional[Language]:
    handled, entity = _by_id(db, "languages", Language, value)
    if handled:
        return entity  # type: ignore[return-value]
    value = value.strip()
    return _first(db, "languages", [("name", value), ("iso_code", value.lower())])  # type: ignore[return-value]


def resolve_currency(db: WorldDatabase, value: Any) -> Optional[Currency]:
    handled, entity = _by_id(db, "currencies", Currency, value)
    if handled:
        return entity  # type: ignore[return-value]
    value = value.strip()
    return _first(db, "currencies", [("code", value.upper()), ("name", value)])  # type: ignore[return-value]


def resolve_timezone(db: WorldDatabase, value: Any) -> Optional[Timezone]:
    handled, entity = _by_id(db, "timezones", Timezone, value)
    if handled:
        return entity  # type: ignore[return-value]
    value = value.strip()
    timezone = _first(db, "timezones", [("zone_name", value), ("abbreviation", value.upper())])
    if timezone is not None:
        return timezone  # type: ignore[return-value]
    return db.find_one("timezones", "name LIKE ?", (f"%{value}%",))  # type: ignore[return-value]


@dataclass(frozen=True)
class EntityType:
    tag: str
    component: str
    model: type[WorldEntity]
    resolver: Resolver

    def resolve(self, db: WorldDatabase, value: Any) -> Optional[WorldEntity]:
        return self.resolver(db, value)


ENTITY_TYPES: dict[str, EntityType] = {}


def register_entity_type(entity_type: EntityType) -> EntityType:
    ENTITY_TYPES[entity_type.tag] = entity_type
    return entity_type


def get_entity_type(key: str | type[WorldEntity]) -> EntityType:
    """
    Look up an entity type by tag ("country"), component ("countries") or model class.

    Raises:
        KeyError: If nothing matches
    """
    if isinstance(key, type):
        key = key.entity_tag
    if key in ENTITY_TYPES:
        return ENTITY_TYPES[key]
    for entity_type in ENTITY_TYPES.values():
        if entity_type.component == key:
            return entity_type
    raise KeyError(f"Unknown world entity type: {key}")


for _model, _resolver in (
    (Continent, resolve_continent),
    (Subregion, resolve_subregion),
    (Country, resolve_country),
    (State, resolve_state),
    (City, resolve_city),
    (Language, resolve_language),
    (Currency, resolve_currency),
    (Timezone, resolve_timezone),
):
    register_entity_type(EntityType(_model.entity_tag, _model.component, _model, _resolver))
