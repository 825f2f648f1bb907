"""
Orphan linkers: backfill NULL parent references from denormalized metadata.

Seeding keeps each row's parent natural key (continent name, country ISO code,
state code, ...) in its metadata. Once the parent component is installed, a
linker reads that metadata, resolves the parent id through a lookup map, and
writes the foreign key. Metadata is never modified, so linking can be re-run
at any time.

The per-relationship resolution rules are plain functions so they can be
tested without a database.
"""

import logging
import sqlite3
from typing import Any, Mapping, Optional

from .components import DEFAULT_REGISTRY, ComponentRegistry
from .models import CityMetadata, CountryMetadata, LinkerResult, StateMetadata, SubregionMetadata
from .store import WorldDatabase

logger = logging.getLogger(__name__)

UPDATE_BATCH_SIZE = 500


# =============================================================================
# RESOLUTION RULES
# =============================================================================


def resolve_subregion_continent(metadata: SubregionMetadata, continents_by_name: Mapping[str, int]) -> Optional[int]:
    if not metadata.continent_name:
        return None
    return continents_by_name.get(metadata.continent_name)


def resolve_country_continent(metadata: CountryMetadata, continents_by_name: Mapping[str, int]) -> Optional[int]:
    if not metadata.continent_name:
        return None
    return continents_by_name.get(metadata.continent_name)


def resolve_country_subregion(metadata: CountryMetadata, subregions_by_name: Mapping[str, int]) -> Optional[int]:
    if not metadata.subregion_name:
        return None
    return subregions_by_name.get(metadata.subregion_name)


def resolve_state_country(
    metadata: StateMetadata,
    countries_by_code: Mapping[str, int],
    countries_by_name: Mapping[str, int],
) -> Optional[int]:
    """Country code first, then country name."""
    if metadata.country_code and metadata.country_code in countries_by_code:
        return countries_by_code[metadata.country_code]
    if metadata.country_name and metadata.country_name in countries_by_name:
        return countries_by_name[metadata.country_name]
    return None


def resolve_city_country(metadata: CityMetadata, countries_by_code: Mapping[str, int]) -> Optional[int]:
    if not metadata.country_code:
        return None
    return countries_by_code.get(metadata.country_code)


def resolve_city_state(
    metadata: CityMetadata,
    country_id: Optional[int],
    states_by_country_code: Mapping[str, int],
) -> Optional[int]:
    """State lookup is keyed by ``"{country_id}_{state_code}"``."""
    if country_id is None or not metadata.state_code:
        return None
    return states_by_country_code.get(f"{country_id}_{metadata.state_code}")


# =============================================================================
# LINKERS
# =============================================================================


class Linker:
    """Base class for one component's orphan linker."""

    component: str = ""
    # Parent reference columns checked for NULL when selecting candidates
    reference_columns: tuple[str, ...] = ()

    def __init__(self, db: WorldDatabase):
        self.db = db
        self._pending = 0

    @property
    def table(self) -> str:
        return self.db.table(self.component)

    def _candidates(self, force: bool) -> list[sqlite3.Row]:
        if force:
            return list(self.db.iter_rows(self.component))
        where = " OR ".join(f"{column} IS NULL" for column in self.reference_columns)
        return list(self.db.iter_rows(self.component, where))

    def _update(self, row_id: int, updates: dict[str, Any], dry_run: bool) -> None:
        if dry_run or not updates:
            return
        self.db.update_row(self.component, row_id, updates, commit=False)
        self._pending += 1
        if self._pending >= UPDATE_BATCH_SIZE:
            self.db.commit()
            self._pending = 0

    def _flush(self) -> None:
        if self._pending:
            self.db.commit()
            self._pending = 0

    def _empty(self) -> LinkerResult:
        return LinkerResult(component=self.component)

    def link(self, dry_run: bool = False, force: bool = False) -> LinkerResult:
        """
        Resolve and write parent references for orphaned rows.

        Args:
            dry_run: Compute and count resolutions without writing
            force: Re-resolve every row, not only those with a NULL reference

        Returns:
            LinkerResult (all zeros when the table is missing or nothing is orphaned)
        """
        logger.info(f"Processing {self.component}...")
        if not self.db.has_component(self.component):
            logger.info(f"  {self.table} does not exist, skipping")
            return self._empty()

        rows = self._candidates(force)
        if not rows:
            logger.info(f"  No orphaned {self.component} found")
            return self._empty()

        try:
            result = self._link_rows(rows, dry_run, force)
        finally:
            self._flush()

        verb = "Would link" if dry_run else "Linked"
        logger.info(f"  {verb}: {result.linked:,}, not found: {result.not_found:,} (of {result.total:,})")
        return result

    def _link_rows(self, rows: list[sqlite3.Row], dry_run: bool, force: bool) -> LinkerResult:
        raise NotImplementedError


class SubregionLinker(Linker):
    component = "subregions"
    reference_columns = ("continent_id",)

    def _link_rows(self, rows: list[sqlite3.Row], dry_run: bool, force: bool) -> LinkerResult:
        continents_by_name = self.db.build_map("continents", "name")
        linked = 0
        not_found = 0
        for row in rows:
            continent_id = resolve_subregion_continent(SubregionMetadata.from_json(row["data"]), continents_by_name)
            if continent_id is None:
                not_found += 1
                continue
            self._update(row["id"], {"continent_id": continent_id}, dry_run)
            linked += 1
        return LinkerResult(component=self.component, linked=linked, not_found=not_found, total=len(rows))


class CountryLinker(Linker):
    """Continent and subregion are resolved independently; ``linked`` sums both."""

    component = "countries"
    reference_columns = ("continent_id", "subregion_id")

    def _link_rows(self, rows: list[sqlite3.Row], dry_run: bool, force: bool) -> LinkerResult:
        continents_by_name = self.db.build_map("continents", "name")
        subregions_by_name = self.db.build_map("subregions", "name")
        linked_continent = 0
        linked_subregion = 0

        for row in rows:
            metadata = CountryMetadata.from_json(row["metadata"])
            updates: dict[str, Any] = {}

            if force or row["continent_id"] is None:
                continent_id = resolve_country_continent(metadata, continents_by_name)
                if continent_id is not None:
                    updates["continent_id"] = continent_id
                    linked_continent += 1

            if force or row["subregion_id"] is None:
                subregion_id = resolve_country_subregion(metadata, subregions_by_name)
                if subregion_id is not None:
                    updates["subregion_id"] = subregion_id
                    linked_subregion += 1

            self._update(row["id"], updates, dry_run)

        return LinkerResult(
            component=self.component,
            linked=linked_continent + linked_subregion,
            not_found=0,
            total=len(rows),
            details={"continents": linked_continent, "subregions": linked_subregion},
        )


class StateLinker(Linker):
    component = "states"
    reference_columns = ("country_id",)

    def _link_rows(self, rows: list[sqlite3.Row], dry_run: bool, force: bool) -> LinkerResult:
        countries_by_code = self.db.build_map("countries", "iso_code")
        countries_by_name = self.db.build_map("countries", "name")
        linked = 0
        not_found = 0
        for row in rows:
            metadata = StateMetadata.from_json(row["metadata"])
            country_id = resolve_state_country(metadata, countries_by_code, countries_by_name)
            if country_id is None:
                not_found += 1
                continue
            self._update(row["id"], {"country_id": country_id}, dry_run)
            linked += 1
        return LinkerResult(component=self.component, linked=linked, not_found=not_found, total=len(rows))


class CityLinker(Linker):
    """
    Backfill city country/state references from city metadata.

    A city counts as a candidate when its country is missing, or when its
    state is missing and the metadata names a state code. ``linked`` sums the
    two kinds of update; ``not_found`` counts candidates with no update at all.
    """

    component = "cities"
    reference_columns = ("country_id", "state_id")

    def _is_candidate(self, row: sqlite3.Row, metadata: CityMetadata) -> bool:
        return row["country_id"] is None or (row["state_id"] is None and bool(metadata.state_code))

    def _link_rows(self, rows: list[sqlite3.Row], dry_run: bool, force: bool) -> LinkerResult:
        countries_by_code = self.db.build_map("countries", "iso_code")
        states_by_country_code = self.db.build_composite_map("states", ["country_id", "code"])

        total = 0
        linked_country = 0
        linked_state = 0
        not_found = 0

        for row in rows:
            metadata = CityMetadata.from_json(row["metadata"])
            if not force and not self._is_candidate(row, metadata):
                continue
            total += 1
            updates: dict[str, Any] = {}

            country_id = row["country_id"]
            if force or country_id is None:
                resolved = resolve_city_country(metadata, countries_by_code)
                if resolved is not None:
                    updates["country_id"] = resolved
                    country_id = resolved
                    linked_country += 1

            if force or row["state_id"] is None:
                state_id = resolve_city_state(metadata, country_id, states_by_country_code)
                if state_id is not None:
                    updates["state_id"] = state_id
                    linked_state += 1

            if not updates:
                not_found += 1
            self._update(row["id"], updates, dry_run)

        return LinkerResult(
            component=self.component,
            linked=linked_country + linked_state,
            not_found=not_found,
            total=total,
            details={"countries": linked_country, "states": linked_state},
        )


LINKER_CLASSES: dict[str, type[Linker]] = {
    "subregions": SubregionLinker,
    "countries": CountryLinker,
    "states": StateLinker,
    "cities": CityLinker,
}


class LinkerRegistry:
    """Component name -> linker, restricted to the registry's linkable components."""

    def __init__(self, db: WorldDatabase, registry: ComponentRegistry = DEFAULT_REGISTRY):
        self.db = db
        self.registry = registry
        self._linkers: dict[str, Linker] = {}

    def resolve(self, component: str) -> Optional[Linker]:
        if component in self._linkers:
            return self._linkers[component]
        if component not in self.registry.linkable or component not in LINKER_CLASSES:
            return None
        linker = LINKER_CLASSES[component](self.db)
        self._linkers[component] = linker
        return linker

    def has(self, component: str) -> bool:
        return self.resolve(component) is not None

    def available_components(self) -> list[str]:
        return [c for c in self.registry.linkable if self.has(c)]

    def link_all(
        self,
        dry_run: bool = False,
        force: bool = False,
        components: Optional[list[str]] = None,
    ) -> dict[str, LinkerResult]:
        """Run linkers in dependency order; unknown components are ignored."""
        selected = components if components is not None else self.available_components()
        results: dict[str, LinkerResult] = {}
        for component in self.available_components():
            if component not in selected:
                continue
            linker = self.resolve(component)
            assert linker is not None
            results[component] = linker.link(dry_run=dry_run, force=force)
        return results
