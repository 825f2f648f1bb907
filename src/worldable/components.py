"""
Static component registry.

A component is one unit of install/uninstall/link granularity. The registry
holds the hand-authored dependency graph and the component → seeder and
component → migration maps. It is immutable and built once at import time;
the installer, uninstaller, linkers and health checker receive it as a
constructor argument.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .exceptions import InvalidComponentError

COMPONENTS: tuple[str, ...] = (
    "continents",
    "subregions",
    "countries",
    "states",
    "cities",
    "languages",
    "currencies",
    "timezones",
    "worldables",
)

SEEDERS: dict[str, Optional[str]] = {
    "continents": "ContinentSeeder",
    "subregions": "SubregionSeeder",
    "countries": "CountrySeeder",
    "states": "StateSeeder",
    "cities": "CitySeeder",
    "languages": "LanguageSeeder",
    "currencies": "CurrencySeeder",
    "timezones": "TimezoneSeeder",
    "worldables": None,  # pivot table only, nothing to seed
}

MIGRATIONS: dict[str, str] = {
    "continents": "2025_12_02_000000_create_world_continents_table",
    "subregions": "2025_12_02_000001_create_world_subregions_table",
    "countries": "2025_12_02_000002_create_world_countries_table",
    "states": "2025_12_02_000003_create_world_states_table",
    "cities": "2025_12_02_000004_create_world_cities_table",
    "languages": "2025_12_02_000005_create_world_languages_table",
    "currencies": "2025_12_02_000006_create_world_currencies_table",
    "worldables": "2025_12_02_000007_create_worldables_table",
    "timezones": "2025_12_02_000008_create_world_timezones_table",
}

DEPENDENCIES: dict[str, tuple[str, ...]] = {
    "subregions": ("continents",),
    "countries": ("continents", "subregions"),
    "states": ("continents", "subregions", "countries"),
    "cities": ("continents", "subregions", "countries", "states"),
}

LARGE_DATASETS: tuple[str, ...] = ("cities", "states")

# Components with nullable parent references that the linkers can backfill
LINKABLE: tuple[str, ...] = ("subregions", "countries", "states", "cities")

# Parent foreign-key columns per child component: column -> parent component
FOREIGN_KEYS: dict[str, dict[str, str]] = {
    "subregions": {"continent_id": "continents"},
    "countries": {"continent_id": "continents", "subregion_id": "subregions"},
    "states": {"country_id": "countries"},
    "cities": {"country_id": "countries", "state_id": "states"},
}


def _invert(dependencies: Mapping[str, Iterable[str]], order: Iterable[str]) -> dict[str, tuple[str, ...]]:
    """Build the dependents graph (parent -> children) in registry order."""
    dependents: dict[str, list[str]] = {}
    for component in order:
        for parent in dependencies.get(component, ()):
            dependents.setdefault(parent, []).append(component)
    return {parent: tuple(children) for parent, children in dependents.items()}


@dataclass(frozen=True)
class ComponentRegistry:
    """Read-only view over component metadata."""

    components: tuple[str, ...] = COMPONENTS
    seeders: Mapping[str, Optional[str]] = field(default_factory=lambda: MappingProxyType(dict(SEEDERS)))
    migrations: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(MIGRATIONS)))
    dependencies: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType(dict(DEPENDENCIES)))
    large_datasets: tuple[str, ...] = LARGE_DATASETS
    linkable: tuple[str, ...] = LINKABLE
    foreign_keys: Mapping[str, Mapping[str, str]] = field(
        default_factory=lambda: MappingProxyType({k: MappingProxyType(v) for k, v in FOREIGN_KEYS.items()})
    )

    @property
    def dependents(self) -> Mapping[str, tuple[str, ...]]:
        return MappingProxyType(_invert(self.dependencies, self.components))

    def validate(self, component: str) -> str:
        """Return the component name or raise InvalidComponentError."""
        if component not in self.components:
            raise InvalidComponentError(component, list(self.components))
        return component

    def dependencies_of(self, component: str) -> tuple[str, ...]:
        return self.dependencies.get(self.validate(component), ())

    def dependents_of(self, component: str) -> tuple[str, ...]:
        return self.dependents.get(self.validate(component), ())

    def seeder_of(self, component: str) -> Optional[str]:
        return self.seeders.get(self.validate(component))

    def migration_of(self, component: str) -> Optional[str]:
        return self.migrations.get(self.validate(component))

    def is_large(self, component: str) -> bool:
        return component in self.large_datasets

    def missing_dependencies(self, selection: Iterable[str]) -> dict[str, list[str]]:
        """
        Find direct dependencies that are not part of a selection.

        Returns:
            Mapping of component -> missing dependency names (only components with gaps)
        """
        selected = list(selection)
        missing: dict[str, list[str]] = {}
        for component in selected:
            for dependency in self.dependencies_of(component):
                if dependency not in selected:
                    missing.setdefault(component, []).append(dependency)
        return missing

    def resolve_dependencies(self, selection: Iterable[str]) -> tuple[list[str], list[str]]:
        """
        Add missing dependencies ahead of the components that need them.

        The dependency lists are already transitive, so one pass suffices.
        Selected components keep their relative order.

        Returns:
            Tuple of (resolved component list, dependencies that were added)
        """
        selected = list(selection)
        resolved: list[str] = []
        added: list[str] = []
        for component in selected:
            for dependency in self.dependencies_of(component):
                if dependency not in resolved:
                    resolved.append(dependency)
                    if dependency not in selected:
                        added.append(dependency)
            if component not in resolved:
                resolved.append(component)
        return resolved, added

    def linkable_components(self, installed: Iterable[str]) -> list[str]:
        """Installed components that have at least one dependency also installed."""
        installed_list = list(installed)
        return [
            component for component in installed_list
            if any(dep in installed_list for dep in self.dependencies.get(component, ()))
        ]


DEFAULT_REGISTRY = ComponentRegistry()


def format_component_name(component: str) -> str:
    """Human-friendly label ("cities" -> "Cities")."""
    return component.replace("_", " ").capitalize()
