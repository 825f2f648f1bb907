"""Tests for the static component registry."""

import pytest

from worldable.components import DEFAULT_REGISTRY, format_component_name
from worldable.exceptions import InvalidComponentError


class TestValidation:
    def test_known_component(self):
        assert DEFAULT_REGISTRY.validate("cities") == "cities"

    def test_unknown_component(self):
        with pytest.raises(InvalidComponentError) as exc:
            DEFAULT_REGISTRY.validate("planets")
        assert "planets" in str(exc.value)
        assert "countries" in exc.value.valid

    def test_every_component_has_a_migration(self):
        for component in DEFAULT_REGISTRY.components:
            assert DEFAULT_REGISTRY.migration_of(component)

    def test_worldables_has_no_seeder(self):
        assert DEFAULT_REGISTRY.seeder_of("worldables") is None
        assert DEFAULT_REGISTRY.seeder_of("countries") == "CountrySeeder"


class TestDependencyGraph:
    def test_dependencies(self):
        assert DEFAULT_REGISTRY.dependencies_of("cities") == ("continents", "subregions", "countries", "states")
        assert DEFAULT_REGISTRY.dependencies_of("languages") == ()

    def test_dependents_are_inverse(self):
        assert DEFAULT_REGISTRY.dependents_of("countries") == ("states", "cities")
        assert DEFAULT_REGISTRY.dependents_of("continents") == ("subregions", "countries", "states", "cities")
        assert DEFAULT_REGISTRY.dependents_of("cities") == ()

    def test_missing_dependencies(self):
        missing = DEFAULT_REGISTRY.missing_dependencies(["countries", "states"])
        assert missing == {
            "countries": ["continents", "subregions"],
            "states": ["continents", "subregions"],
        }

    def test_missing_dependencies_complete_selection(self):
        assert DEFAULT_REGISTRY.missing_dependencies(["continents", "languages"]) == {}

    def test_resolve_dependencies_orders_parents_first(self):
        resolved, added = DEFAULT_REGISTRY.resolve_dependencies(["cities"])
        assert resolved == ["continents", "subregions", "countries", "states", "cities"]
        assert added == ["continents", "subregions", "countries", "states"]

    def test_resolve_dependencies_keeps_selected(self):
        resolved, added = DEFAULT_REGISTRY.resolve_dependencies(["continents", "countries", "languages"])
        assert resolved == ["continents", "subregions", "countries", "languages"]
        assert added == ["subregions"]

    def test_linkable_components(self):
        assert DEFAULT_REGISTRY.linkable_components(["continents", "countries", "languages"]) == ["countries"]

    def test_registry_is_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_REGISTRY.components = ("continents",)


def test_format_component_name():
    assert format_component_name("cities") == "Cities"
