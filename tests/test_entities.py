"""Tests for entity types and natural-key resolvers."""

import pytest

from worldable.entities import ENTITY_TYPES, get_entity_type, resolve_country, resolve_timezone
from worldable.models import Country, Timezone
from worldable.store import WorldDatabase


class TestEntityTypes:
    def test_all_types_registered(self):
        assert set(ENTITY_TYPES) == {
            "continent", "subregion", "country", "state", "city", "language", "currency", "timezone",
        }

    @pytest.mark.parametrize("key", ["country", "countries", Country])
    def test_lookup_by_tag_component_or_model(self, key):
        assert get_entity_type(key).model is Country

    def test_unknown_type(self):
        with pytest.raises(KeyError):
            get_entity_type("planet")


class TestResolveCountry:
    @pytest.mark.parametrize("value", ["Nigeria", "NG", "ng", "NGA", " nga "])
    def test_natural_keys(self, world_db: WorldDatabase, value):
        assert resolve_country(world_db, value).iso_code == "NG"

    def test_by_id(self, world_db: WorldDatabase):
        nigeria = world_db.find_by("countries", "iso_code", "NG")
        assert resolve_country(world_db, nigeria.id) == nigeria
        assert resolve_country(world_db, str(nigeria.id)) == nigeria
        assert resolve_country(world_db, nigeria) is nigeria

    def test_common_name_via_pycountry(self, world_db: WorldDatabase):
        assert resolve_country(world_db, "United States of America").iso_code == "US"

    @pytest.mark.parametrize("value", [None, "", "   ", True, 3.5, "Atlantis", 9999])
    def test_unresolvable(self, world_db: WorldDatabase, value):
        assert resolve_country(world_db, value) is None

    def test_missing_table(self, db: WorldDatabase):
        assert resolve_country(db, "NG") is None


class TestOtherResolvers:
    def test_state_by_code(self, world_db: WorldDatabase):
        assert get_entity_type("state").resolve(world_db, "la").name == "Lagos"

    def test_city_by_name(self, world_db: WorldDatabase):
        assert get_entity_type("city").resolve(world_db, "Ikeja").name == "Ikeja"

    def test_language_code_is_lowercased(self, world_db: WorldDatabase):
        assert get_entity_type("language").resolve(world_db, "EN").name == "English"

    def test_currency_by_code_or_name(self, world_db: WorldDatabase):
        currency = get_entity_type("currency")
        assert currency.resolve(world_db, "ngn").code == "NGN"
        assert currency.resolve(world_db, "Nigerian Naira").code == "NGN"

    def test_continent_and_subregion(self, world_db: WorldDatabase):
        assert get_entity_type("continent").resolve(world_db, "af").name == "Africa"
        assert get_entity_type("subregion").resolve(world_db, "Western Africa").code == "WAF"

    def test_timezone(self, world_db: WorldDatabase):
        assert resolve_timezone(world_db, "Africa/Lagos").abbreviation == "WAT"
        assert resolve_timezone(world_db, "wat").zone_name == "Africa/Lagos"
        assert isinstance(resolve_timezone(world_db, "West Africa"), Timezone)
