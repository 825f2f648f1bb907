"""Tests for static and remote seeders."""

import orjson
import pytest

from worldable.exceptions import DatasetFetchError, SeedingError
from worldable.seed_data import CONTINENTS, SUBREGIONS, TIMEZONES
from worldable.seeders import (
    CitySeeder,
    ContinentSeeder,
    CountrySeeder,
    CurrencySeeder,
    LanguageSeeder,
    StateSeeder,
    SubregionSeeder,
    TimezoneSeeder,
    create_seeder,
)
from worldable.store import WorldDatabase


@pytest.fixture
def schema_db(db: WorldDatabase, make_tables) -> WorldDatabase:
    """Every table created, nothing seeded."""
    make_tables(db, *db.settings.tables)
    return db


class TestStaticSeeders:
    def test_continents_are_idempotent(self, schema_db: WorldDatabase):
        ContinentSeeder(schema_db).run()
        ContinentSeeder(schema_db).run()
        assert schema_db.count("continents") == len(CONTINENTS)

    def test_subregions_link_to_continents(self, schema_db: WorldDatabase):
        ContinentSeeder(schema_db).run()
        result = SubregionSeeder(schema_db).run()
        assert result.orphaned == 0
        assert schema_db.count("subregions") == len(SUBREGIONS)
        western_africa = schema_db.find_by("subregions", "name", "Western Africa")
        assert schema_db.continent_of(western_africa).name == "Africa"

    def test_subregions_without_continents_are_orphans(self, schema_db: WorldDatabase):
        result = SubregionSeeder(schema_db).run()
        assert result.orphaned == len(SUBREGIONS)
        subregion = schema_db.find_by("subregions", "code", "WAF")
        assert subregion.continent_id is None
        assert subregion.data.continent_name == "Africa"

    def test_timezones(self, schema_db: WorldDatabase):
        TimezoneSeeder(schema_db).run()
        assert TimezoneSeeder(schema_db).run().inserted == 0
        assert schema_db.count("timezones") == len(TIMEZONES)


class TestCountrySeeder:
    def test_seeds_with_parents(self, schema_db: WorldDatabase, mock_client):
        ContinentSeeder(schema_db).run()
        SubregionSeeder(schema_db).run()

        result = CountrySeeder(schema_db, client=mock_client).run()

        assert result.inserted == 2
        assert result.orphaned == 0
        nigeria = schema_db.find_by("countries", "iso_code", "NG")
        assert nigeria.iso_code_3 == "NGA"
        assert nigeria.calling_code == "+234"
        assert nigeria.capital == "Abuja"
        assert nigeria.metadata.population is None
        assert nigeria.metadata.currency_code == "NGN"
        assert schema_db.continent_of(nigeria).name == "Africa"
        assert schema_db.find_by("countries", "iso_code", "US").calling_code == "+1"

    def test_seeds_without_parents(self, schema_db: WorldDatabase, mock_client):
        result = CountrySeeder(schema_db, client=mock_client).run()
        assert result.orphaned == 2
        assert result.details == {"continents": 2, "subregions": 2}
        nigeria = schema_db.find_by("countries", "iso_code", "NG")
        assert nigeria.continent_id is None
        assert nigeria.metadata.continent_name == "Africa"

    def test_reseed_updates_in_place(self, schema_db: WorldDatabase, mock_client):
        CountrySeeder(schema_db, client=mock_client).run()
        CountrySeeder(schema_db, client=mock_client).run()
        assert schema_db.count("countries") == 2

    def test_empty_dataset_fails(self, schema_db: WorldDatabase, mock_client, datasets):
        datasets["countries"] = b"[]"
        with pytest.raises(SeedingError):
            CountrySeeder(schema_db, client=mock_client).run()

    def test_download_failure(self, schema_db: WorldDatabase, mock_client, datasets):
        del datasets["countries"]
        with pytest.raises(DatasetFetchError):
            CountrySeeder(schema_db, client=mock_client).run()

    def test_wrongly_typed_record_is_skipped(self, schema_db: WorldDatabase, mock_client, datasets):
        records = orjson.loads(datasets["countries"])
        records.insert(1, {"name": "Weirdland", "iso2": "WL", "iso3": "WLD", "capital": 123, "timezones": "UTC"})
        datasets["countries"] = orjson.dumps(records)

        result = CountrySeeder(schema_db, client=mock_client).run()

        assert result.inserted == 2
        assert schema_db.find_by("countries", "iso_code", "WL") is None
        assert schema_db.find_by("countries", "iso_code", "US") is not None


class TestStateSeeder:
    def test_states_link_to_countries(self, schema_db: WorldDatabase, mock_client):
        CountrySeeder(schema_db, client=mock_client).run()
        result = StateSeeder(schema_db, client=mock_client).run()
        assert result.inserted == 3
        assert result.orphaned == 0
        lagos = schema_db.find_by("states", "name", "Lagos")
        assert schema_db.country_of(lagos).iso_code == "NG"
        assert lagos.metadata.country_code == "NG"

    def test_states_without_countries(self, schema_db: WorldDatabase, mock_client):
        result = StateSeeder(schema_db, client=mock_client).run()
        assert result.orphaned == 3
        assert result.details == {"countries": 3}

    def test_reseed_does_not_duplicate(self, schema_db: WorldDatabase, mock_client):
        StateSeeder(schema_db, client=mock_client).run()
        second = StateSeeder(schema_db, client=mock_client).run()
        assert second.inserted == 0
        assert schema_db.count("states") == 3

    def test_wrongly_typed_record_is_skipped(self, schema_db: WorldDatabase, mock_client, datasets):
        records = orjson.loads(datasets["states"])
        records.append({"name": "Oddshire", "state_code": "OD", "country_code": "NG", "type": {"kind": "state"}})
        datasets["states"] = orjson.dumps(records)

        result = StateSeeder(schema_db, client=mock_client).run()

        assert result.inserted == 3
        assert schema_db.find_by("states", "name", "Oddshire") is None


class TestCitySeeder:
    def test_cities(self, schema_db: WorldDatabase, mock_client):
        CountrySeeder(schema_db, client=mock_client).run()
        StateSeeder(schema_db, client=mock_client).run()

        result = CitySeeder(schema_db, client=mock_client).run()

        assert result.inserted == 3
        assert result.orphaned == 0
        ikeja = schema_db.find_by("cities", "name", "Ikeja")
        assert schema_db.state_of(ikeja).name == "Lagos"
        assert ikeja.latitude == pytest.approx(6.6018)
        # braces inside the name survive extraction; latitude 95 is out of range
        la = schema_db.find_by("cities", "name", "Los Angeles {LA}")
        assert la.latitude is None
        assert la.longitude == pytest.approx(-118.2437)

    def test_cities_use_large_timeout(self, schema_db: WorldDatabase, mock_client):
        CitySeeder(schema_db, client=mock_client).run()
        _, kwargs = mock_client.get.call_args
        assert kwargs["timeout"] == schema_db.settings.large_http_timeout

    def test_orphans_keep_codes(self, schema_db: WorldDatabase, mock_client):
        result = CitySeeder(schema_db, client=mock_client).run()
        assert result.details == {"countries": 3, "states": 3}
        kano = schema_db.find_by("cities", "name", "Kano")
        assert kano.metadata.country_code == "NG"
        assert kano.metadata.state_code == "KN"

    def test_reseed_does_not_duplicate(self, schema_db: WorldDatabase, mock_client):
        CitySeeder(schema_db, client=mock_client).run()
        assert CitySeeder(schema_db, client=mock_client).run().inserted == 0
        assert schema_db.count("cities") == 3


class TestLookupSeeders:
    def test_languages(self, schema_db: WorldDatabase, mock_client):
        result = LanguageSeeder(schema_db, client=mock_client).run()
        assert result.inserted == 2
        assert schema_db.find_by("languages", "iso_code", "yo").native_name == "Yorùbá"

    def test_languages_malformed(self, schema_db: WorldDatabase, mock_client, datasets):
        datasets["languages"] = orjson.dumps({"not": "a list"})
        with pytest.raises(SeedingError):
            LanguageSeeder(schema_db, client=mock_client).run()

    def test_currencies(self, schema_db: WorldDatabase, mock_client):
        CurrencySeeder(schema_db, client=mock_client).run()
        assert schema_db.find_by("currencies", "code", "NGN").symbol == "₦"
        assert schema_db.find_by("currencies", "code", "USD").symbol == "$"


def test_create_seeder(db: WorldDatabase):
    assert isinstance(create_seeder("cities", db), CitySeeder)
    assert create_seeder("worldables", db) is None
