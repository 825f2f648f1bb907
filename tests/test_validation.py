"""Tests for entity validation rules."""

import pytest

from worldable.store import WorldDatabase
from worldable.validation import ValidCity, ValidCountry, ValidCurrency, ValidLanguage


class TestValidCountry:
    @pytest.mark.parametrize("value", ["Nigeria", "NG", "nga"])
    def test_accepts_names_and_codes(self, world_db: WorldDatabase, value):
        assert ValidCountry(world_db)(value) == (True, None)

    def test_accepts_id(self, world_db: WorldDatabase):
        nigeria = world_db.find_by("countries", "iso_code", "NG")
        assert ValidCountry(world_db).validate(nigeria.id) == (True, None)

    @pytest.mark.parametrize("value", [None, "", "0", 0, [], "Atlantis", ["NG"]])
    def test_rejects(self, world_db: WorldDatabase, value):
        ok, message = ValidCountry(world_db).validate(value, attribute="country")
        assert not ok
        assert message == "The country must be a valid country name or code."

    def test_custom_message(self, world_db: WorldDatabase):
        rule = ValidCountry(world_db).with_message("Pick a real country")
        assert rule("Atlantis") == (False, "Pick a real country")


def test_valid_city(world_db: WorldDatabase):
    assert ValidCity(world_db)("Ikeja")[0]
    assert ValidCity(world_db)("Atlantis City") == (False, "The value must be a valid city name.")


def test_valid_currency(world_db: WorldDatabase):
    assert ValidCurrency(world_db)("ngn")[0]
    assert ValidCurrency(world_db)("Nigerian Naira")[0]
    assert not ValidCurrency(world_db)("XYZ")[0]


def test_valid_language(world_db: WorldDatabase):
    assert ValidLanguage(world_db)("EN")[0]
    _, message = ValidLanguage(world_db).validate("Klingon", attribute="language")
    assert message == "The language must be a valid language name or code."
