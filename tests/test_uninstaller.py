"""Tests for the uninstaller and its dependent-data strategies."""

import pytest

from worldable.exceptions import InvalidComponentError, InvalidStrategyError, UninstallBlockedError
from worldable.schema import migration_applied
from worldable.seeders import ContinentSeeder
from worldable.store import InstallationLedger, WorldDatabase
from worldable.uninstaller import Uninstaller


class TestPlan:
    def test_invalid_strategy_checked_first(self, world_db: WorldDatabase):
        with pytest.raises(InvalidStrategyError):
            Uninstaller(world_db).plan(["planets"], strategy="explode")

    def test_invalid_component(self, world_db: WorldDatabase):
        with pytest.raises(InvalidComponentError):
            Uninstaller(world_db).plan(["planets"])

    def test_dependents_are_reported(self, world_db: WorldDatabase):
        plan = Uninstaller(world_db).plan(["countries"])
        assert plan.dependents == {"countries": {"states": 2, "cities": 2}}
        assert plan.has_dependents

    def test_dependents_in_selection_are_ignored(self, world_db: WorldDatabase):
        plan = Uninstaller(world_db).plan(["states", "cities", "countries"], strategy="block")
        assert plan.components == ["countries", "states", "cities"]
        assert not plan.has_dependents

    def test_block_refuses_without_changes(self, world_db: WorldDatabase):
        with pytest.raises(UninstallBlockedError) as exc:
            Uninstaller(world_db).plan(["countries"], strategy="block")
        assert exc.value.dependents == {"states": 2, "cities": 2}
        assert world_db.count("countries") == 2
        assert world_db.count("states", "country_id IS NULL") == 0

    def test_block_allows_empty_dependents(self, db: WorldDatabase, make_tables):
        make_tables(db, "continents", "subregions")
        ContinentSeeder(db).run()

        plan = Uninstaller(db).plan(["continents"], strategy="block")

        assert plan.components == ["continents"]
        assert plan.dependents == {"continents": {"subregions": 0}}
        assert not plan.has_dependents

    def test_cascade_adds_dependents(self, world_db: WorldDatabase):
        plan = Uninstaller(world_db).plan(["countries"], strategy="cascade")
        assert plan.components == ["countries", "states", "cities"]
        assert plan.cascaded == ["states", "cities"]


class TestUninstall:
    def test_nullify(self, world_db: WorldDatabase):
        uninstaller = Uninstaller(world_db)
        report = uninstaller.uninstall(uninstaller.plan(["countries"], strategy="nullify"))

        assert report.dropped == ["countries"]
        assert report.nullified == {"states.country_id": 2, "cities.country_id": 2}
        assert not world_db.has_component("countries")
        assert world_db.count("states", "country_id IS NULL") == 2
        assert world_db.count("cities", "state_id IS NULL") == 0
        assert not migration_applied(world_db.conn, "countries")

    def test_cascade(self, world_db: WorldDatabase):
        uninstaller = Uninstaller(world_db)
        report = uninstaller.uninstall(uninstaller.plan(["countries"], strategy="cascade"))

        assert report.dropped == ["cities", "states", "countries"]
        for component in ("countries", "states", "cities"):
            assert not world_db.has_component(component)
        assert world_db.has_component("continents")

    def test_missing_table_is_skipped(self, db: WorldDatabase):
        uninstaller = Uninstaller(db)
        report = uninstaller.uninstall(uninstaller.plan(["languages"]))
        assert report.skipped == ["languages"]
        assert report.dropped == []

    def test_ledger_is_updated(self, world_db: WorldDatabase):
        ledger = InstallationLedger(world_db)
        ledger.mark_installed("languages", record_count=1)
        uninstaller = Uninstaller(world_db)
        uninstaller.uninstall(uninstaller.plan(["languages"]))
        assert not ledger.get("languages").installed
