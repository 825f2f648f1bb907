"""Tests for the install state machine."""

from unittest.mock import MagicMock

import pytest

from worldable.exceptions import InvalidComponentError, SeedingError
from worldable.installer import DependencyPolicy, Installer, InstallState, LinkMode
from worldable.models import SeedResult
from worldable.schema import migration_applied
from worldable.seeders import create_seeder
from worldable.store import InstallationLedger, WorldDatabase


def _failing_factory(failing: str, client):
    """Seeder factory whose seeder for ``failing`` raises SeedingError."""

    def factory(component: str, db: WorldDatabase):
        if component == failing:
            seeder = MagicMock()
            seeder.run.side_effect = SeedingError(component, "dataset unavailable")
            return seeder
        return create_seeder(component, db, client=client)

    return factory


class TestPlan:
    def test_all_components(self, db: WorldDatabase):
        plan = Installer(db).plan(all_components=True)
        assert plan.components == list(db.settings.tables)

    def test_all_skip_large(self, db: WorldDatabase):
        plan = Installer(db).plan(all_components=True, skip_large=True)
        assert "cities" not in plan.components
        assert "states" not in plan.components
        assert "worldables" in plan.components

    def test_selection_keeps_registry_order(self, db: WorldDatabase):
        plan = Installer(db).plan(["languages", "continents"])
        assert plan.components == ["continents", "languages"]

    def test_warn_policy_reports_missing(self, db: WorldDatabase):
        plan = Installer(db).plan(["states"])
        assert plan.components == ["states"]
        assert plan.missing_dependencies == {"states": ["continents", "subregions", "countries"]}

    def test_include_policy_adds_dependencies(self, db: WorldDatabase):
        installer = Installer(db)
        plan = installer.plan(["states"], policy=DependencyPolicy.INCLUDE)
        assert plan.components == ["continents", "subregions", "countries", "states"]
        assert plan.added_dependencies == ["continents", "subregions", "countries"]
        assert installer.state == InstallState.RESOLVING

    def test_unknown_component(self, db: WorldDatabase):
        with pytest.raises(InvalidComponentError):
            Installer(db).plan(["planets"])


class TestInstall:
    def test_static_components(self, db: WorldDatabase):
        installer = Installer(db)
        report = installer.install(installer.plan(["continents", "subregions", "timezones"]), link_mode=LinkMode.SKIP)

        assert report.success
        assert report.state == InstallState.DONE
        assert report.installed == ["continents", "subregions", "timezones"]
        assert db.count("continents") == 7
        assert InstallationLedger(db).get("timezones").record_count == db.count("timezones")

    def test_worldables_has_no_seeding(self, db: WorldDatabase):
        installer = Installer(db)
        report = installer.install(installer.plan(["worldables"]))
        assert report.success
        assert report.seed_results["worldables"] == SeedResult(component="worldables")
        assert db.has_component("worldables")

    def test_remote_components_with_dependencies(self, db: WorldDatabase, mock_client):
        installer = Installer(db, client=mock_client)
        plan = installer.plan(["cities"], policy=DependencyPolicy.INCLUDE)

        report = installer.install(plan, link_mode=LinkMode.SKIP)

        assert report.success
        assert db.count("cities") == 3
        assert db.count("cities", "state_id IS NULL") == 0

    def test_empty_plan_fails(self, db: WorldDatabase):
        installer = Installer(db)
        report = installer.install(installer.plan([]))
        assert report.state == InstallState.FAILED
        assert not report.success

    def test_failure_without_rollback_keeps_partial_install(self, db: WorldDatabase, mock_client):
        installer = Installer(db, seeder_factory=_failing_factory("countries", mock_client))
        plan = installer.plan(["continents", "countries", "languages"])

        report = installer.install(plan, rollback_on_error=False)

        assert report.state == InstallState.FAILED
        assert report.failed == ["countries"]
        assert report.installed == ["continents"]
        assert "dataset unavailable" in report.error
        assert db.count("continents") == 7
        assert db.has_component("countries")
        assert db.count("languages") == 0

    def test_failure_with_rollback_drops_batch(self, db: WorldDatabase, mock_client):
        installer = Installer(db, seeder_factory=_failing_factory("countries", mock_client))
        plan = installer.plan(["continents", "countries", "languages"])

        report = installer.install(plan, rollback_on_error=True)

        assert report.state == InstallState.FAILED
        assert report.rolled_back == ["languages", "countries", "continents"]
        assert report.installed == []
        for component in ("continents", "countries", "languages"):
            assert not db.has_component(component)
            assert not migration_applied(db.conn, component)
        assert not InstallationLedger(db).get("continents").installed

    def test_unexpected_seeder_error_rolls_back(self, db: WorldDatabase, mock_client):
        def factory(component: str, database: WorldDatabase):
            if component == "countries":
                seeder = MagicMock()
                seeder.run.side_effect = KeyError("iso2")
                return seeder
            return create_seeder(component, database, client=mock_client)

        installer = Installer(db, seeder_factory=factory)
        report = installer.install(installer.plan(["continents", "countries"]), rollback_on_error=True)

        assert report.state == InstallState.FAILED
        assert installer.state == InstallState.FAILED
        assert report.failed == ["countries"]
        assert "iso2" in report.error
        assert report.rolled_back == ["countries", "continents"]
        assert not db.has_component("countries")

    def test_rollback_spares_earlier_batches(self, db: WorldDatabase, mock_client):
        first = Installer(db)
        first.install(first.plan(["continents"]))

        installer = Installer(db, seeder_factory=_failing_factory("languages", mock_client))
        report = installer.install(installer.plan(["continents", "languages"]), rollback_on_error=True)

        assert report.rolled_back == ["languages"]
        assert db.count("continents") == 7

    def test_rollback_setting_is_the_default(self, db: WorldDatabase, mock_client):
        db.settings = db.settings.model_copy(update={"rollback_on_error": True})
        installer = Installer(db, seeder_factory=_failing_factory("languages", mock_client))
        report = installer.install(installer.plan(["languages"]))
        assert report.rolled_back == ["languages"]


class TestLinking:
    def _orphaned_states(self, db: WorldDatabase, mock_client) -> Installer:
        installer = Installer(db, client=mock_client)
        installer.install(installer.plan(["states"]), link_mode=LinkMode.SKIP)
        return installer

    def test_auto_link_after_install(self, db: WorldDatabase, mock_client):
        self._orphaned_states(db, mock_client)
        installer = Installer(db, client=mock_client)

        report = installer.install(installer.plan(["countries"]), link_mode=LinkMode.AUTO)

        assert report.linkable == []
        assert db.count("states", "country_id IS NULL") == 3

        report = installer.install(installer.plan(["states"]), link_mode=LinkMode.AUTO)
        assert report.linkable == ["states"]
        assert report.link_results["states"].linked == 3
        assert db.count("states", "country_id IS NULL") == 0

    def test_prompt_declined(self, db: WorldDatabase, mock_client):
        installer = Installer(db, client=mock_client)
        installer.install(installer.plan(["countries"]), link_mode=LinkMode.SKIP)

        confirm = MagicMock(return_value=False)
        report = installer.install(installer.plan(["states"]), link_mode=LinkMode.PROMPT, confirm=confirm)

        confirm.assert_called_once()
        assert report.linkable == ["states"]
        assert report.link_results == {}

    def test_link_policy_skips_prompt(self, db: WorldDatabase, mock_client):
        installer = Installer(db, client=mock_client)
        installer.install(installer.plan(["countries"]), link_mode=LinkMode.SKIP)

        confirm = MagicMock(return_value=False)
        plan = installer.plan(["states"], policy=DependencyPolicy.LINK)
        report = installer.install(plan, link_mode=LinkMode.PROMPT, confirm=confirm)

        confirm.assert_not_called()
        assert "states" in report.link_results
