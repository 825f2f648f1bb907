"""
Dataset installer.

An install run moves through these states:

    SELECTING -> RESOLVING -> PROVISIONING -> SEEDING -> LINKING -> DONE

with FAILED reachable from PROVISIONING and SEEDING. RESOLVING and LINKING
are skipped when the dependency policy or link mode says so.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .components import DEFAULT_REGISTRY, ComponentRegistry
from .exceptions import ProvisioningError
from .linkers import LinkerRegistry
from .models import LinkerResult, SeedResult
from .schema import apply_migration, create_table, next_batch, rollback_batch
from .seeders import Seeder, create_seeder
from .store import InstallationLedger, WorldDatabase

logger = logging.getLogger(__name__)


class InstallState(str, Enum):
    SELECTING = "selecting"
    RESOLVING = "resolving"
    PROVISIONING = "provisioning"
    SEEDING = "seeding"
    LINKING = "linking"
    DONE = "done"
    FAILED = "failed"


class DependencyPolicy(str, Enum):
    """What to do when a selection leaves out components it depends on."""

    WARN = "warn"  # proceed; rows get NULL parent references
    INCLUDE = "include"  # add the missing dependencies ahead of their dependents
    LINK = "link"  # proceed, then always link after install


class LinkMode(str, Enum):
    AUTO = "auto"
    PROMPT = "prompt"
    SKIP = "skip"


@dataclass
class InstallPlan:
    components: list[str]
    added_dependencies: list[str] = field(default_factory=list)
    missing_dependencies: dict[str, list[str]] = field(default_factory=dict)
    policy: DependencyPolicy = DependencyPolicy.WARN


@dataclass
class InstallReport:
    state: InstallState
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    seed_results: dict[str, SeedResult] = field(default_factory=dict)
    link_results: dict[str, LinkerResult] = field(default_factory=dict)
    linkable: list[str] = field(default_factory=list)
    rolled_back: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    batch: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.state == InstallState.DONE

    @property
    def error(self) -> Optional[str]:
        if not self.errors:
            return None
        return "; ".join(f"{component}: {message}" for component, message in self.errors.items())


SeederFactory = Callable[[str, WorldDatabase], Optional[Seeder]]


class Installer:
    """
    Provision and seed a selection of components.

    Args:
        db: Target database
        registry: Component registry (dependency graph, seeders, migrations)
        seeder_factory: Callable(component, db) -> Seeder or None; defaults to
            the built-in seeders using ``client`` for downloads
        linker_registry: Linkers used for the post-install linking step
        client: Optional httpx.Client passed to the default seeders
    """

    def __init__(
        self,
        db: WorldDatabase,
        registry: ComponentRegistry = DEFAULT_REGISTRY,
        seeder_factory: Optional[SeederFactory] = None,
        linker_registry: Optional[LinkerRegistry] = None,
        client: Optional[Any] = None,
    ):
        self.db = db
        self.registry = registry
        self.ledger = InstallationLedger(db)
        self.linkers = linker_registry or LinkerRegistry(db, registry)
        if seeder_factory is None:
            def seeder_factory(component: str, database: WorldDatabase) -> Optional[Seeder]:
                return create_seeder(component, database, client=client, registry=registry)
        self._seeder_factory = seeder_factory
        self.state = InstallState.SELECTING

    def _transition(self, state: InstallState) -> None:
        logger.debug(f"Installer: {self.state.value} -> {state.value}")
        self.state = state

    # -------------------------------------------------------------------------
    # Selecting / resolving
    # -------------------------------------------------------------------------

    def plan(
        self,
        components: Optional[list[str]] = None,
        all_components: bool = False,
        skip_large: bool = False,
        policy: DependencyPolicy = DependencyPolicy.WARN,
    ) -> InstallPlan:
        """
        Turn a selection into an ordered install plan.

        ``all_components`` takes every registered component (minus the large
        datasets when ``skip_large``); explicit selections are validated and
        kept in registry order.
        """
        self._transition(InstallState.SELECTING)
        if all_components:
            selected = [c for c in self.registry.components if not (skip_large and self.registry.is_large(c))]
            return InstallPlan(components=selected, policy=policy)

        requested = [self.registry.validate(c) for c in (components or [])]
        selected = [c for c in self.registry.components if c in requested]

        if policy == DependencyPolicy.INCLUDE:
            self._transition(InstallState.RESOLVING)
            resolved, added = self.registry.resolve_dependencies(selected)
            if added:
                logger.info(f"Adding required dependencies: {', '.join(added)}")
            return InstallPlan(components=resolved, added_dependencies=added, policy=policy)

        missing = self.registry.missing_dependencies(selected)
        for component, deps in missing.items():
            logger.warning(f"{component} works best with: {', '.join(deps)}; records will be created with NULL foreign keys")
        return InstallPlan(components=selected, missing_dependencies=missing, policy=policy)

    # -------------------------------------------------------------------------
    # Provisioning
    # -------------------------------------------------------------------------

    def provision(self, components: list[str], batch: int) -> None:
        """Apply migrations, then create any table that is still missing."""
        self._transition(InstallState.PROVISIONING)
        conn = self.db.conn
        tables = self.db.settings.tables

        for component in components:
            try:
                apply_migration(conn, component, tables, batch)
            except sqlite3.Error as e:
                raise ProvisioningError(component, tables[component], str(e)) from e

        missing = [c for c in components if not self.db.has_component(c)]
        if missing:
            logger.warning(f"Tables missing after migration, creating directly: {', '.join(tables[c] for c in missing)}")
        for component in missing:
            try:
                create_table(conn, component, tables)
            except sqlite3.Error as e:
                raise ProvisioningError(component, tables[component], str(e)) from e

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def seed_component(self, component: str) -> SeedResult:
        seeder = self._seeder_factory(component, self.db)
        if seeder is None:
            logger.info(f"{component} table created (no data to seed)")
            result = SeedResult(component=component)
        else:
            logger.info(f"Installing {component}...")
            result = seeder.run()
        self.ledger.mark_installed(
            component,
            record_count=self.db.count(component),
            metadata={"orphaned": result.orphaned} if result.orphaned else None,
        )
        return result

    # -------------------------------------------------------------------------
    # Linking
    # -------------------------------------------------------------------------

    def linkable_components(self, installed: list[str]) -> list[str]:
        """Newly installed components with at least one dependency present."""
        present = set(installed) | {c for c in self.registry.components if self.db.has_component(c)}
        return [
            component
            for component in installed
            if any(dep in present for dep in self.registry.dependencies.get(component, ()))
        ]

    def link(
        self,
        installed: list[str],
        link_mode: LinkMode,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> tuple[list[str], dict[str, LinkerResult]]:
        linkable = self.linkable_components(installed)
        if link_mode == LinkMode.SKIP or not linkable:
            return linkable, {}

        if link_mode == LinkMode.PROMPT:
            if confirm is None or not confirm("Would you like to link relationships now?"):
                logger.info("Skipping linking; run 'worldable link' later")
                return linkable, {}

        self._transition(InstallState.LINKING)
        return linkable, self.linkers.link_all(components=linkable)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def install(
        self,
        plan: InstallPlan,
        rollback_on_error: Optional[bool] = None,
        link_mode: LinkMode = LinkMode.PROMPT,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> InstallReport:
        """
        Provision, seed and (optionally) link the planned components.

        Seeding follows plan order and stops at the first component that
        fails. With ``rollback_on_error`` every table created by this run is
        dropped again; otherwise components seeded so far stay installed.
        """
        if rollback_on_error is None:
            rollback_on_error = self.db.settings.rollback_on_error

        report = InstallReport(state=self.state)
        if not plan.components:
            logger.warning("No components selected")
            self._transition(InstallState.FAILED)
            report.state = self.state
            return report

        batch = next_batch(self.db.conn)
        report.batch = batch

        try:
            self.provision(plan.components, batch)
        except ProvisioningError as e:
            logger.error(str(e))
            report.errors[e.component] = str(e)
            report.failed.append(e.component)
            self._transition(InstallState.FAILED)
            report.state = self.state
            return report

        self._transition(InstallState.SEEDING)
        for component in plan.components:
            try:
                report.seed_results[component] = self.seed_component(component)
                report.installed.append(component)
                logger.info(f"{component} installed successfully")
            except Exception as e:
                logger.error(f"Failed to install {component}: {e}")
                report.failed.append(component)
                report.errors[component] = str(e)
                break

        if report.failed:
            if rollback_on_error:
                logger.error("Rolling back migrations due to seeding failure...")
                report.rolled_back = rollback_batch(self.db.conn, batch, self.db.settings.tables)
                for component in report.rolled_back:
                    self.ledger.mark_uninstalled(component)
                report.installed = [c for c in report.installed if c not in report.rolled_back]
            self._transition(InstallState.FAILED)
            report.state = self.state
            return report

        if plan.policy == DependencyPolicy.LINK and link_mode == LinkMode.PROMPT:
            link_mode = LinkMode.AUTO
        report.linkable, report.link_results = self.link(report.installed, link_mode, confirm)

        self._transition(InstallState.DONE)
        report.state = self.state
        return report
