"""
Component uninstaller.

Dropping a parent component leaves child rows pointing at ids that no longer
exist. The strategy decides what happens to those children:

- ``nullify``: drop the table and set the children's reference columns to NULL
- ``block``: refuse (and change nothing) while a dependent table holds rows
- ``cascade``: drop the dependent components as well
"""

import logging
from dataclasses import dataclass, field

from .components import DEFAULT_REGISTRY, ComponentRegistry
from .exceptions import InvalidStrategyError, UninstallBlockedError
from .schema import drop_table, remove_migration_entry
from .store import InstallationLedger, WorldDatabase

logger = logging.getLogger(__name__)

STRATEGIES: tuple[str, ...] = ("nullify", "block", "cascade")


@dataclass
class UninstallPlan:
    components: list[str]
    strategy: str
    # component -> {existing dependent component: row count}
    dependents: dict[str, dict[str, int]] = field(default_factory=dict)
    cascaded: list[str] = field(default_factory=list)

    @property
    def has_dependents(self) -> bool:
        return any(self.dependents.values())


@dataclass
class UninstallReport:
    dropped: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    nullified: dict[str, int] = field(default_factory=dict)
    migrations_removed: list[str] = field(default_factory=list)


class Uninstaller:
    def __init__(self, db: WorldDatabase, registry: ComponentRegistry = DEFAULT_REGISTRY):
        self.db = db
        self.registry = registry
        self.ledger = InstallationLedger(db)

    def existing_dependents(self, component: str, exclude: list[str]) -> dict[str, int]:
        """Dependent components whose tables exist, with their row counts."""
        return {
            dependent: self.db.count(dependent)
            for dependent in self.registry.dependents_of(component)
            if dependent not in exclude and self.db.has_component(dependent)
        }

    def plan(self, components: list[str], strategy: str = "nullify") -> UninstallPlan:
        """
        Validate a request and work out its impact. Performs no writes.

        Raises:
            InvalidStrategyError: Unknown strategy (checked before anything else)
            InvalidComponentError: Unknown component name
            UninstallBlockedError: ``block`` strategy with dependent rows
        """
        if strategy not in STRATEGIES:
            raise InvalidStrategyError(strategy, STRATEGIES)

        requested = [self.registry.validate(c) for c in components]
        selected = [c for c in self.registry.components if c in requested]

        dependents: dict[str, dict[str, int]] = {}
        for component in selected:
            existing = self.existing_dependents(component, exclude=selected)
            if existing:
                dependents[component] = existing

        if strategy == "block":
            blocked = [c for c, existing in dependents.items() if any(existing.values())]
            if blocked:
                merged: dict[str, int] = {}
                for component in blocked:
                    merged.update({d: n for d, n in dependents[component].items() if n})
                raise UninstallBlockedError(", ".join(blocked), merged)

        cascaded: list[str] = []
        if strategy == "cascade":
            for existing in dependents.values():
                for dependent in existing:
                    if dependent not in selected and dependent not in cascaded:
                        cascaded.append(dependent)
            selected = [c for c in self.registry.components if c in selected or c in cascaded]

        return UninstallPlan(components=selected, strategy=strategy, dependents=dependents, cascaded=cascaded)

    def _nullify_references(self, component: str, remaining: list[str]) -> dict[str, int]:
        """Set child reference columns pointing at ``component`` to NULL."""
        conn = self.db.conn
        updated: dict[str, int] = {}
        for child, columns in self.registry.foreign_keys.items():
            if child in remaining or not self.db.has_component(child):
                continue
            for column, parent in columns.items():
                if parent != component:
                    continue
                cursor = conn.execute(
                    f"UPDATE {self.db.table(child)} SET {column} = NULL WHERE {column} IS NOT NULL"
                )
                if cursor.rowcount:
                    updated[f"{child}.{column}"] = cursor.rowcount
                    logger.info(f"Nullified {cursor.rowcount:,} {child}.{column} references")
        conn.commit()
        return updated

    def uninstall(self, plan: UninstallPlan) -> UninstallReport:
        """Drop the planned components' tables and forget their migrations."""
        report = UninstallReport()

        # Children first
        for component in reversed(plan.components):
            table = self.db.table(component)
            if not self.db.table_exists(table):
                logger.info(f"{table} does not exist, skipping")
                report.skipped.append(component)
                continue

            if plan.strategy == "nullify":
                report.nullified.update(self._nullify_references(component, plan.components))

            logger.info(f"Dropping {table}...")
            drop_table(self.db.conn, table)
            report.dropped.append(component)

            if remove_migration_entry(self.db.conn, component):
                report.migrations_removed.append(component)
            self.ledger.mark_uninstalled(component)

        return report
