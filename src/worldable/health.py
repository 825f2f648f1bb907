"""Installation and linking health report."""

import logging
from datetime import datetime, timezone
from typing import Any

from .components import DEFAULT_REGISTRY, ComponentRegistry
from .store import WorldDatabase

logger = logging.getLogger(__name__)

# orphan key -> (component, NULL reference column)
ORPHAN_CHECKS: dict[str, tuple[str, str]] = {
    "subregions": ("subregions", "continent_id"),
    "countries_continent": ("countries", "continent_id"),
    "countries_subregion": ("countries", "subregion_id"),
    "states": ("states", "country_id"),
    "cities_country": ("cities", "country_id"),
    "cities_state": ("cities", "state_id"),
}

ORPHAN_LABELS: dict[str, str] = {
    "subregions": "Subregions without continents",
    "countries_continent": "Countries without continents",
    "countries_subregion": "Countries without subregions",
    "states": "States without countries",
    "cities_country": "Cities without countries",
    "cities_state": "Cities without states",
}

# orphan key -> columns shown for sample rows
SAMPLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "subregions": ("name", "code"),
    "countries_continent": ("name", "iso_code"),
    "states": ("name", "code"),
    "cities_country": ("name",),
}


class HealthChecker:
    def __init__(self, db: WorldDatabase, registry: ComponentRegistry = DEFAULT_REGISTRY):
        self.db = db
        self.registry = registry

    def components_status(self) -> dict[str, dict[str, Any]]:
        """Per component: installed flag, row count and table name."""
        status: dict[str, dict[str, Any]] = {}
        for component in self.registry.components:
            table = self.db.table(component)
            installed = self.db.table_exists(table)
            status[component] = {
                "installed": installed,
                "count": self.db.count(component) if installed else 0,
                "table": table,
            }
        return status

    def orphan_counts(self) -> dict[str, int]:
        return {
            key: self.db.count(component, f"{column} IS NULL")
            for key, (component, column) in ORPHAN_CHECKS.items()
        }

    def orphan_samples(self, limit: int = 5) -> dict[str, list[dict[str, Any]]]:
        """Up to ``limit`` example orphan rows per relationship that has orphans."""
        samples: dict[str, list[dict[str, Any]]] = {}
        conn = self.db.conn
        for key, columns in SAMPLE_COLUMNS.items():
            component, column = ORPHAN_CHECKS[key]
            if not self.db.has_component(component):
                continue
            column_sql = ", ".join(columns)
            rows = conn.execute(
                f"SELECT {column_sql} FROM {self.db.table(component)} WHERE {column} IS NULL ORDER BY id LIMIT ?",
                (limit,),
            ).fetchall()
            if rows:
                samples[key] = [{c: row[c] for c in columns} for row in rows]
        return samples

    @staticmethod
    def score(components: dict[str, dict[str, Any]], orphans: dict[str, int]) -> float:
        """
        Health score in [0, 100].

        Half the weight is the share of components installed; the other half
        is the share of rows that are not orphans.
        """
        if not components:
            return 0.0
        installed = sum(1 for c in components.values() if c["installed"])
        install_score = installed / len(components) * 50

        total_records = sum(c["count"] for c in components.values())
        total_orphans = sum(orphans.values())
        link_score = (total_records - total_orphans) / total_records * 50 if total_records > 0 else 0
        return round(install_score + link_score, 2)

    def health_score(self) -> float:
        return self.score(self.components_status(), self.orphan_counts())

    def recommendations(
        self,
        components: dict[str, dict[str, Any]],
        orphans: dict[str, int],
    ) -> list[str]:
        recommendations = []
        if sum(orphans.values()) > 0:
            recommendations.append("Run 'worldable link' to establish missing relationships")
        if any(not c["installed"] for c in components.values()):
            recommendations.append("Install missing components with 'worldable install'")
        return recommendations

    def report(self) -> dict[str, Any]:
        """JSON-serializable health report."""
        components = self.components_status()
        orphans = self.orphan_counts()
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": components,
            "orphans": orphans,
            "total_records": sum(c["count"] for c in components.values()),
            "total_orphans": sum(orphans.values()),
            "health_score": self.score(components, orphans),
        }
