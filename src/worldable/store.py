"""
SQLite access layer for world reference data.

Connections are pooled per database path at module level so the installer,
linkers, health checker and attachment layer all share one connection
(and one transaction view) within a process.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from .components import FOREIGN_KEYS
from .config import INSTALLATION_STATE_TABLE, WorldableSettings, get_settings
from .exceptions import DependencyNotInstalledError
from .models import (
    City,
    Continent,
    Country,
    Currency,
    InstallationState,
    Language,
    State,
    Subregion,
    Timezone,
    WorldEntity,
    encode_json,
)
from .schema import create_ledger_tables, table_exists

logger = logging.getLogger(__name__)

# Module-level shared connections, keyed by database path
_shared_connections: dict[str, sqlite3.Connection] = {}

MODELS: dict[str, type[WorldEntity]] = {
    "continents": Continent,
    "subregions": Subregion,
    "countries": Country,
    "states": State,
    "cities": City,
    "languages": Language,
    "currencies": Currency,
    "timezones": Timezone,
}


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    """Apply PRAGMAs for bulk loading.

    Foreign-key enforcement stays off: parent references are nullable and
    resolved by the linkers, not by the engine.
    """
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA temp_store = MEMORY")
    conn.execute("PRAGMA foreign_keys = OFF")
    logger.debug("Applied PRAGMAs: journal_mode=WAL, synchronous=NORMAL, foreign_keys=OFF")


def _get_shared_connection(db_path: Path) -> sqlite3.Connection:
    """Get or create a shared database connection for the given path."""
    path_key = str(db_path)
    if path_key not in _shared_connections:
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(db_path))
        conn.row_factory = sqlite3.Row
        _apply_pragmas(conn)

        create_ledger_tables(conn)
        _shared_connections[path_key] = conn
        logger.debug(f"Created shared database connection for {path_key}")

    return _shared_connections[path_key]


def close_shared_connection(db_path: Optional[Path] = None) -> None:
    """Close a shared database connection."""
    path_key = str(db_path or get_settings().db_path)
    if path_key in _shared_connections:
        _shared_connections[path_key].close()
        del _shared_connections[path_key]
        logger.debug(f"Closed shared database connection for {path_key}")


def _chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class WorldDatabase:
    """
    Read/write access to the world tables.

    Every query goes through the configured table names, so the same code
    works when a host renames tables through ``WORLDABLE_TABLE_*``.
    """

    def __init__(
        self,
        db_path: Optional[str | Path] = None,
        settings: Optional[WorldableSettings] = None,
    ):
        """
        Initialize the world database.

        Args:
            db_path: Path to database file (creates if not exists)
            settings: Settings to use instead of the process-wide ones
        """
        self.settings = settings or get_settings(db_path)
        if db_path is not None and settings is not None:
            self.settings = settings.model_copy(update={"db_path": Path(db_path)})
        self._db_path = Path(self.settings.db_path)
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        """Get or create database connection using shared connection pool."""
        if self._conn is not None:
            return self._conn
        self._conn = _get_shared_connection(self._db_path)
        return self._conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._connect()

    def close(self) -> None:
        """Clear connection reference."""
        self._conn = None

    # -------------------------------------------------------------------------
    # Table helpers
    # -------------------------------------------------------------------------

    def table(self, component: str) -> str:
        return self.settings.table(component)

    def table_exists(self, table: str) -> bool:
        return table_exists(self._connect(), table)

    def has_component(self, component: str) -> bool:
        """True if the component's table exists."""
        return self.table_exists(self.table(component))

    def count(self, component: str, where: Optional[str] = None, params: Sequence[Any] = ()) -> int:
        """Row count for a component table (0 when the table is missing)."""
        if not self.has_component(component):
            return 0
        sql = f"SELECT COUNT(*) FROM {self.table(component)}"
        if where:
            sql += f" WHERE {where}"
        return self._connect().execute(sql, tuple(params)).fetchone()[0]

    def get_stats(self) -> dict[str, Optional[int]]:
        """Row counts per component; None for components without a table."""
        return {
            component: (self.count(component) if self.has_component(component) else None)
            for component in self.settings.tables
        }

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert_or_ignore(self, table: str, rows: Sequence[Mapping[str, Any]], batch_size: int = 500) -> int:
        """
        Bulk insert rows, silently skipping unique-key conflicts.

        All rows must share the first row's columns. ``created_at`` and
        ``updated_at`` are filled in when absent.

        Returns:
            Number of rows actually inserted
        """
        if not rows:
            return 0

        conn = self._connect()
        now = _now()
        columns = list(rows[0].keys())
        for stamp in ("created_at", "updated_at"):
            if stamp not in columns:
                columns.append(stamp)
        column_sql = ", ".join(f'"{c}"' for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT OR IGNORE INTO {table} ({column_sql}) VALUES ({placeholders})"

        inserted = 0
        for chunk in _chunked(rows, batch_size):
            values = [
                tuple(row.get(c, now) if c in ("created_at", "updated_at") else row.get(c) for c in columns)
                for row in chunk
            ]
            before = conn.total_changes
            conn.executemany(sql, values)
            inserted += conn.total_changes - before
            conn.commit()
        return inserted

    def upsert(self, table: str, key_columns: Sequence[str], row: Mapping[str, Any]) -> int:
        """
        Update the row matching ``key_columns`` or insert a new one.

        Returns:
            The id of the updated or inserted row
        """
        conn = self._connect()
        now = _now()
        where = " AND ".join(f'"{c}" = ?' for c in key_columns)
        key_values = tuple(row[c] for c in key_columns)

        existing = conn.execute(f"SELECT id FROM {table} WHERE {where}", key_values).fetchone()
        if existing:
            columns = [c for c in row if c not in key_columns]
            if columns:
                assignments = ", ".join(f'"{c}" = ?' for c in columns)
                conn.execute(
                    f'UPDATE {table} SET {assignments}, "updated_at" = ? WHERE id = ?',
                    tuple(row[c] for c in columns) + (now, existing["id"]),
                )
            return existing["id"]

        columns = list(row.keys()) + ["created_at", "updated_at"]
        column_sql = ", ".join(f'"{c}"' for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        cursor = conn.execute(
            f"INSERT INTO {table} ({column_sql}) VALUES ({placeholders})",
            tuple(row.values()) + (now, now),
        )
        return cursor.lastrowid

    def update_row(self, component: str, row_id: int, values: Mapping[str, Any], commit: bool = True) -> int:
        """Update columns on one row. Returns the number of rows changed."""
        if not values:
            return 0
        conn = self._connect()
        assignments = ", ".join(f'"{c}" = ?' for c in values)
        cursor = conn.execute(
            f'UPDATE {self.table(component)} SET {assignments}, "updated_at" = ? WHERE id = ?',
            tuple(values.values()) + (_now(), row_id),
        )
        if commit:
            conn.commit()
        return cursor.rowcount

    def commit(self) -> None:
        self._connect().commit()

    # -------------------------------------------------------------------------
    # Lookup maps
    # -------------------------------------------------------------------------

    def build_map(
        self,
        component: str,
        key: str,
        value: str = "id",
        transform: Optional[Any] = None,
    ) -> dict[Any, Any]:
        """
        Build a natural-key lookup map over a whole component table.

        Args:
            component: Component whose table to read
            key: Column to key by
            value: Column to map to (default: id)
            transform: Optional callable applied to each key (e.g. str.upper)

        Returns:
            Mapping of key -> value (empty if the table is missing)
        """
        if not self.has_component(component):
            return {}
        cursor = self._connect().execute(
            f'SELECT "{key}", "{value}" FROM {self.table(component)} WHERE "{key}" IS NOT NULL'
        )
        lookup: dict[Any, Any] = {}
        for row in cursor:
            k = transform(row[0]) if transform else row[0]
            lookup[k] = row[1]
        return lookup

    def build_composite_map(
        self,
        component: str,
        key_columns: Sequence[str],
        value: str = "id",
        separator: str = "_",
    ) -> dict[str, Any]:
        """Lookup map keyed by several columns joined with ``separator``."""
        if not self.has_component(component):
            return {}
        column_sql = ", ".join(f'"{c}"' for c in key_columns)
        cursor = self._connect().execute(f'SELECT {column_sql}, "{value}" FROM {self.table(component)}')
        lookup: dict[str, Any] = {}
        for row in cursor:
            parts = [row[i] for i in range(len(key_columns))]
            if any(p is None for p in parts):
                continue
            lookup[separator.join(str(p) for p in parts)] = row[len(key_columns)]
        return lookup

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, component: str, row_id: int) -> Optional[WorldEntity]:
        """Fetch one entity by primary key (None if absent or table missing)."""
        if not self.has_component(component):
            return None
        row = self._connect().execute(
            f"SELECT * FROM {self.table(component)} WHERE id = ?", (row_id,)
        ).fetchone()
        return MODELS[component].from_row(row) if row else None

    def get_continent(self, row_id: int) -> Optional[Continent]:
        return self.get("continents", row_id)  # type: ignore[return-value]

    def get_subregion(self, row_id: int) -> Optional[Subregion]:
        return self.get("subregions", row_id)  # type: ignore[return-value]

    def get_country(self, row_id: int) -> Optional[Country]:
        return self.get("countries", row_id)  # type: ignore[return-value]

    def get_state(self, row_id: int) -> Optional[State]:
        return self.get("states", row_id)  # type: ignore[return-value]

    def get_city(self, row_id: int) -> Optional[City]:
        return self.get("cities", row_id)  # type: ignore[return-value]

    def find_one(self, component: str, where: str, params: Sequence[Any] = ()) -> Optional[WorldEntity]:
        """First entity matching a WHERE clause, ordered by id."""
        if not self.has_component(component):
            return None
        row = self._connect().execute(
            f"SELECT * FROM {self.table(component)} WHERE {where} ORDER BY id LIMIT 1", tuple(params)
        ).fetchone()
        return MODELS[component].from_row(row) if row else None

    def find_by(self, component: str, column: str, value: Any) -> Optional[WorldEntity]:
        return self.find_one(component, f'"{column}" = ?', (value,))

    def find_all(self, component: str, where: Optional[str] = None, params: Sequence[Any] = ()) -> list[WorldEntity]:
        if not self.has_component(component):
            return []
        sql = f"SELECT * FROM {self.table(component)}"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY id"
        model = MODELS[component]
        return [model.from_row(row) for row in self._connect().execute(sql, tuple(params))]

    def iter_rows(self, component: str, where: Optional[str] = None, params: Sequence[Any] = ()) -> Iterator[sqlite3.Row]:
        """Raw rows for a component (nothing if the table is missing)."""
        if not self.has_component(component):
            return
        sql = f"SELECT * FROM {self.table(component)}"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY id"
        yield from self._connect().execute(sql, tuple(params)).fetchall()

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def _require(self, entity: WorldEntity, relationship: str, component: str) -> None:
        if not self.has_component(component):
            raise DependencyNotInstalledError(type(entity).__name__, relationship, component)

    def continent_of(self, entity: Subregion | Country) -> Optional[Continent]:
        self._require(entity, "continent", "continents")
        return self.get_continent(entity.continent_id) if entity.continent_id else None

    def subregion_of(self, country: Country) -> Optional[Subregion]:
        self._require(country, "subregion", "subregions")
        return self.get_subregion(country.subregion_id) if country.subregion_id else None

    def country_of(self, entity: State | City) -> Optional[Country]:
        self._require(entity, "country", "countries")
        return self.get_country(entity.country_id) if entity.country_id else None

    def state_of(self, city: City) -> Optional[State]:
        self._require(city, "state", "states")
        return self.get_state(city.state_id) if city.state_id else None

    def subregions_of(self, continent: Continent) -> list[Subregion]:
        self._require(continent, "subregions", "subregions")
        return self.find_all("subregions", "continent_id = ?", (continent.id,))  # type: ignore[return-value]

    def countries_of(self, parent: Continent | Subregion) -> list[Country]:
        self._require(parent, "countries", "countries")
        column = "continent_id" if isinstance(parent, Continent) else "subregion_id"
        return self.find_all("countries", f"{column} = ?", (parent.id,))  # type: ignore[return-value]

    def states_of(self, country: Country) -> list[State]:
        self._require(country, "states", "states")
        return self.find_all("states", "country_id = ?", (country.id,))  # type: ignore[return-value]

    def cities_of(self, parent: Country | State) -> list[City]:
        self._require(parent, "cities", "cities")
        column = "country_id" if isinstance(parent, Country) else "state_id"
        return self.find_all("cities", f"{column} = ?", (parent.id,))  # type: ignore[return-value]

    # -------------------------------------------------------------------------
    # Host-initiated inserts
    # -------------------------------------------------------------------------

    def guard_foreign_keys(self, component: str, values: Mapping[str, Any]) -> dict[str, Any]:
        """Null out parent references whose parent table does not exist."""
        guarded = dict(values)
        for column, parent in FOREIGN_KEYS.get(component, {}).items():
            if guarded.get(column) is not None and not self.has_component(parent):
                logger.debug(f"Dropping {component}.{column}={guarded[column]}: {parent} not installed")
                guarded[column] = None
        return guarded

    def _add(self, component: str, values: Mapping[str, Any], metadata: Any = None) -> WorldEntity:
        row = self.guard_foreign_keys(component, values)
        if metadata is not None:
            row["metadata"] = metadata.to_json() if hasattr(metadata, "to_json") else encode_json(metadata)
        now = _now()
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        conn = self._connect()
        column_sql = ", ".join(f'"{c}"' for c in row)
        placeholders = ", ".join("?" for _ in row)
        cursor = conn.execute(
            f"INSERT INTO {self.table(component)} ({column_sql}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        conn.commit()
        entity = self.get(component, cursor.lastrowid)
        assert entity is not None
        return entity

    def add_city(
        self,
        name: str,
        country_id: Optional[int] = None,
        state_id: Optional[int] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        metadata: Any = None,
    ) -> City:
        """Insert a custom city, dropping references to uninstalled parents."""
        values = {
            "name": name,
            "country_id": country_id,
            "state_id": state_id,
            "latitude": latitude,
            "longitude": longitude,
        }
        return self._add("cities", values, metadata)  # type: ignore[return-value]

    def add_state(
        self,
        name: str,
        country_id: Optional[int] = None,
        code: Optional[str] = None,
        metadata: Any = None,
    ) -> State:
        values = {"name": name, "country_id": country_id, "code": code}
        return self._add("states", values, metadata)  # type: ignore[return-value]


class InstallationLedger:
    """Per-component record of what was installed, when, and how many rows."""

    def __init__(self, db: WorldDatabase):
        self._db = db

    def _conn(self) -> sqlite3.Connection:
        return self._db.conn

    def mark_installed(
        self,
        component: str,
        record_count: int = 0,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        now = _now()
        self._conn().execute(
            f"""
            INSERT INTO {INSTALLATION_STATE_TABLE}
                (component, installed, installed_at, last_seeded_at, record_count, metadata, created_at, updated_at)
            VALUES (?, 1, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(component) DO UPDATE SET
                installed = 1,
                installed_at = excluded.installed_at,
                last_seeded_at = excluded.last_seeded_at,
                record_count = excluded.record_count,
                metadata = excluded.metadata,
                updated_at = excluded.updated_at
            """,
            (component, now, now, record_count, encode_json(metadata), now, now),
        )
        self._conn().commit()
        logger.debug(f"Ledger: {component} installed ({record_count:,} records)")

    def mark_uninstalled(self, component: str) -> None:
        self._conn().execute(
            f"UPDATE {INSTALLATION_STATE_TABLE} SET installed = 0, record_count = 0, updated_at = ? WHERE component = ?",
            (_now(), component),
        )
        self._conn().commit()
        logger.debug(f"Ledger: {component} uninstalled")

    def get(self, component: str) -> Optional[InstallationState]:
        row = self._conn().execute(
            f"SELECT * FROM {INSTALLATION_STATE_TABLE} WHERE component = ?", (component,)
        ).fetchone()
        return InstallationState.from_row(row) if row else None

    def all(self) -> list[InstallationState]:
        rows = self._conn().execute(f"SELECT * FROM {INSTALLATION_STATE_TABLE} ORDER BY id").fetchall()
        return [InstallationState.from_row(row) for row in rows]

    def installed_components(self) -> Iterable[str]:
        return [state.component for state in self.all() if state.installed]
