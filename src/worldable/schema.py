"""
Table definitions and the migration ledger.

Each component has one DDL builder parameterized by its configured table name.
Parent references are plain nullable INTEGER columns (no REFERENCES clause) so
that any component can be created, seeded or dropped regardless of which other
components are present.

The ``world_migrations`` table records which component tables were created by
which install run (``batch``), so a failed run can be rolled back as a unit.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Callable, Mapping

from .components import MIGRATIONS
from .config import INSTALLATION_STATE_TABLE, MIGRATIONS_TABLE

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


# =============================================================================
# DDL BUILDERS
# =============================================================================


def _continents(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            code TEXT NOT NULL UNIQUE,
            created_at TEXT,
            updated_at TEXT
        )
        """,
    ]


def _subregions(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            continent_id INTEGER,
            name TEXT NOT NULL,
            code TEXT NOT NULL UNIQUE,
            data TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{t}_continent_id ON {t}(continent_id)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_name ON {t}(name)",
    ]


def _countries(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            continent_id INTEGER,
            subregion_id INTEGER,
            name TEXT NOT NULL,
            iso_code TEXT NOT NULL UNIQUE,
            iso_code_3 TEXT NOT NULL UNIQUE,
            calling_code TEXT,
            metadata TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{t}_continent_id ON {t}(continent_id)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_subregion_id ON {t}(subregion_id)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_name ON {t}(name)",
    ]


def _states(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            country_id INTEGER,
            name TEXT NOT NULL,
            code TEXT,
            metadata TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{t}_country_id ON {t}(country_id)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_name ON {t}(name)",
    ]


def _cities(t: str) -> list[str]:
    # metadata carries country_code / state_code so orphaned cities can be relinked
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            country_id INTEGER,
            state_id INTEGER,
            name TEXT NOT NULL,
            latitude REAL,
            longitude REAL,
            metadata TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{t}_country_id ON {t}(country_id)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_state_id ON {t}(state_id)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_country_state ON {t}(country_id, state_id)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_name ON {t}(name)",
    ]


def _languages(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            native_name TEXT,
            iso_code TEXT NOT NULL UNIQUE,
            created_at TEXT,
            updated_at TEXT
        )
        """,
    ]


def _currencies(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            code TEXT NOT NULL UNIQUE,
            symbol TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """,
    ]


def _timezones(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            zone_name TEXT NOT NULL UNIQUE,
            gmt_offset INTEGER NOT NULL,
            gmt_offset_name TEXT NOT NULL,
            abbreviation TEXT NOT NULL,
            created_at TEXT,
            updated_at TEXT
        )
        """,
    ]


def _worldables(t: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {t} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            worldable_type TEXT NOT NULL,
            worldable_id INTEGER NOT NULL,
            world_entity_id INTEGER NOT NULL,
            world_entity_type TEXT NOT NULL,
            "group" TEXT,
            meta TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{t}_owner ON {t}(worldable_type, worldable_id, world_entity_type)",
        f"CREATE INDEX IF NOT EXISTS idx_{t}_entity ON {t}(world_entity_id, world_entity_type)",
    ]


TABLE_BUILDERS: dict[str, Callable[[str], list[str]]] = {
    "continents": _continents,
    "subregions": _subregions,
    "countries": _countries,
    "states": _states,
    "cities": _cities,
    "languages": _languages,
    "currencies": _currencies,
    "timezones": _timezones,
    "worldables": _worldables,
}

CREATE_MIGRATIONS = f"""
    CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        migration TEXT NOT NULL UNIQUE,
        component TEXT NOT NULL,
        batch INTEGER NOT NULL,
        applied_at TEXT NOT NULL
    )
"""

CREATE_INSTALLATION_STATE = f"""
    CREATE TABLE IF NOT EXISTS {INSTALLATION_STATE_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        component TEXT NOT NULL UNIQUE,
        installed INTEGER NOT NULL DEFAULT 1,
        installed_at TEXT,
        last_seeded_at TEXT,
        record_count INTEGER NOT NULL DEFAULT 0,
        metadata TEXT,
        created_at TEXT,
        updated_at TEXT
    )
"""


# =============================================================================
# OPERATIONS
# =============================================================================


def create_ledger_tables(conn: sqlite3.Connection) -> None:
    """Create the migration and installation-state ledgers (idempotent)."""
    conn.execute(CREATE_MIGRATIONS)
    conn.execute(CREATE_INSTALLATION_STATE)
    conn.commit()


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    cursor = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name = ?", (table,)
    )
    return cursor.fetchone() is not None


def create_table(conn: sqlite3.Connection, component: str, tables: Mapping[str, str]) -> str:
    """
    Create a component's table directly from its DDL builder.

    Used as the repair path when a recorded migration left no table behind.

    Returns:
        The table name that was created
    """
    table = tables[component]
    for statement in TABLE_BUILDERS[component](table):
        conn.execute(statement)
    conn.commit()
    logger.debug(f"Created table {table} for {component}")
    return table


def next_batch(conn: sqlite3.Connection) -> int:
    create_ledger_tables(conn)
    row = conn.execute(f"SELECT MAX(batch) FROM {MIGRATIONS_TABLE}").fetchone()
    return (row[0] or 0) + 1


def migration_applied(conn: sqlite3.Connection, component: str) -> bool:
    create_ledger_tables(conn)
    cursor = conn.execute(
        f"SELECT 1 FROM {MIGRATIONS_TABLE} WHERE migration = ?", (MIGRATIONS[component],)
    )
    return cursor.fetchone() is not None


def apply_migration(
    conn: sqlite3.Connection,
    component: str,
    tables: Mapping[str, str],
    batch: int,
) -> bool:
    """
    Run a component's migration: create its table and record it in the ledger.

    A migration that is already recorded is not recorded again, but its table
    is still created if missing.

    Returns:
        True if the migration was newly recorded in this batch
    """
    create_ledger_tables(conn)
    migration = MIGRATIONS[component]
    for statement in TABLE_BUILDERS[component](tables[component]):
        conn.execute(statement)

    cursor = conn.execute(
        f"INSERT OR IGNORE INTO {MIGRATIONS_TABLE} (migration, component, batch, applied_at) VALUES (?, ?, ?, ?)",
        (migration, component, batch, _now()),
    )
    conn.commit()
    recorded = cursor.rowcount > 0
    if recorded:
        logger.info(f"Migrated: {migration} (batch {batch})")
    return recorded


def drop_table(conn: sqlite3.Connection, table: str) -> None:
    conn.execute(f"DROP TABLE IF EXISTS {table}")
    conn.commit()
    logger.debug(f"Dropped table {table}")


def remove_migration_entry(conn: sqlite3.Connection, component: str) -> int:
    """Forget a component's migration so a later install runs it again."""
    create_ledger_tables(conn)
    cursor = conn.execute(
        f"DELETE FROM {MIGRATIONS_TABLE} WHERE migration = ?", (MIGRATIONS[component],)
    )
    conn.commit()
    return cursor.rowcount


def rollback_batch(conn: sqlite3.Connection, batch: int, tables: Mapping[str, str]) -> list[str]:
    """
    Undo every migration recorded under one batch, newest first.

    Returns:
        Components whose tables were dropped
    """
    create_ledger_tables(conn)
    rows = conn.execute(
        f"SELECT component FROM {MIGRATIONS_TABLE} WHERE batch = ? ORDER BY id DESC", (batch,)
    ).fetchall()

    rolled_back: list[str] = []
    for row in rows:
        component = row["component"] if isinstance(row, sqlite3.Row) else row[0]
        conn.execute(f"DROP TABLE IF EXISTS {tables[component]}")
        conn.execute(f"DELETE FROM {MIGRATIONS_TABLE} WHERE component = ? AND batch = ?", (component, batch))
        rolled_back.append(component)
        logger.info(f"Rolled back: {MIGRATIONS[component]}")

    conn.commit()
    return rolled_back
