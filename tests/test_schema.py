"""Tests for table DDL and the migration ledger."""

import sqlite3

import pytest

from worldable.components import MIGRATIONS
from worldable.config import DEFAULT_TABLES, MIGRATIONS_TABLE
from worldable.schema import (
    TABLE_BUILDERS,
    apply_migration,
    create_ledger_tables,
    create_table,
    migration_applied,
    next_batch,
    remove_migration_entry,
    rollback_batch,
    table_exists,
)


@pytest.fixture
def conn(db_path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    create_ledger_tables(conn)
    yield conn
    conn.close()


def test_every_component_has_a_builder():
    assert set(TABLE_BUILDERS) == set(DEFAULT_TABLES)


def test_create_table_is_idempotent(conn):
    create_table(conn, "countries", DEFAULT_TABLES)
    create_table(conn, "countries", DEFAULT_TABLES)
    assert table_exists(conn, "world_countries")


def test_custom_table_name(conn):
    tables = {**DEFAULT_TABLES, "cities": "geo_cities"}
    create_table(conn, "cities", tables)
    assert table_exists(conn, "geo_cities")
    assert not table_exists(conn, "world_cities")


def test_parent_references_are_not_enforced(conn):
    create_table(conn, "states", DEFAULT_TABLES)
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("INSERT INTO world_states (name, country_id) VALUES ('Lagos', 999)")
    assert conn.execute("SELECT country_id FROM world_states").fetchone()[0] == 999


def test_worldables_group_column(conn):
    create_table(conn, "worldables", DEFAULT_TABLES)
    conn.execute(
        'INSERT INTO worldables (worldable_type, worldable_id, world_entity_id, world_entity_type, "group") '
        "VALUES ('user', 1, 1, 'country', 'citizenship')"
    )
    assert conn.execute('SELECT "group" FROM worldables').fetchone()[0] == "citizenship"


class TestMigrations:
    def test_apply_records_once(self, conn):
        assert apply_migration(conn, "continents", DEFAULT_TABLES, batch=1)
        assert not apply_migration(conn, "continents", DEFAULT_TABLES, batch=2)
        assert migration_applied(conn, "continents")
        assert next_batch(conn) == 2

    def test_apply_recreates_missing_table(self, conn):
        apply_migration(conn, "languages", DEFAULT_TABLES, batch=1)
        conn.execute("DROP TABLE world_languages")
        apply_migration(conn, "languages", DEFAULT_TABLES, batch=2)
        assert table_exists(conn, "world_languages")

    def test_remove_migration_entry(self, conn):
        apply_migration(conn, "currencies", DEFAULT_TABLES, batch=1)
        assert remove_migration_entry(conn, "currencies") == 1
        assert not migration_applied(conn, "currencies")
        assert remove_migration_entry(conn, "currencies") == 0

    def test_rollback_batch_only_touches_that_batch(self, conn):
        apply_migration(conn, "continents", DEFAULT_TABLES, batch=1)
        apply_migration(conn, "countries", DEFAULT_TABLES, batch=2)
        apply_migration(conn, "states", DEFAULT_TABLES, batch=2)

        rolled_back = rollback_batch(conn, 2, DEFAULT_TABLES)

        assert rolled_back == ["states", "countries"]
        assert table_exists(conn, "world_continents")
        assert not table_exists(conn, "world_countries")
        assert not table_exists(conn, "world_states")
        remaining = [r[0] for r in conn.execute(f"SELECT migration FROM {MIGRATIONS_TABLE}")]
        assert remaining == [MIGRATIONS["continents"]]
