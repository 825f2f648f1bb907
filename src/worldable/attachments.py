"""
Attach host-application records ("owners") to world entities.

All attachments live in one polymorphic table: each row links an owner
(``worldable_type``, ``worldable_id``) to a world entity
(``world_entity_type``, ``world_entity_id``), optionally under a ``group``
label and with a JSON ``meta`` blob.

Example:
    >>> place = Worldable(db, "user", 42)
    >>> place.countries.attach("NG", group="citizenship")
    >>> place.countries.has("Nigeria", group="citizenship")
    True
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .entities import EntityType, get_entity_type
from .exceptions import WorldablesTableMissingError
from .models import WorldableLink, WorldEntity, encode_json
from .store import WorldDatabase

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def ensure_worldables_table(db: WorldDatabase) -> str:
    """Return the pivot table name, or raise if it has not been installed."""
    table = db.table("worldables")
    if not db.table_exists(table):
        raise WorldablesTableMissingError(table)
    return table


def _group_clause(group: Optional[str]) -> tuple[str, tuple]:
    if group is None:
        return "", ()
    return ' AND "group" = ?', (group,)


class EntityAttachments:
    """Attachments of one owner to one world entity type."""

    def __init__(self, worldable: "Worldable", entity_type: EntityType):
        self.worldable = worldable
        self.entity_type = entity_type

    @property
    def db(self) -> WorldDatabase:
        return self.worldable.db

    def _table(self) -> str:
        return ensure_worldables_table(self.db)

    def _owner_clause(self) -> tuple[str, tuple]:
        return (
            "worldable_type = ? AND worldable_id = ? AND world_entity_type = ?",
            (self.worldable.owner_type, self.worldable.owner_id, self.entity_type.tag),
        )

    def resolve(self, value: Any) -> Optional[WorldEntity]:
        return self.entity_type.resolve(self.db, value)

    def _insert(self, table: str, entity_id: int, group: Optional[str], meta: Optional[dict]) -> None:
        now = _now()
        self.db.conn.execute(
            f"""
            INSERT INTO {table}
                (worldable_type, worldable_id, world_entity_id, world_entity_type, "group", meta, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                self.worldable.owner_type,
                self.worldable.owner_id,
                entity_id,
                self.entity_type.tag,
                group,
                encode_json(meta),
                now,
                now,
            ),
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def attach(self, entity: Any, group: Optional[str] = None, meta: Optional[dict] = None) -> "EntityAttachments":
        """
        Link an entity under ``group``. Re-attaching the same entity under the
        same group replaces its meta instead of adding a second row.
        Unresolvable input is ignored.
        """
        table = self._table()
        resolved = self.resolve(entity)
        if resolved is None:
            logger.debug(f"attach: no {self.entity_type.tag} matches {entity!r}")
            return self

        where, params = self._owner_clause()
        if group is None:
            where += ' AND "group" IS NULL'
        else:
            where += ' AND "group" = ?'
            params += (group,)
        conn = self.db.conn
        existing = conn.execute(
            f"SELECT id FROM {table} WHERE {where} AND world_entity_id = ?", params + (resolved.id,)
        ).fetchone()
        if existing:
            conn.execute(
                f"UPDATE {table} SET meta = ?, updated_at = ? WHERE id = ?",
                (encode_json(meta), _now(), existing["id"]),
            )
        else:
            self._insert(table, resolved.id, group, meta)
        conn.commit()
        return self

    def attach_many(
        self,
        entities: Iterable[Any],
        group: Optional[str] = None,
        meta: Optional[dict] = None,
    ) -> "EntityAttachments":
        for entity in entities:
            self.attach(entity, group=group, meta=meta)
        return self

    def detach(self, entity: Any, group: Optional[str] = None) -> "EntityAttachments":
        """Remove links to one entity (only within ``group`` when given)."""
        table = self._table()
        resolved = self.resolve(entity)
        if resolved is None:
            return self
        where, params = self._owner_clause()
        group_sql, group_params = _group_clause(group)
        self.db.conn.execute(
            f"DELETE FROM {table} WHERE {where} AND world_entity_id = ?{group_sql}",
            params + (resolved.id,) + group_params,
        )
        self.db.conn.commit()
        return self

    def detach_all(self, group: Optional[str] = None) -> "EntityAttachments":
        """Remove every link of this entity type (only within ``group`` when given)."""
        table = self._table()
        where, params = self._owner_clause()
        group_sql, group_params = _group_clause(group)
        self.db.conn.execute(f"DELETE FROM {table} WHERE {where}{group_sql}", params + group_params)
        self.db.conn.commit()
        return self

    def sync(
        self,
        entities: Iterable[Any],
        group: Optional[str] = None,
        meta: Optional[dict] = None,
    ) -> "EntityAttachments":
        """
        Make the attached set equal to ``entities``.

        Without a group the owner's whole set for this entity type is
        replaced. With a group only that group's rows are deleted and
        re-inserted; other groups are left alone.
        """
        table = self._table()
        entity_ids: list[int] = []
        for entity in entities:
            resolved = self.resolve(entity)
            if resolved is not None and resolved.id not in entity_ids:
                entity_ids.append(resolved.id)

        where, params = self._owner_clause()
        group_sql, group_params = _group_clause(group)
        conn = self.db.conn
        conn.execute(f"DELETE FROM {table} WHERE {where}{group_sql}", params + group_params)
        for entity_id in entity_ids:
            self._insert(table, entity_id, group, meta)
        conn.commit()
        return self

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def links(self, group: Optional[str] = None) -> list[WorldableLink]:
        table = self._table()
        where, params = self._owner_clause()
        group_sql, group_params = _group_clause(group)
        rows = self.db.conn.execute(
            f"SELECT * FROM {table} WHERE {where}{group_sql} ORDER BY id", params + group_params
        ).fetchall()
        return [WorldableLink.from_row(row) for row in rows]

    def entities(self, group: Optional[str] = None) -> list[WorldEntity]:
        result: list[WorldEntity] = []
        seen: set[int] = set()
        for link in self.links(group):
            if link.world_entity_id in seen:
                continue
            seen.add(link.world_entity_id)
            entity = self.db.get(self.entity_type.component, link.world_entity_id)
            if entity is not None:
                result.append(entity)
        return result

    def first(self, group: Optional[str] = None) -> Optional[WorldEntity]:
        entities = self.entities(group)
        return entities[0] if entities else None

    def has(self, entity: Any, group: Optional[str] = None) -> bool:
        return self.link(entity, group) is not None

    def link(self, entity: Any, group: Optional[str] = None) -> Optional[WorldableLink]:
        """The pivot row linking this owner to ``entity`` (first match)."""
        table = self._table()
        resolved = self.resolve(entity)
        if resolved is None:
            return None
        where, params = self._owner_clause()
        group_sql, group_params = _group_clause(group)
        row = self.db.conn.execute(
            f"SELECT * FROM {table} WHERE {where} AND world_entity_id = ?{group_sql} ORDER BY id LIMIT 1",
            params + (resolved.id,) + group_params,
        ).fetchone()
        return WorldableLink.from_row(row) if row else None

    # -------------------------------------------------------------------------
    # Pivot meta
    # -------------------------------------------------------------------------

    def get_meta(
        self,
        entity: Any,
        key: Optional[str] = None,
        default: Any = None,
        group: Optional[str] = None,
    ) -> Any:
        link = self.link(entity, group)
        if link is None:
            return default
        return link.get_meta(key, default)

    def has_meta(self, entity: Any, key: str, group: Optional[str] = None) -> bool:
        link = self.link(entity, group)
        return link is not None and link.has_meta(key)

    def update_meta(
        self,
        entity: Any,
        meta: dict[str, Any],
        group: Optional[str] = None,
        merge: bool = True,
    ) -> bool:
        """
        Update the meta of an existing link.

        Returns:
            False if the owner is not linked to ``entity``
        """
        link = self.link(entity, group)
        if link is None:
            return False
        if merge:
            link.merge_meta(meta)
        else:
            link.set_meta(meta)
        self.db.conn.execute(
            f"UPDATE {self._table()} SET meta = ?, updated_at = ? WHERE id = ?",
            (encode_json(link.meta), _now(), link.id),
        )
        self.db.conn.commit()
        return True


class Worldable:
    """
    One owner record's view of its world attachments.

    Args:
        db: World database
        owner_type: Stable tag for the owner's type (e.g. "user")
        owner_id: Owner's primary key
    """

    def __init__(self, db: WorldDatabase, owner_type: str, owner_id: int):
        self.db = db
        self.owner_type = owner_type
        self.owner_id = owner_id

    def of(self, entity_type: str | type[WorldEntity]) -> EntityAttachments:
        return EntityAttachments(self, get_entity_type(entity_type))

    @property
    def continents(self) -> EntityAttachments:
        return self.of("continent")

    @property
    def subregions(self) -> EntityAttachments:
        return self.of("subregion")

    @property
    def countries(self) -> EntityAttachments:
        return self.of("country")

    @property
    def states(self) -> EntityAttachments:
        return self.of("state")

    @property
    def cities(self) -> EntityAttachments:
        return self.of("city")

    @property
    def languages(self) -> EntityAttachments:
        return self.of("language")

    @property
    def currencies(self) -> EntityAttachments:
        return self.of("currency")

    @property
    def timezones(self) -> EntityAttachments:
        return self.of("timezone")

    def locate_at(self, location: dict[str, Any], group: Optional[str] = None) -> "Worldable":
        """Attach any of ``country``, ``state`` and ``city`` given in ``location``."""
        ensure_worldables_table(self.db)
        if location.get("country") is not None:
            self.countries.attach(location["country"], group=group)
        if location.get("state") is not None:
            self.states.attach(location["state"], group=group)
        if location.get("city") is not None:
            self.cities.attach(location["city"], group=group)
        return self

    def all_links(self) -> list[WorldableLink]:
        table = ensure_worldables_table(self.db)
        rows = self.db.conn.execute(
            f"SELECT * FROM {table} WHERE worldable_type = ? AND worldable_id = ? ORDER BY id",
            (self.owner_type, self.owner_id),
        ).fetchall()
        return [WorldableLink.from_row(row) for row in rows]


# =============================================================================
# OWNER QUERIES
# =============================================================================


def owners_with_any(
    db: WorldDatabase,
    owner_type: str,
    entity_type: str | type[WorldEntity],
    values: Iterable[Any],
    group: Optional[str] = None,
) -> list[int]:
    """Ids of owners linked to any of ``values``."""
    table = ensure_worldables_table(db)
    etype = get_entity_type(entity_type)
    entity_ids = []
    for value in values:
        resolved = etype.resolve(db, value)
        if resolved is not None:
            entity_ids.append(resolved.id)
    if not entity_ids:
        return []
    placeholders = ", ".join("?" for _ in entity_ids)
    group_sql, group_params = _group_clause(group)
    rows = db.conn.execute(
        f"""
        SELECT DISTINCT worldable_id FROM {table}
        WHERE worldable_type = ? AND world_entity_type = ? AND world_entity_id IN ({placeholders}){group_sql}
        ORDER BY worldable_id
        """,
        (owner_type, etype.tag, *entity_ids) + group_params,
    ).fetchall()
    return [row[0] for row in rows]


def owners_with(
    db: WorldDatabase,
    owner_type: str,
    entity_type: str | type[WorldEntity],
    value: Any,
    group: Optional[str] = None,
) -> list[int]:
    """Ids of owners linked to ``value`` (within ``group`` when given)."""
    return owners_with_any(db, owner_type, entity_type, [value], group)


def owners_without(
    db: WorldDatabase,
    owner_type: str,
    entity_type: str | type[WorldEntity],
    value: Any,
    owner_ids: Iterable[int],
    group: Optional[str] = None,
) -> list[int]:
    """
    Filter ``owner_ids`` down to owners not linked to ``value``.

    The pivot table only knows owners that have links, so the candidate
    owners come from the caller.
    """
    linked = set(owners_with(db, owner_type, entity_type, value, group))
    return [owner_id for owner_id in owner_ids if owner_id not in linked]
