"""
Keyed document store for properties and rooms.

The store exposes the small surface the import pipeline and the read API
need: bulk insert-or-overwrite (``put_multi``), single-entity reads and
writes, read-modify-write transactions and a handful of queries. Entities
go in and come out as domain dataclasses; ORM rows never leave this module.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar, Union

from sqlalchemy import distinct, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from rental_api.db.models import PropertyRow, RoomRow
from rental_api.db.session import Base, build_session_factory
from rental_api.domain.errors import EntityNotFoundError
from rental_api.domain.models import (
    PROPERTY_KIND,
    ROOM_KIND,
    Contract,
    EntityKey,
    GeoCoord,
    Location,
    Management,
    Name,
    Property,
    Rentable,
    Room,
    Tenant,
    TimePeriod,
)

logger = logging.getLogger(__name__)

Entity = Union[Property, Room]
T = TypeVar("T")

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Columns the read side may ask distinct values for
DISTINCT_COLUMNS = {
    "kind": PropertyRow.kind,
    "locality": PropertyRow.location_locality,
}


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.astimezone(timezone.utc)


def _as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the offset; everything is written in UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _property_values(key: EntityKey, prop: Property) -> Dict[str, Any]:
    return {
        "key": key.name,
        "name_ja": prop.name.ja,
        "name_ja_kata": prop.name.ja_kata,
        "location_address": prop.location.address,
        "location_postal_code": prop.location.postal_code,
        "location_lat": prop.location.geo_coord.lat,
        "location_lng": prop.location.geo_coord.lng,
        "location_locality": prop.location.locality,
        "kind": prop.kind,
        "management_start_date": _to_utc(prop.management.start_date),
        "management_end_date": _to_utc(prop.management.end_date),
        "management_in_service": prop.management.in_service,
    }


def _room_values(key: EntityKey, room: Room) -> Dict[str, Any]:
    contract = room.contract
    return {
        "property_key": key.parent.name,
        "room_no": key.name,
        "layout": room.layout,
        "contract_period_from": contract.period.from_ if contract else None,
        "contract_period_to": contract.period.to if contract else None,
        "contract_tenant_id": contract.tenant.id if contract else None,
        "contract_tenant_name": contract.tenant.name if contract else None,
        "rentable": room.rentable.rentable,
        "rentable_reason": room.rentable.reason,
    }


def _row_to_property(row: PropertyRow) -> Property:
    return Property(
        name=Name(ja=row.name_ja, ja_kata=row.name_ja_kata),
        location=Location(
            address=row.location_address,
            postal_code=row.location_postal_code,
            geo_coord=GeoCoord(lat=row.location_lat, lng=row.location_lng),
            locality=row.location_locality,
        ),
        kind=row.kind,
        management=Management(
            start_date=_as_aware(row.management_start_date),
            end_date=_as_aware(row.management_end_date),
            in_service=bool(row.management_in_service),
        ),
        key_name=row.key,
    )


def _row_to_room(row: RoomRow) -> Room:
    contract = None
    if row.contract_tenant_id is not None:
        contract = Contract(
            period=TimePeriod(from_=row.contract_period_from or "", to=row.contract_period_to or ""),
            tenant=Tenant(id=row.contract_tenant_id, name=row.contract_tenant_name or ""),
        )
    return Room(
        layout=row.layout,
        contract=contract,
        rentable=Rentable(rentable=bool(row.rentable), reason=row.rentable_reason),
        key_name=row.room_no,
    )


_KIND_MAPPINGS = {
    PROPERTY_KIND: (PropertyRow, ("key",), _property_values),
    ROOM_KIND: (RoomRow, ("property_key", "room_no"), _room_values),
}


def _mapping_for(kind: str):
    try:
        return _KIND_MAPPINGS[kind]
    except KeyError:
        raise ValueError(f"Unsupported entity kind '{kind}'") from None


def _upsert(session: Session, kind: str, keys: Sequence[EntityKey], entities: Sequence[Entity]) -> int:
    """
    Insert-or-overwrite a set of entities of one kind in a single statement.

    When the same key appears twice the later entity wins, matching the
    semantics of writing the entities one after another.
    """
    row_class, key_columns, to_values = _mapping_for(kind)

    rows_by_key: Dict[EntityKey, Dict[str, Any]] = {}
    for key, entity in zip(keys, entities):
        if key.kind != kind:
            raise ValueError(f"Mixed entity kinds in one put: {kind} and {key.kind}")
        rows_by_key[key] = to_values(key, entity)
    rows = list(rows_by_key.values())

    dialect_name = session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect_name)
    if insert is None:
        raise NotImplementedError(f"Upsert is not supported on '{dialect_name}'")

    stmt = insert(row_class.__table__).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(key_columns),
        set_={name: stmt.excluded[name] for name in rows[0] if name not in key_columns},
    )
    session.execute(stmt)
    return len(rows)


def _load(session: Session, key: EntityKey, *, for_update: bool = False) -> Entity:
    if key.kind == PROPERTY_KIND:
        row = session.get(PropertyRow, key.name, with_for_update=for_update)
        if row is None:
            raise EntityNotFoundError(key)
        return _row_to_property(row)
    if key.kind == ROOM_KIND:
        row = session.get(RoomRow, (key.parent.name, key.name), with_for_update=for_update)
        if row is None:
            raise EntityNotFoundError(key)
        return _row_to_room(row)
    raise ValueError(f"Unsupported entity kind '{key.kind}'")


class Transaction:
    """Handle passed to ``DocumentStore.run_in_transaction`` callbacks."""

    def __init__(self, session: Session):
        self._session = session

    def get(self, key: EntityKey) -> Entity:
        return _load(self._session, key, for_update=True)

    def put(self, key: EntityKey, entity: Entity) -> None:
        _upsert(self._session, key.kind, [key], [entity])


class DocumentStore:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    def put_multi(self, keys: Sequence[EntityKey], entities: Sequence[Entity]) -> int:
        """Write entities of a single kind in one transaction; returns distinct keys written."""
        if len(keys) != len(entities):
            raise ValueError(f"put_multi got {len(keys)} keys for {len(entities)} entities")
        if not keys:
            return 0
        with self._session_factory.begin() as session:
            return _upsert(session, keys[0].kind, keys, entities)

    def put(self, key: EntityKey, entity: Entity) -> None:
        self.put_multi([key], [entity])

    def get(self, key: EntityKey) -> Entity:
        with self._session_factory() as session:
            return _load(session, key)

    def run_in_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """Run ``fn`` in one transaction; commits on return, rolls back on any exception."""
        with self._session_factory.begin() as session:
            return fn(Transaction(session))

    def query_properties(
        self,
        kind: Optional[str] = None,
        locality: Optional[str] = None,
        in_service: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> List[Property]:
        stmt = select(PropertyRow).order_by(PropertyRow.key)
        if kind is not None:
            stmt = stmt.where(PropertyRow.kind == kind)
        if locality is not None:
            stmt = stmt.where(PropertyRow.location_locality == locality)
        if in_service is not None:
            stmt = stmt.where(PropertyRow.management_in_service == in_service)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session_factory() as session:
            return [_row_to_property(row) for row in session.scalars(stmt)]

    def rooms_of(self, property_key: EntityKey) -> List[Room]:
        stmt = (
            select(RoomRow)
            .where(RoomRow.property_key == property_key.name)
            .order_by(RoomRow.room_no)
        )
        with self._session_factory() as session:
            return [_row_to_room(row) for row in session.scalars(stmt)]

    def distinct_values(self, field_name: str) -> List[str]:
        column = DISTINCT_COLUMNS.get(field_name)
        if column is None:
            raise ValueError(f"No distinct lookup for '{field_name}'")
        stmt = select(distinct(column)).order_by(column)
        with self._session_factory() as session:
            return list(session.scalars(stmt))
