"""
Read-side operations over stored properties and rooms.
"""
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, get_args, get_type_hints

from rental_api.db.store import DocumentStore
from rental_api.domain.models import PROPERTY_KIND, EntityKey, KindCategory, Property, Room

logger = logging.getLogger(__name__)

GEOJSON_CATEGORIES = ("all", "residence", "parking", "business")


@dataclass
class PropertyWithRooms:
    property: Property
    rooms: List[Room] = field(default_factory=list)


def _key_for(property_id: str) -> EntityKey:
    return EntityKey(PROPERTY_KIND, property_id)


def parse_in_service(value: Optional[str]) -> Optional[bool]:
    """Only the literal strings "true" and "false" filter; anything else is ignored."""
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def search_properties(
    store: DocumentStore,
    kind: Optional[str] = None,
    locality: Optional[str] = None,
    in_service: Optional[bool] = None,
    limit: int = 20,
) -> List[Property]:
    return store.query_properties(kind=kind, locality=locality, in_service=in_service, limit=limit)


def get_property_with_rooms(store: DocumentStore, property_id: str) -> PropertyWithRooms:
    """Raises EntityNotFoundError when no property has this id."""
    key = _key_for(property_id)
    prop = store.get(key)
    return PropertyWithRooms(property=prop, rooms=store.rooms_of(key))


def _accepts_none(target: Any, name: str) -> bool:
    hint = get_type_hints(type(target)).get(name)
    return type(None) in get_args(hint)


def _merge_into(target: Any, changes: Dict[str, Any]) -> None:
    for name, value in changes.items():
        current = getattr(target, name)
        if dataclasses.is_dataclass(current):
            # Embedded objects can be patched but never removed
            if isinstance(value, dict):
                _merge_into(current, value)
        elif value is None and not _accepts_none(target, name):
            # null leaves a non-optional field as stored
            continue
        else:
            setattr(target, name, value)


def update_property(store: DocumentStore, property_id: str, changes: Dict[str, Any]) -> PropertyWithRooms:
    """
    Apply a partial update to an existing property and return it with its rooms.

    ``changes`` is a nested mapping of dataclass field names; nested objects
    are merged field by field, so omitted fields keep their stored values.
    """
    key = _key_for(property_id)

    def update(tx) -> Property:
        prop = tx.get(key)
        _merge_into(prop, changes)
        tx.put(key, prop)
        return prop

    prop = store.run_in_transaction(update)
    logger.info("Updated property %s (%s)", property_id, ", ".join(sorted(changes)) or "no fields")
    return PropertyWithRooms(property=prop, rooms=store.rooms_of(key))


def properties_for_geojson(store: DocumentStore, category: str) -> List[Property]:
    """Every stored property in ``category`` ("all" for no filter)."""
    if category not in GEOJSON_CATEGORIES:
        raise ValueError(f"Unknown GeoJSON category '{category}'")
    properties = store.query_properties()
    if category == "all":
        return properties
    wanted = KindCategory(category)
    return [prop for prop in properties if prop.category == wanted]


def build_feature_collection(properties: List[Property]) -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {
                    "type": "Point",
                    "coordinates": [prop.location.geo_coord.lng, prop.location.geo_coord.lat],
                },
                "properties": {"kind": prop.kind, "name": prop.name.ja},
            }
            for prop in properties
        ],
    }


def distinct_kinds_and_localities(store: DocumentStore) -> Dict[str, List[str]]:
    return {
        "kind": store.distinct_values("kind"),
        "locality": store.distinct_values("locality"),
    }
