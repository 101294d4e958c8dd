"""
Domain records for rental properties and their rooms.

A ``Property`` is the root entity. ``Management`` and ``Location`` are
embedded in it, while ``Room`` entities live under the property's key.
Keys are named (never auto-generated) so that re-importing a vendor export
overwrites the previous records instead of appending new ones.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

PROPERTY_KIND = "Property"
ROOM_KIND = "Room"

PROPERTY_KEY_PREFIX = "ck-"
TENANT_ID_PREFIX = "ck-tenant-"


@dataclass(frozen=True)
class EntityKey:
    """Named key of a stored entity, optionally scoped under a parent key."""
    kind: str
    name: str
    parent: Optional["EntityKey"] = None

    def __post_init__(self):
        if self.kind == ROOM_KIND and (self.parent is None or self.parent.kind != PROPERTY_KIND):
            raise ValueError("Room keys must be scoped under a Property key")

    def __str__(self) -> str:
        if self.parent is not None:
            return f"{self.parent}/{self.kind}:{self.name}"
        return f"{self.kind}:{self.name}"


def property_key(property_no: str) -> EntityKey:
    return EntityKey(PROPERTY_KIND, f"{PROPERTY_KEY_PREFIX}{property_no}")


def room_key(property_no: str, room_no: str) -> EntityKey:
    return EntityKey(ROOM_KIND, room_no, parent=property_key(property_no))


def tenant_id(tenant_no: str) -> str:
    return f"{TENANT_ID_PREFIX}{tenant_no}"


class KindCategory(str, Enum):
    RESIDENCE = "residence"
    PARKING = "parking"
    BUSINESS = "business"
    OTHER = "other"


KIND_CATEGORIES: Dict[str, KindCategory] = {
    "一戸建て": KindCategory.RESIDENCE,
    "アパート": KindCategory.RESIDENCE,
    "マンション": KindCategory.RESIDENCE,
    "共同住宅": KindCategory.RESIDENCE,
    "テラスハウス": KindCategory.RESIDENCE,
    "駐車場": KindCategory.PARKING,
    "駐輪場": KindCategory.PARKING,
    "店舗": KindCategory.BUSINESS,
    "住宅付店舗": KindCategory.BUSINESS,
    "事務所": KindCategory.BUSINESS,
    "倉庫": KindCategory.BUSINESS,
    "ビル": KindCategory.BUSINESS,
    "貸地": KindCategory.BUSINESS,
}


def category_for_kind(kind: Optional[str]) -> KindCategory:
    """Classify a free-text property kind; unknown kinds fall into OTHER."""
    return KIND_CATEGORIES.get(kind or "", KindCategory.OTHER)


@dataclass
class Name:
    ja: str = ""
    ja_kata: str = ""


@dataclass
class GeoCoord:
    lat: float = 0.0
    lng: float = 0.0


@dataclass
class Location:
    address: str = ""
    postal_code: str = ""
    # Derived from the address (geocoding), never set by the imports
    geo_coord: GeoCoord = field(default_factory=GeoCoord)
    locality: str = ""


@dataclass
class Management:
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    in_service: bool = False

    @classmethod
    def for_window(
        cls,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        now: datetime,
    ) -> "Management":
        """Build a management window with ``in_service`` evaluated against ``now``."""
        started = start_date is not None and start_date <= now
        ended = end_date is not None and end_date <= now
        return cls(start_date=start_date, end_date=end_date, in_service=started and not ended)


@dataclass
class Property:
    name: Name = field(default_factory=Name)
    location: Location = field(default_factory=Location)
    kind: str = ""
    management: Management = field(default_factory=Management)
    key_name: Optional[str] = None

    @property
    def category(self) -> KindCategory:
        return category_for_kind(self.kind)


@dataclass
class TimePeriod:
    # Opaque vendor date strings, never parsed
    from_: str = ""
    to: str = ""


@dataclass
class Tenant:
    id: str = ""
    name: str = ""


@dataclass
class Contract:
    period: TimePeriod = field(default_factory=TimePeriod)
    tenant: Tenant = field(default_factory=Tenant)


@dataclass
class Rentable:
    rentable: bool = False
    reason: str = ""


@dataclass
class Room:
    layout: str = ""
    contract: Optional[Contract] = None
    rentable: Rentable = field(default_factory=Rentable)
    key_name: Optional[str] = None
