"""
Mapping of header-keyed vendor rows into typed domain records.

Every function here is pure: it reads string columns from one row and
returns a key plus a domain record. The untyped row mapping never leaves
this module.
"""
import logging
import unicodedata
from datetime import datetime, timedelta, tzinfo
from typing import Dict, Optional, Tuple

from rental_api.domain.models import (
    Contract,
    EntityKey,
    Location,
    Management,
    Name,
    Property,
    Rentable,
    Room,
    Tenant,
    TimePeriod,
    property_key,
    room_key,
    tenant_id,
)

logger = logging.getLogger(__name__)

Row = Dict[str, str]

# Vendor column names
COL_PROPERTY_NO = "物件No"
COL_PROPERTY_NAME = "物件名"
COL_PROPERTY_NAME_KANA = "物件名カナ"
COL_POSTAL_CODE = "郵便番号"
COL_PREFECTURE = "都道府県名"
COL_MUNICIPALITY = "市区町村名"
COL_DISTRICT = "町地域"
COL_BLOCK = "丁目など"
COL_HOUSE_NUMBER = "番地"
COL_PROPERTY_KIND = "物件分類"
COL_MANAGEMENT_START = "業務対象開始"
COL_MANAGEMENT_END = "業務対象終了"
COL_ROOM_NO = "部屋No"
COL_LAYOUT = "間取り"
COL_CONTRACT_STATUS = "契約状況"
COL_CONTRACT_START = "契約始期"
COL_TENANT_NAME = "契約者名(SJIS)"
COL_TENANT_NO = "契約者No"

# Contract status codes
CONTRACTED_STATUSES = frozenset({"契約中", "解約予定", "契約終了"})
STATUS_VACANT = "空　室"  # full-width space
STATUS_CONTRACTED_ELSEWHERE = "契約中(他社)"

MONTH_VALUE_LENGTH = 7  # "YYYY/MM"


def _is_number(char: str) -> bool:
    return unicodedata.category(char).startswith("N")


def concat_address(block: str, house_number: str) -> str:
    """
    Join the block part of an address with the house number.

    A hyphen goes between them only when the block ends with a number and the
    house number starts with one ("1丁目2" stays as is, "3" + "4" is "3-4").
    """
    if block and house_number and _is_number(block[-1]) and _is_number(house_number[0]):
        return f"{block}-{house_number}"
    return block + house_number


def map_property(row: Row) -> Tuple[EntityKey, Property]:
    block = (
        row.get(COL_PREFECTURE, "")
        + row.get(COL_MUNICIPALITY, "")
        + row.get(COL_DISTRICT, "")
        + row.get(COL_BLOCK, "")
    )
    prop = Property(
        name=Name(ja=row.get(COL_PROPERTY_NAME, ""), ja_kata=row.get(COL_PROPERTY_NAME_KANA, "")),
        location=Location(
            postal_code=row.get(COL_POSTAL_CODE, ""),
            address=concat_address(block, row.get(COL_HOUSE_NUMBER, "")),
        ),
        kind=row.get(COL_PROPERTY_KIND, ""),
    )
    return property_key(row.get(COL_PROPERTY_NO, "")), prop


def _parse_month(value: str) -> Optional[Tuple[int, int]]:
    if len(value) != MONTH_VALUE_LENGTH:
        return None
    try:
        year, month = int(value[0:4]), int(value[5:7])
    except ValueError:
        logger.warning("Ignoring unparseable month value %r", value)
        return None
    if not 1 <= month <= 12:
        logger.warning("Ignoring out-of-range month value %r", value)
        return None
    return year, month


def month_start(value: str, tz: tzinfo) -> Optional[datetime]:
    """First instant of a "YYYY/MM" month in ``tz``; None for any other length."""
    parsed = _parse_month(value)
    if parsed is None:
        return None
    year, month = parsed
    return datetime(year, month, 1, tzinfo=tz)


def month_end(value: str, tz: tzinfo) -> Optional[datetime]:
    """Last second of a "YYYY/MM" month in ``tz``; None for any other length."""
    parsed = _parse_month(value)
    if parsed is None:
        return None
    year, month = parsed
    if month == 12:
        year, month = year + 1, 1
    else:
        month += 1
    return datetime(year, month, 1, tzinfo=tz) - timedelta(seconds=1)


def map_management(row: Row, now: datetime, tz: tzinfo) -> Tuple[EntityKey, Management]:
    """
    Build the management window of one property.

    ``now`` is captured once per import so that every row of an upload is
    judged against the same instant.
    """
    management = Management.for_window(
        month_start(row.get(COL_MANAGEMENT_START, ""), tz),
        month_end(row.get(COL_MANAGEMENT_END, ""), tz),
        now,
    )
    return property_key(row.get(COL_PROPERTY_NO, "")), management


def map_room(row: Row) -> Optional[Tuple[EntityKey, Room]]:
    """
    Build a room from one row, or None for summary rows without a unit number.

    The contract status decides which of contract / rentable / reason is set.
    Unknown statuses leave all three empty and are reported as a warning.
    """
    room_no = row.get(COL_ROOM_NO, "")
    if room_no == "":
        return None

    room = Room(layout=row.get(COL_LAYOUT, ""))
    status = row.get(COL_CONTRACT_STATUS, "")

    if status in CONTRACTED_STATUSES:
        # Suspected source defect: both ends read 契約始期. Kept until the
        # intended end-date column is confirmed.
        contract_start = row.get(COL_CONTRACT_START, "")
        room.contract = Contract(
            period=TimePeriod(from_=contract_start, to=contract_start),
            tenant=Tenant(
                id=tenant_id(row.get(COL_TENANT_NO, "")),
                name=row.get(COL_TENANT_NAME, ""),
            ),
        )
    elif status == STATUS_VACANT:
        room.rentable = Rentable(rentable=True)
    elif status == STATUS_CONTRACTED_ELSEWHERE:
        room.rentable = Rentable(reason=STATUS_CONTRACTED_ELSEWHERE)
    else:
        logger.warning(
            "Unknown contract status %r for room %s of property %s",
            status,
            room_no,
            row.get(COL_PROPERTY_NO, ""),
        )

    return room_key(row.get(COL_PROPERTY_NO, ""), room_no), room
