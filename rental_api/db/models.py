"""
Table definitions backing the Property/Room document store.

Embedded sub-objects (name, location, management, contract, rentable) are
flattened into prefixed columns. Rooms are keyed by their parent property
key plus the vendor unit number.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, String, Text

from rental_api.db.session import Base


class PropertyRow(Base):
    __tablename__ = "properties"

    key = Column(String(255), primary_key=True)
    name_ja = Column(Text, nullable=False, default="")
    name_ja_kata = Column(Text, nullable=False, default="")
    location_address = Column(Text, nullable=False, default="")
    location_postal_code = Column(String(16), nullable=False, default="")
    location_lat = Column(Float, nullable=False, default=0.0)
    location_lng = Column(Float, nullable=False, default=0.0)
    location_locality = Column(String(255), nullable=False, default="", index=True)
    kind = Column(String(255), nullable=False, default="", index=True)
    management_start_date = Column(DateTime(timezone=True), nullable=True)
    management_end_date = Column(DateTime(timezone=True), nullable=True)
    management_in_service = Column(Boolean, nullable=False, default=False, index=True)


class RoomRow(Base):
    __tablename__ = "rooms"

    # No FK constraint: rooms may be imported before their property exists
    property_key = Column(String(255), primary_key=True)
    room_no = Column(String(255), primary_key=True)
    layout = Column(Text, nullable=False, default="")
    contract_period_from = Column(String(64), nullable=True)
    contract_period_to = Column(String(64), nullable=True)
    contract_tenant_id = Column(String(255), nullable=True)
    contract_tenant_name = Column(Text, nullable=True)
    rentable = Column(Boolean, nullable=False, default=False)
    rentable_reason = Column(Text, nullable=False, default="")
