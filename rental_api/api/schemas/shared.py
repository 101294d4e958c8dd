"""
Request and response models for the HTTP API.

JSON keys follow the persisted field names (``nameOrId``, ``postalCode``,
``geoCoord``...), so models declare camelCase aliases while Python code
uses snake_case attribute names.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from rental_api.domain.imports.orchestrator import ImportSummary
from rental_api.domain.models import Contract, Property, Room
from rental_api.domain.queries.properties import PropertyWithRooms


class _AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NameModel(_AliasedModel):
    ja: str = ""
    ja_kata: str = ""


class GeoCoordModel(_AliasedModel):
    lat: float = 0.0
    lng: float = 0.0


class LocationModel(_AliasedModel):
    address: str = ""
    postal_code: str = Field("", alias="postalCode")
    geo_coord: GeoCoordModel = Field(default_factory=GeoCoordModel, alias="geoCoord")
    locality: str = ""


class ManagementModel(_AliasedModel):
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    in_service: bool = Field(False, alias="inService")


class PropertyModel(_AliasedModel):
    name_or_id: Optional[str] = Field(None, alias="nameOrId")
    name: NameModel
    location: LocationModel
    kind: str
    category: str
    management: ManagementModel

    @classmethod
    def from_domain(cls, prop: Property) -> "PropertyModel":
        return cls(
            name_or_id=prop.key_name,
            name=NameModel(ja=prop.name.ja, ja_kata=prop.name.ja_kata),
            location=LocationModel(
                address=prop.location.address,
                postal_code=prop.location.postal_code,
                geo_coord=GeoCoordModel(
                    lat=prop.location.geo_coord.lat,
                    lng=prop.location.geo_coord.lng,
                ),
                locality=prop.location.locality,
            ),
            kind=prop.kind,
            category=prop.category.value,
            management=ManagementModel(
                start_date=prop.management.start_date,
                end_date=prop.management.end_date,
                in_service=prop.management.in_service,
            ),
        )


class PeriodModel(_AliasedModel):
    from_: str = Field("", alias="from")
    to: str = ""


class TenantModel(_AliasedModel):
    id: str = ""
    name: str = ""


class ContractModel(_AliasedModel):
    period: PeriodModel
    tenant: TenantModel

    @classmethod
    def from_domain(cls, contract: Contract) -> "ContractModel":
        return cls(
            period=PeriodModel(from_=contract.period.from_, to=contract.period.to),
            tenant=TenantModel(id=contract.tenant.id, name=contract.tenant.name),
        )


class RentableModel(_AliasedModel):
    rentable: bool = False
    reason: str = ""


class RoomModel(_AliasedModel):
    name_or_id: Optional[str] = Field(None, alias="nameOrId")
    layout: str
    contract: Optional[ContractModel] = None
    rentable: RentableModel

    @classmethod
    def from_domain(cls, room: Room) -> "RoomModel":
        return cls(
            name_or_id=room.key_name,
            layout=room.layout,
            contract=ContractModel.from_domain(room.contract) if room.contract else None,
            rentable=RentableModel(rentable=room.rentable.rentable, reason=room.rentable.reason),
        )


class PropertyWithRoomsModel(PropertyModel):
    rooms: List[RoomModel] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PropertyWithRooms) -> "PropertyWithRoomsModel":
        base = PropertyModel.from_domain(result.property)
        return cls(
            **base.model_dump(),
            rooms=[RoomModel.from_domain(room) for room in result.rooms],
        )


class NameUpdate(_AliasedModel):
    ja: Optional[str] = None
    ja_kata: Optional[str] = None


class GeoCoordUpdate(_AliasedModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class LocationUpdate(_AliasedModel):
    address: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postalCode")
    geo_coord: Optional[GeoCoordUpdate] = Field(None, alias="geoCoord")
    locality: Optional[str] = None


class ManagementUpdate(_AliasedModel):
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    in_service: Optional[bool] = Field(None, alias="inService")


class PropertyUpdate(_AliasedModel):
    """Body of ``PUT /api/property/{id}``; only the fields sent are changed."""
    name: Optional[NameUpdate] = None
    location: Optional[LocationUpdate] = None
    kind: Optional[str] = None
    management: Optional[ManagementUpdate] = None


class GeoJSONGeometry(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]


class GeoJSONProperties(BaseModel):
    kind: str
    name: str


class GeoJSONFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONGeometry
    properties: GeoJSONProperties


class GeoJSONFeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[GeoJSONFeature] = Field(default_factory=list)


class DistinctResponse(BaseModel):
    kind: List[str]
    locality: List[str]


class BatchResultModel(BaseModel):
    batch_number: int
    size: int
    success: bool
    error: Optional[str] = None
    written: int = 0


class RowFailureModel(BaseModel):
    key: str
    error: str


class ImportSummaryResponse(BaseModel):
    """Outcome of one import request, including partial failures."""
    success: bool
    import_type: str
    rows_read: int
    rows_skipped: int
    records_written: int
    records_failed: int
    batches: List[BatchResultModel] = Field(default_factory=list)
    failures: List[RowFailureModel] = Field(default_factory=list)
    rows_remaining: int = 0
    next_offset: Optional[int] = None

    @classmethod
    def from_summary(cls, summary: ImportSummary) -> "ImportSummaryResponse":
        return cls(
            success=summary.records_failed == 0,
            import_type=summary.import_type,
            rows_read=summary.rows_read,
            rows_skipped=summary.rows_skipped,
            records_written=summary.records_written,
            records_failed=summary.records_failed,
            batches=[
                BatchResultModel(
                    batch_number=batch.batch_number,
                    size=batch.size,
                    success=batch.success,
                    error=batch.error,
                    written=batch.written,
                )
                for batch in summary.batches
            ],
            failures=[RowFailureModel(key=f.key, error=f.error) for f in summary.failures],
            rows_remaining=summary.rows_remaining,
            next_offset=summary.next_offset,
        )
