"""
Property read/query endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from rental_api.api.dependencies import get_app_settings, get_store
from rental_api.api.schemas.shared import (
    DistinctResponse,
    GeoJSONFeatureCollection,
    PropertyModel,
    PropertyUpdate,
    PropertyWithRoomsModel,
)
from rental_api.core.config import Settings
from rental_api.db.store import DocumentStore
from rental_api.domain.errors import EntityNotFoundError
from rental_api.domain.queries.properties import (
    GEOJSON_CATEGORIES,
    build_feature_collection,
    distinct_kinds_and_localities,
    get_property_with_rooms,
    parse_in_service,
    properties_for_geojson,
    search_properties,
    update_property,
)

router = APIRouter(prefix="/api/property", tags=["properties"])

GEOJSON_MEDIA_TYPE = "application/geo+json; charset=UTF-8"


@router.get("/search", response_model=List[PropertyModel])
def search(
    kind: Optional[str] = Query(None),
    locality: Optional[str] = Query(None),
    in_service: Optional[str] = Query(None, alias="inService"),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """Properties matching every given filter, at most ``property_search_limit``."""
    properties = search_properties(
        store,
        kind=kind,
        locality=locality,
        in_service=parse_in_service(in_service),
        limit=settings.property_search_limit,
    )
    return [PropertyModel.from_domain(prop) for prop in properties]


@router.get("/distinct", response_model=DistinctResponse)
def distinct(store: DocumentStore = Depends(get_store)):
    """Distinct property kinds and localities currently stored."""
    return DistinctResponse(**distinct_kinds_and_localities(store))


@router.get("/{category}.geojson")
def geojson(category: str, store: DocumentStore = Depends(get_store)):
    """Stored properties of one category as a GeoJSON FeatureCollection."""
    if category not in GEOJSON_CATEGORIES:
        raise HTTPException(status_code=404, detail=f"Unknown category '{category}'")
    collection = GeoJSONFeatureCollection(
        **build_feature_collection(properties_for_geojson(store, category))
    )
    return JSONResponse(content=collection.model_dump(), media_type=GEOJSON_MEDIA_TYPE)


@router.get("/{property_id}", response_model=PropertyWithRoomsModel)
def get_property(property_id: str, store: DocumentStore = Depends(get_store)):
    """One property with all of its rooms."""
    try:
        result = get_property_with_rooms(store, property_id)
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail=f"Property '{property_id}' not found")
    return PropertyWithRoomsModel.from_result(result)


@router.put("/{property_id}", response_model=PropertyWithRoomsModel)
def put_property(
    property_id: str,
    body: PropertyUpdate,
    store: DocumentStore = Depends(get_store),
):
    """
    Update the mutable fields of an existing property.

    Only fields present in the body change; nested objects are merged
    field by field.
    """
    try:
        result = update_property(store, property_id, body.model_dump(exclude_unset=True))
    except EntityNotFoundError:
        raise HTTPException(status_code=404, detail=f"Property '{property_id}' not found")
    return PropertyWithRoomsModel.from_result(result)
