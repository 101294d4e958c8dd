"""
Vendor CSV import endpoints.

Each endpoint takes a multipart upload in the ``file`` field and returns an
import summary. Per-batch and per-row failures are reported in the summary
with a 200 status; an unreadable upload is rejected with 400.
"""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from rental_api.api.dependencies import get_app_settings, get_store
from rental_api.api.schemas.shared import ImportSummaryResponse
from rental_api.core.config import Settings
from rental_api.db.store import DocumentStore
from rental_api.domain.errors import SourceDecodeError
from rental_api.domain.imports.orchestrator import (
    import_managements,
    import_properties,
    import_rooms,
)

router = APIRouter(prefix="/api/import", tags=["imports"])

logger = logging.getLogger(__name__)


def _rejected(file: UploadFile, exc: SourceDecodeError) -> HTTPException:
    logger.warning("Rejected upload '%s': %s", file.filename, exc)
    return HTTPException(status_code=400, detail=str(exc))


@router.post("/ck-properties", response_model=ImportSummaryResponse)
def import_ck_properties(
    file: UploadFile = File(...),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Create or overwrite Property records from a vendor property export.

    Rows are written in bulk puts of ``import_batch_size``; a failed batch
    is listed in ``batches`` and does not stop the others.
    """
    logger.info("Received ck-properties upload '%s'", file.filename)
    try:
        summary = import_properties(file.file, store, settings)
    except SourceDecodeError as exc:
        raise _rejected(file, exc)
    return ImportSummaryResponse.from_summary(summary)


@router.post("/ck-property-managements", response_model=ImportSummaryResponse)
def import_ck_property_managements(
    file: UploadFile = File(...),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Merge management windows into existing Property records.

    Each row is its own transaction; rows whose property does not exist are
    listed in ``failures``.
    """
    logger.info("Received ck-property-managements upload '%s'", file.filename)
    try:
        summary = import_managements(file.file, store, settings)
    except SourceDecodeError as exc:
        raise _rejected(file, exc)
    return ImportSummaryResponse.from_summary(summary)


@router.post("/ck-rooms", response_model=ImportSummaryResponse)
def import_ck_rooms(
    file: UploadFile = File(...),
    offset: int = Query(0, ge=0, description="Number of valid room rows to skip (from a previous next_offset)"),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Create or overwrite one page of Room records.

    At most ``rooms_import_page_size`` rooms are written per request. When
    the file holds more, the response carries ``next_offset``; upload the
    same file again with ``?offset=<next_offset>`` for the next page.
    """
    logger.info("Received ck-rooms upload '%s' (offset=%d)", file.filename, offset)
    try:
        summary = import_rooms(file.file, store, settings, offset=offset)
    except SourceDecodeError as exc:
        raise _rejected(file, exc)
    return ImportSummaryResponse.from_summary(summary)
