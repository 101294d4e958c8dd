"""
The three vendor imports: properties, management windows and rooms.

Each run decodes the upload on a background thread, maps rows as they
arrive and hands them to the matching write path. Failures of one batch or
row are counted in the returned summary; a decode failure aborts the run by
raising SourceDecodeError.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from rental_api.core.config import Settings
from rental_api.db.store import DocumentStore
from rental_api.domain.imports.batch_writer import BatchResult, write_in_batches
from rental_api.domain.imports.mapper import map_management, map_property, map_room
from rental_api.domain.imports.merge_updater import RowFailure, merge_updates
from rental_api.domain.imports.reader import read_encoded_rows
from rental_api.domain.models import EntityKey, Management, Property, Room

logger = logging.getLogger(__name__)

IMPORT_PROPERTIES = "ck-properties"
IMPORT_MANAGEMENTS = "ck-property-managements"
IMPORT_ROOMS = "ck-rooms"


@dataclass
class ImportSummary:
    import_type: str
    rows_read: int = 0
    rows_skipped: int = 0
    records_written: int = 0
    records_failed: int = 0
    batches: List[BatchResult] = field(default_factory=list)
    failures: List[RowFailure] = field(default_factory=list)
    rows_remaining: int = 0
    next_offset: Optional[int] = None

    def add_batches(self, results: List[BatchResult]) -> None:
        self.batches.extend(results)
        for result in results:
            if result.success:
                self.records_written += result.written
            else:
                self.records_failed += result.size


def _log_summary(summary: ImportSummary) -> None:
    logger.info(
        "Import %s finished: rows=%d skipped=%d written=%d failed=%d",
        summary.import_type,
        summary.rows_read,
        summary.rows_skipped,
        summary.records_written,
        summary.records_failed,
    )


def import_properties(stream: BinaryIO, store: DocumentStore, settings: Settings) -> ImportSummary:
    """Create or overwrite one Property per row, in bulk puts."""
    summary = ImportSummary(import_type=IMPORT_PROPERTIES)
    logger.info("Starting %s import", IMPORT_PROPERTIES)

    with read_encoded_rows(stream, settings.source_encoding) as rows:

        def entries() -> Iterator[Tuple[EntityKey, Property]]:
            for row in rows:
                summary.rows_read += 1
                yield map_property(row)

        summary.add_batches(
            write_in_batches(
                store,
                entries(),
                batch_size=settings.import_batch_size,
                max_workers=settings.import_max_concurrent_writes,
            )
        )

    _log_summary(summary)
    return summary


def _set_management(prop: Property, management: Management) -> None:
    prop.management = management


def import_managements(
    stream: BinaryIO,
    store: DocumentStore,
    settings: Settings,
    now: Optional[datetime] = None,
) -> ImportSummary:
    """Merge each row's management window into its existing Property."""
    tz = ZoneInfo(settings.source_timezone)
    now = now or datetime.now(tz)
    summary = ImportSummary(import_type=IMPORT_MANAGEMENTS)
    logger.info("Starting %s import (now=%s)", IMPORT_MANAGEMENTS, now.isoformat())

    with read_encoded_rows(stream, settings.source_encoding) as rows:

        def updates() -> Iterator[Tuple[EntityKey, Management]]:
            for row in rows:
                summary.rows_read += 1
                yield map_management(row, now, tz)

        result = merge_updates(
            store,
            updates(),
            _set_management,
            max_workers=settings.import_max_concurrent_writes,
        )

    summary.records_written = result.succeeded
    summary.records_failed = result.failed
    summary.failures = result.failures
    _log_summary(summary)
    return summary


def import_rooms(
    stream: BinaryIO,
    store: DocumentStore,
    settings: Settings,
    offset: int = 0,
) -> ImportSummary:
    """
    Create or overwrite one page of Rooms.

    Summary rows (no unit number) are dropped. Of the remaining rows, the
    first ``offset`` are skipped and the next ``rooms_import_page_size`` are
    written. The rest of the file is still read so that the summary can
    report how many rooms are left and the offset of the next page.
    """
    if offset < 0:
        raise ValueError("offset must not be negative")

    page_size = settings.rooms_import_page_size
    page_end = offset + page_size
    summary = ImportSummary(import_type=IMPORT_ROOMS)
    valid_rows = 0
    logger.info("Starting %s import (offset=%d, page size=%d)", IMPORT_ROOMS, offset, page_size)

    with read_encoded_rows(stream, settings.source_encoding) as rows:

        def entries() -> Iterator[Tuple[EntityKey, Room]]:
            nonlocal valid_rows
            for row in rows:
                summary.rows_read += 1
                mapped = map_room(row)
                if mapped is None:
                    summary.rows_skipped += 1
                    continue
                valid_rows += 1
                if offset < valid_rows <= page_end:
                    yield mapped

        summary.add_batches(
            write_in_batches(
                store,
                entries(),
                batch_size=settings.import_batch_size,
                max_workers=settings.import_max_concurrent_writes,
            )
        )

    if valid_rows > page_end:
        summary.rows_remaining = valid_rows - page_end
        summary.next_offset = page_end
        logger.info(
            "%s import stopped at page end; %d rooms remain from offset %d",
            IMPORT_ROOMS,
            summary.rows_remaining,
            page_end,
        )

    _log_summary(summary)
    return summary
