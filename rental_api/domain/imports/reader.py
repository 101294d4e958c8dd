"""
Streaming reader for vendor CSV exports.

Vendor files arrive in a legacy Japanese encoding. Bytes are decoded
incrementally and parsed row by row, so memory stays bounded by a single
row regardless of file size. ``read_encoded_rows`` runs the decoder on a
background thread and hands rows to the consumer one at a time.
"""
import codecs
import csv
import logging
import queue
import threading
from contextlib import closing, contextmanager
from typing import BinaryIO, Dict, Iterator, List, Optional

from rental_api.domain.errors import SourceDecodeError

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()
_PUT_POLL_SECONDS = 0.1


def _is_blank(row: List[str]) -> bool:
    return not row or all(not value.strip() for value in row)


def iter_encoded_rows(stream: BinaryIO, encoding: str) -> Iterator[Dict[str, str]]:
    """
    Decode ``stream`` and yield one header-keyed mapping per data row.

    The first row is the header; its column order is the key order of every
    yielded mapping. Blank rows are skipped.

    Args:
        stream: Binary file-like object positioned at the start of the CSV.
        encoding: Python codec name of the source (e.g. "cp932").

    Raises:
        SourceDecodeError: On undecodable bytes, malformed CSV or a row whose
            field count differs from the header.
    """
    try:
        text_stream = codecs.getreader(encoding)(stream, errors="strict")
    except LookupError as exc:
        raise SourceDecodeError(f"Unknown source encoding '{encoding}'") from exc

    reader = csv.reader(text_stream)
    row_number = 0
    try:
        header = next(reader, None)
        if header is None:
            return
        row_number = 1
        for row in reader:
            row_number += 1
            if _is_blank(row):
                continue
            if len(row) != len(header):
                raise SourceDecodeError(
                    f"Row {row_number} has {len(row)} fields, header has {len(header)}"
                )
            yield dict(zip(header, row))
    except UnicodeDecodeError as exc:
        raise SourceDecodeError(f"Could not decode upload as {encoding}: {exc.reason}", row_number) from exc
    except csv.Error as exc:
        raise SourceDecodeError(f"Malformed CSV: {exc}", row_number) from exc


class RowHandoff:
    """
    Producer side of the decode thread plus the consumer iterator.

    The queue holds at most one row, so the decoder waits for the consumer
    and the consumer waits for the decoder. The producer always closes the
    source stream and always publishes the end marker exactly once.
    """

    def __init__(self, stream: BinaryIO, encoding: str):
        self._stream = stream
        self._encoding = encoding
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=1)
        self._abandoned = threading.Event()
        self._error: Optional[BaseException] = None
        self.rows_emitted = 0
        self._thread = threading.Thread(target=self._produce, name="csv-decode", daemon=True)

    def start(self) -> "RowHandoff":
        self._thread.start()
        return self

    def _offer(self, item: object) -> bool:
        while not self._abandoned.is_set():
            try:
                self._queue.put(item, timeout=_PUT_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def _produce(self) -> None:
        try:
            with closing(self._stream):
                for row in iter_encoded_rows(self._stream, self._encoding):
                    if not self._offer(row):
                        logger.info("Consumer stopped early after %d rows", self.rows_emitted)
                        return
                    self.rows_emitted += 1
            logger.info("Decoded %d rows", self.rows_emitted)
        except Exception as exc:
            # Handed to the consumer thread, which raises it
            logger.error("Decoding stopped after %d rows: %s", self.rows_emitted, exc)
            self._error = exc
        finally:
            self._offer(_END_OF_STREAM)

    def __iter__(self) -> Iterator[Dict[str, str]]:
        while True:
            item = self._queue.get()
            if item is _END_OF_STREAM:
                break
            yield item
        self._thread.join()
        if self._error is not None:
            if isinstance(self._error, SourceDecodeError):
                raise self._error
            raise SourceDecodeError(f"Could not read upload: {self._error}") from self._error

    def abandon(self) -> None:
        """Release the producer if the consumer stops before the end marker."""
        self._abandoned.set()
        self._thread.join()


@contextmanager
def read_encoded_rows(stream: BinaryIO, encoding: str) -> Iterator[RowHandoff]:
    """
    Start decoding ``stream`` on a background thread and yield the row iterator.

    Leaving the block, normally or by exception, stops the decoder and waits
    for it, so the source stream is closed on every path.
    """
    handoff = RowHandoff(stream, encoding).start()
    try:
        yield handoff
    finally:
        handoff.abandon()
