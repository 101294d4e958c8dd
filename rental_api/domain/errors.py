"""
Exceptions raised by the import pipeline and the document store.

Failures inside one unit of concurrent work (a batch, a row) are caught and
counted by the workers; only the exceptions below ever reach a handler.
"""
from typing import Optional


class RentalImportError(Exception):
    """Base class for errors surfaced to the HTTP layer."""


class SourceDecodeError(RentalImportError):
    """The uploaded file could not be read, decoded or parsed as CSV."""

    def __init__(self, message: str, row_number: Optional[int] = None):
        self.row_number = row_number
        if row_number is not None:
            message = f"{message} (after row {row_number})"
        super().__init__(message)


class StoreUnavailableError(RentalImportError):
    """The document store backend cannot be reached."""


class EntityNotFoundError(RentalImportError):
    """A keyed lookup found no entity."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"No such entity: {key}")
