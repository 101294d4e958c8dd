"""
Read-modify-write updates of existing entities, one transaction per row.

Used for data that must be merged into a record created by an earlier
import (management windows into properties). Each row runs in its own
transaction on a worker thread; a failing row is logged and reported
without affecting the others.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Tuple

from rental_api.db.store import DocumentStore, Entity, Transaction
from rental_api.domain.imports.workers import BoundedExecutor
from rental_api.domain.models import EntityKey

logger = logging.getLogger(__name__)

FAILURE_SAMPLE_LIMIT = 100

Apply = Callable[[Entity, Any], None]


@dataclass
class RowFailure:
    key: str
    error: str


@dataclass
class MergeResult:
    succeeded: int = 0
    failed: int = 0
    failures: List[RowFailure] = field(default_factory=list)


def _merge_one(store: DocumentStore, key: EntityKey, value: Any, apply: Apply) -> Optional[RowFailure]:
    def update(tx: Transaction) -> None:
        entity = tx.get(key)
        apply(entity, value)
        tx.put(key, entity)

    try:
        store.run_in_transaction(update)
    except Exception as exc:
        logger.error("Merge into %s failed: %s", key, exc)
        return RowFailure(key=key.name, error=str(exc))
    return None


def merge_updates(
    store: DocumentStore,
    updates: Iterable[Tuple[EntityKey, Any]],
    apply: Apply,
    *,
    max_workers: int = 8,
) -> MergeResult:
    """
    Merge each ``(key, value)`` into the stored entity under ``key``.

    ``apply(entity, value)`` mutates the loaded entity before it is written
    back. The target must already exist; a missing entity fails that row
    only. Returns after every row's transaction has finished.
    """
    result = MergeResult()

    def record(failure: Optional[RowFailure]) -> None:
        if failure is None:
            result.succeeded += 1
            return
        result.failed += 1
        if len(result.failures) < FAILURE_SAMPLE_LIMIT:
            result.failures.append(failure)

    with BoundedExecutor(max_workers, thread_name_prefix="merge-tx") as executor:
        for key, value in updates:
            executor.submit(_merge_one, store, key, value, apply, on_result=record)
        executor.join()

    return result
