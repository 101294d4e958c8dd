"""
Batched bulk writes of imported entities.

Entities are grouped into fixed-size batches; each full batch is written by
a worker thread while the caller keeps consuming rows. A failed batch is
logged and reported but never stops the other batches.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from rental_api.db.store import DocumentStore, Entity
from rental_api.domain.imports.workers import BoundedExecutor
from rental_api.domain.models import EntityKey

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200


@dataclass
class BatchResult:
    batch_number: int
    size: int
    success: bool
    error: Optional[str] = None
    # Distinct keys stored; lower than size when the batch repeats a key
    written: int = 0


def _put_batch(
    store: DocumentStore,
    batch_number: int,
    keys: List[EntityKey],
    entities: List[Entity],
) -> BatchResult:
    try:
        written = store.put_multi(keys, entities)
    except Exception as exc:
        # Failure is confined to this batch
        logger.error("Batch %d (%d records) failed: %s", batch_number, len(keys), exc)
        return BatchResult(batch_number=batch_number, size=len(keys), success=False, error=str(exc))
    logger.info("%d OK", len(keys))
    return BatchResult(batch_number=batch_number, size=len(keys), success=True, written=written)


def write_in_batches(
    store: DocumentStore,
    entries: Iterable[Tuple[EntityKey, Entity]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_workers: int = 8,
) -> List[BatchResult]:
    """
    Write ``(key, entity)`` pairs in bulk puts of ``batch_size``.

    Full batches are dispatched as soon as they fill up; the remainder is
    dispatched when ``entries`` is exhausted. Returns once every dispatched
    batch has finished, with one result per batch in dispatch order.

    Args:
        store: Target document store.
        entries: Pairs to write, typically a generator over decoded rows.
        batch_size: Entities per bulk put.
        max_workers: Upper bound on batches being written at the same time.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")

    keys: List[EntityKey] = []
    entities: List[Entity] = []
    results: List[BatchResult] = []
    batch_number = 0

    with BoundedExecutor(max_workers, thread_name_prefix="batch-put") as executor:
        for key, entity in entries:
            keys.append(key)
            entities.append(entity)
            if len(keys) == batch_size:
                batch_number += 1
                executor.submit(_put_batch, store, batch_number, keys, entities, on_result=results.append)
                keys, entities = [], []

        if keys:
            batch_number += 1
            executor.submit(_put_batch, store, batch_number, keys, entities, on_result=results.append)

        executor.join()

    return sorted(results, key=lambda result: result.batch_number)
