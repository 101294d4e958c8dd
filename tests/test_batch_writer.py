import threading
import time

import pytest

from rental_api.domain.imports.batch_writer import write_in_batches
from rental_api.domain.models import Property, property_key


class RecordingStore:
    """Stand-in store that records each bulk put and can fail chosen keys."""

    def __init__(self, failing_keys=(), delay=0.0):
        self.failing_keys = set(failing_keys)
        self.delay = delay
        self.batches = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def put_multi(self, keys, entities):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(self.delay)
            if any(key.name in self.failing_keys for key in keys):
                raise ValueError("invalid key in batch")
            with self._lock:
                self.batches.append([key.name for key in keys])
            return len(set(keys))
        finally:
            with self._lock:
                self.in_flight -= 1


def _entries(count):
    for n in range(count):
        yield property_key(str(n)), Property(kind="マンション")


def test_401_rows_make_three_batches():
    store = RecordingStore()

    results = write_in_batches(store, _entries(401), batch_size=200, max_workers=4)

    assert [r.size for r in results] == [200, 200, 1]
    assert [r.batch_number for r in results] == [1, 2, 3]
    assert all(r.success for r in results)
    assert sorted(len(batch) for batch in store.batches) == [1, 200, 200]


def test_exact_multiple_has_no_empty_trailing_batch():
    store = RecordingStore()
    results = write_in_batches(store, _entries(400), batch_size=200)
    assert [r.size for r in results] == [200, 200]


def test_no_rows_no_batches():
    store = RecordingStore()
    assert write_in_batches(store, _entries(0)) == []
    assert store.batches == []


def test_failed_batch_does_not_stop_siblings():
    store = RecordingStore(failing_keys={"ck-250"})

    results = write_in_batches(store, _entries(450), batch_size=200, max_workers=2)

    assert [r.success for r in results] == [True, False, True]
    assert results[1].size == 200
    assert "invalid key" in results[1].error
    written = {name for batch in store.batches for name in batch}
    assert len(written) == 250
    assert "ck-0" in written and "ck-449" in written
    assert "ck-250" not in written


def test_all_batches_finish_before_returning():
    store = RecordingStore(delay=0.05)
    results = write_in_batches(store, _entries(50), batch_size=10, max_workers=3)
    assert len(results) == 5
    assert len(store.batches) == 5
    assert store.in_flight == 0


def test_concurrent_batches_are_bounded_by_max_workers():
    store = RecordingStore(delay=0.02)
    write_in_batches(store, _entries(100), batch_size=5, max_workers=3)
    assert 1 <= store.max_in_flight <= 3


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        write_in_batches(RecordingStore(), _entries(1), batch_size=0)


def test_written_counts_distinct_keys():
    store = RecordingStore()
    entries = [(property_key("1"), Property()), (property_key("2"), Property()), (property_key("1"), Property())]

    results = write_in_batches(store, entries, batch_size=200)

    assert results[0].size == 3
    assert results[0].written == 2


def test_failed_batch_writes_nothing():
    store = RecordingStore(failing_keys={"ck-3"})
    results = write_in_batches(store, _entries(5), batch_size=5)
    assert results[0].written == 0
