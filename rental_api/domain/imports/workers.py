import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional


class BoundedExecutor:
    """
    Thread pool whose ``submit`` blocks once ``max_workers`` tasks are in flight.

    The producer of work is blocked rather than queueing unbounded futures.
    Finished futures are not retained: each task's result is passed to its
    ``on_result`` callback as soon as it completes. ``join`` waits for every
    submitted task and re-raises the first exception a task let escape.
    """

    def __init__(self, max_workers: int, thread_name_prefix: str = "import-write"):
        self.max_workers = max(1, max_workers)
        self._slots = threading.BoundedSemaphore(self.max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix=thread_name_prefix,
        )
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None
        self.completed = 0

    def submit(
        self,
        fn: Callable[..., Any],
        *args: Any,
        on_result: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self._slots.acquire()
        try:
            future = self._executor.submit(fn, *args)
        except BaseException:
            self._slots.release()
            raise
        future.add_done_callback(lambda f: self._finished(f, on_result))

    def _finished(self, future: Future, on_result: Optional[Callable[[Any], None]]) -> None:
        # Callbacks run one at a time under the lock
        try:
            error = future.exception()
            with self._lock:
                self.completed += 1
                if error is None and on_result is not None:
                    try:
                        on_result(future.result())
                    except Exception as exc:
                        error = exc
                if error is not None and self._error is None:
                    self._error = error
        finally:
            self._slots.release()

    def join(self) -> None:
        """Wait for all submitted tasks; re-raises the first error a task or its callback raised."""
        self._executor.shutdown(wait=True)
        if self._error is not None:
            raise self._error

    def __enter__(self) -> "BoundedExecutor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Already-dispatched writes still finish when the consumer aborts
        self._executor.shutdown(wait=True)
