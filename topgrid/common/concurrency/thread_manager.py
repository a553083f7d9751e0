from __future__ import annotations

import logging
import os
import time
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")

log = logging.getLogger(__name__)


class DeadlineExceeded(TimeoutError):
    """Raised by ThreadManager.map when the batch does not finish before its deadline."""

    def __init__(self, name: str, pending: int, timeout: float) -> None:
        super().__init__(f"{name}: {pending} task(s) still pending after {timeout:.1f}s")
        self.pending = pending
        self.timeout = timeout


@dataclass
class ThreadStats:
    start_ts: float
    tasks_submitted: int = 0
    tasks_completed: int = 0
    tasks_failed: int = 0
    tasks_cancelled: int = 0

    @property
    def uptime_sec(self) -> float:
        return time.time() - self.start_ts

    @property
    def in_flight(self) -> int:
        done = self.tasks_completed + self.tasks_failed + self.tasks_cancelled
        return max(0, self.tasks_submitted - done)


class ThreadManager(Generic[T, R]):
    """
    A bounded thread-pool manager for the per-tile fetch+render fan-out.

    Features
    --------
    - submit(fn, *args, **kwargs) -> Future
    - map(fn, iterable, timeout=None) -> List[R] in input order (join-all barrier)
    - Bounded outstanding tasks via a semaphore (max_queue)
    - Stop event tasks can poll to abandon work early
    - cancel(): set the stop event and drop queued work without blocking
    - Stats snapshot, context manager support

    Notes
    -----
    Image downloads dominate; Pillow releases the GIL for most resampling,
    so threads are a good fit here.
    """

    def __init__(
        self,
        name: str = "worker",
        max_workers: Optional[int] = None,
        max_queue: Optional[int] = None,
        log_exceptions: bool = True,
    ) -> None:
        """
        Parameters
        ----------
        name:
            Logical name for logging and thread names.
        max_workers:
            Max threads in the pool. Default: ~min(8, max(4, 2*CPUs)).
        max_queue:
            Max number of *outstanding* tasks (submitted but not finished).
            None or <= 0 means unbounded.
        log_exceptions:
            If True, exceptions in tasks are logged when futures complete.
        """
        if max_workers is None:
            n = os.cpu_count() or 4
            max_workers = max(4, min(8, n * 2))

        self._name = name
        self._max_workers = int(max_workers)
        self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix=name)
        self._stop = threading.Event()
        self._stats = ThreadStats(start_ts=time.time())
        self._log_exceptions = log_exceptions
        self._slots = threading.BoundedSemaphore(max_queue) if max_queue and max_queue > 0 else None
        self._closed = False
        self._lock = threading.Lock()

    # -------------------------
    # Lifecycle
    # -------------------------
    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def stop_event(self) -> threading.Event:
        """A cooperative stop flag tasks check before starting expensive work."""
        return self._stop

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """Shut down the executor. Safe to call multiple times."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)

    def cancel(self) -> None:
        """Signal tasks to stop, drop queued ones, and return without waiting for running ones."""
        self._stop.set()
        self.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "ThreadManager[T, R]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.cancel()
        else:
            self.shutdown(wait=True)

    def stats(self) -> ThreadStats:
        """Return a *snapshot* of current stats."""
        with self._lock:
            return ThreadStats(
                start_ts=self._stats.start_ts,
                tasks_submitted=self._stats.tasks_submitted,
                tasks_completed=self._stats.tasks_completed,
                tasks_failed=self._stats.tasks_failed,
                tasks_cancelled=self._stats.tasks_cancelled,
            )

    # -------------------------
    # Submission
    # -------------------------
    def submit(self, fn: Callable[..., R], /, *args, **kwargs) -> Future[R]:
        """
        Submit a single callable. Applies queue bounding and exception logging.
        Returns a Future that will hold the result or exception.
        """
        fut = self._submit(fn, args, kwargs, slot_timeout=None)
        assert fut is not None
        return fut

    def _submit(self, fn, args, kwargs, *, slot_timeout: Optional[float]) -> Optional[Future[R]]:
        """Returns None if no queue slot freed up within slot_timeout."""
        if self._closed:
            raise RuntimeError(f"{self._name}: submit() after shutdown")

        if self._slots is not None:
            if not self._slots.acquire(timeout=slot_timeout):
                return None

        def _wrapped(*a, **kw) -> R:
            try:
                return fn(*a, **kw)
            finally:
                if self._slots is not None:
                    self._slots.release()

        with self._lock:
            self._stats.tasks_submitted += 1

        try:
            fut: Future[R] = self._executor.submit(_wrapped, *args, **kwargs)
        except RuntimeError:
            # executor shut down between the closed check and submit
            if self._slots is not None:
                self._slots.release()
            raise

        def _cb(f: Future[R]) -> None:
            if f.cancelled():
                # a cancelled task never ran _wrapped, so its slot is still held
                if self._slots is not None:
                    self._slots.release()
                with self._lock:
                    self._stats.tasks_cancelled += 1
                return
            e = f.exception()
            with self._lock:
                if e is None:
                    self._stats.tasks_completed += 1
                else:
                    self._stats.tasks_failed += 1
            if e is not None and self._log_exceptions:
                log.error("%s task failed: %s", self._name, e, exc_info=e)

        fut.add_done_callback(_cb)
        return fut

    # -------------------------
    # Bulk helpers
    # -------------------------
    def map(
        self,
        fn: Callable[[T], R],
        iterable: Iterable[T],
        *,
        timeout: Optional[float] = None,
    ) -> List[R]:
        """
        Run fn over every item and return results in input order once *all*
        have finished. The first task exception is re-raised.

        With a timeout, the whole batch shares one deadline; on expiry the
        manager is cancelled (queued tasks dropped, running ones abandoned)
        and DeadlineExceeded is raised.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        futures: List[Future[R]] = []
        for item in iterable:
            left = None if deadline is None else deadline - time.monotonic()
            fut = None if left is not None and left <= 0 else self._submit(fn, (item,), {}, slot_timeout=left)
            if fut is None:
                self.cancel()
                raise DeadlineExceeded(self._name, len(futures) + 1, float(timeout or 0.0))
            futures.append(fut)

        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        done, pending = wait(futures, timeout=remaining, return_when=FIRST_EXCEPTION)
        failed = next((f for f in futures if f in done and f.exception() is not None), None)
        if failed is not None:
            self.cancel()
            raise failed.exception()  # type: ignore[misc]
        if pending:
            self.cancel()
            raise DeadlineExceeded(self._name, len(pending), float(timeout or 0.0))
        return [f.result() for f in futures]
