"""Bounded worker pool for batches of independent tasks.

A TaskScheduler is created fresh for every phase and discarded once the
batch has drained. Tasks are expected to report their own failures; an
exception that still escapes a task is logged here and never re-raised.
"""

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, List, Optional

from ..common.logger import get_logger

logger = get_logger("pkgmigrate.scheduler")


def default_max_workers() -> int:
    """Return the number of processing units on this host."""
    return os.cpu_count() or 1


class TaskScheduler:
    """Run submitted tasks with at most ``max_workers`` in flight.

    Usage::

        with TaskScheduler(8) as scheduler:
            for item in items:
                scheduler.submit(work, item)
        # every task has finished here
    """

    def __init__(self, max_workers: Optional[int] = None, name: str = "worker"):
        """Initialize the scheduler.

        Args:
            max_workers: Maximum number of concurrently running tasks
                (defaults to the host CPU count)
            name: Thread name prefix, shows up in log records
        """
        if max_workers is None:
            max_workers = default_max_workers()
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=name
        )
        self._futures: List[Future] = []
        self._lock = threading.Lock()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Queue a task for execution.

        Raises:
            RuntimeError: If the scheduler has already been drained
        """
        future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(self._log_unhandled)
        with self._lock:
            self._futures.append(future)
        return future

    def wait(self) -> None:
        """Stop accepting tasks and block until every submitted task is done."""
        self._executor.shutdown(wait=True)

    @property
    def submitted(self) -> int:
        with self._lock:
            return len(self._futures)

    @staticmethod
    def _log_unhandled(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Task raised an unhandled exception: %s",
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    def __enter__(self) -> "TaskScheduler":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.wait()

    @classmethod
    def run(
        cls, max_workers: Optional[int], tasks: Iterable[Callable[[], Any]]
    ) -> None:
        """Run a batch of zero-argument tasks and wait for all of them.

        Args:
            max_workers: Maximum concurrency (host CPU count when None)
            tasks: Zero-argument callables
        """
        with cls(max_workers) as scheduler:
            for task in tasks:
                scheduler.submit(task)
