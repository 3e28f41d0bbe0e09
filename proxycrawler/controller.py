from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, TypeVar

T = TypeVar("T")


class ThreadPoolController:
    """Runs jobs on a bounded thread pool with a fixed number of slots.

    submit() blocks the dispatching thread until a slot is free, takes the
    slot, and only then hands the job to the pool. The slot is given back in
    a finally block around the job itself, so a failing job frees its slot
    exactly like a successful one.

    The controller also tracks the highest number of slots held at once
    (peak), which makes the ceiling observable from the outside.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._limit = limit
        self._executor = ThreadPoolExecutor(max_workers=limit, thread_name_prefix="crawl-job")

        self._lock = threading.Lock()
        self._cv = threading.Condition(self._lock)

        self._active = 0
        self._peak = 0
        self._running = False

    def start(self) -> None:
        with self._cv:
            self._running = True

    def stop(self, wait: bool = True) -> None:
        """Refuse new jobs and, if wait is set, block until running jobs end."""
        with self._cv:
            self._running = False
            self._cv.notify_all()
        self._executor.shutdown(wait=wait)

    def submit(self, fn: Callable[..., T], *args: Any) -> "Future[T]":
        """Submit a job for execution, blocking while every slot is taken."""
        with self._cv:
            while self._running and self._active >= self._limit:
                self._cv.wait()

            if not self._running:
                raise RuntimeError("controller is not running")

            self._active += 1
            self._peak = max(self._peak, self._active)

        try:
            return self._executor.submit(self._wrap_task, fn, *args)
        except BaseException:
            self._release()
            raise

    def _wrap_task(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        finally:
            self._release()

    def _release(self) -> None:
        with self._cv:
            self._active = max(0, self._active - 1)
            self._cv.notify_all()

    @property
    def active(self) -> int:
        with self._cv:
            return self._active

    @property
    def peak(self) -> int:
        with self._cv:
            return self._peak
