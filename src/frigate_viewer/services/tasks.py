"""Supervised fire-and-forget task group.

Push handling, badge polls, and watchdog passes are started without anyone
waiting on them. Running them here means each task's exception is caught and
logged on its own; no task can take down the process or a sibling task.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from frigate_viewer.constants import DEFAULT_MAX_WORKERS

logger = logging.getLogger("frigate-viewer")


class SupervisedTaskGroup:
    """Thread pool whose tasks log (never raise) their failures."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS, name: str = "viewer-task") -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._pending: set[Future] = set()
        self._failures = 0
        self._closed = False

    def _run(self, label: str, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            with self._lock:
                self._failures += 1
            logger.exception("Task %s failed: %s", label, e)
            return None

    def _done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def spawn(self, label: str, fn: Callable[..., Any], *args, **kwargs) -> Future | None:
        """Run fn(*args, **kwargs) in the background. Returns None after shutdown."""
        with self._lock:
            if self._closed:
                logger.debug("Task group closed, dropping task %s", label)
                return None
            future = self._executor.submit(self._run, label, fn, args, kwargs)
            self._pending.add(future)
        future.add_done_callback(self._done)
        return future

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
