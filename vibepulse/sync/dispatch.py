"""Fire-and-forget dispatch for background synchronization.

Submitted work runs on a small thread pool. The submitting code path never
joins the returned future; errors are drained into the logger by a done
callback. This is at-most-once, best-effort execution: work still queued when
the process exits is lost, and the next source-locale change re-attempts it.
`drain()` exists for orderly shutdown of CLI runs and for tests.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    def __init__(self, max_workers: int = 4):
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="locale-sync")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future = self._pool.submit(fn, *args, **kwargs)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(lambda f: self._on_done(description, f))
        return future

    def _on_done(self, description: str, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            logger.warning(f"Background task cancelled: {description}")
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"Background task failed: {description}: {exc}", exc_info=exc)

    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight tasks. Returns False if the timeout expired."""
        with self._lock:
            futures = set(self._pending)
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        self._pool.shutdown(wait=wait_for_tasks)
