"""Process-wide worker pools.

Three independent executors are owned by one :class:`WorkerPoolSet`:

- *analysis*: fixed number of workers, excess tasks queue rather than fail
- *archive*: exactly one worker, so archive creation, extraction and source
  deletion never run concurrently
- *general*: grows on demand, used for aggregation and other one-off tasks

The set is built once at startup, passed to the orchestrator by reference and
drained with :meth:`WorkerPoolSet.shutdown`.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, TypeVar

from .config import DEFAULT_ANALYSIS_POOL_SIZE, DEFAULT_GENERAL_POOL_MAX_WORKERS
from .exceptions import ErrorKind, FileAnalyzerError
from .models import PoolSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _TrackedPool:
    """ThreadPoolExecutor wrapper that keeps occupancy counters."""

    def __init__(self, name: str, max_workers: int, thread_name_prefix: str) -> None:
        self.name = name
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix,
        )
        self._lock = threading.Lock()
        self._outstanding: set[Future[Any]] = set()
        self._submitted = 0
        self._active = 0
        self._completed = 0

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        with self._lock:
            self._submitted += 1
        try:
            future = self._executor.submit(self._run, fn, args, kwargs)
        except RuntimeError:
            with self._lock:
                self._submitted -= 1
            raise
        with self._lock:
            self._outstanding.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _run(self, fn: Callable[..., T], args: tuple, kwargs: dict) -> T:
        with self._lock:
            self._active += 1
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._active -= 1

    def _on_done(self, future: Future[Any]) -> None:
        with self._lock:
            self._completed += 1
            self._outstanding.discard(future)

    def snapshot(self) -> PoolSnapshot:
        with self._lock:
            return PoolSnapshot(
                name=self.name,
                max_workers=self.max_workers,
                submitted=self._submitted,
                completed=self._completed,
                active=self._active,
            )

    def stop_accepting(self) -> None:
        self._executor.shutdown(wait=False)

    def drain(self, timeout_s: float) -> bool:
        """Wait up to *timeout_s* for outstanding tasks; cancel queued ones on timeout."""
        with self._lock:
            outstanding = set(self._outstanding)
        _, not_done = wait(outstanding, timeout=timeout_s)
        if not_done:
            logger.warning(
                "%s pool did not terminate gracefully (%d tasks left), forcing shutdown",
                self.name, len(not_done),
            )
            self._executor.shutdown(wait=False, cancel_futures=True)
            return False
        return True


class WorkerPoolSet:
    """Owns the analysis, archive and general worker pools."""

    def __init__(
        self,
        analysis_workers: int = DEFAULT_ANALYSIS_POOL_SIZE,
        general_max_workers: int = DEFAULT_GENERAL_POOL_MAX_WORKERS,
    ) -> None:
        if analysis_workers < 1:
            raise ValueError(f"analysis_workers must be >= 1, got {analysis_workers}")
        self._analysis = _TrackedPool("analysis", analysis_workers, "FileAnalysis")
        self._archive = _TrackedPool("archive", 1, "Archive")
        self._general = _TrackedPool("general", general_max_workers, "General")
        self._closed = False
        logger.info(
            "WorkerPoolSet initialized with workers: analysis=%d, archive=1, general<=%d",
            analysis_workers, general_max_workers,
        )

    @classmethod
    def from_settings(cls, cfg: Any) -> WorkerPoolSet:
        return cls(
            analysis_workers=cfg.ANALYSIS_POOL_SIZE,
            general_max_workers=cfg.GENERAL_POOL_MAX_WORKERS,
        )

    @property
    def analysis_workers(self) -> int:
        return self._analysis.max_workers

    def submit_analysis(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        return self._submit(self._analysis, fn, *args, **kwargs)

    def submit_archive(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        return self._submit(self._archive, fn, *args, **kwargs)

    def submit_general(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        return self._submit(self._general, fn, *args, **kwargs)

    def _submit(
        self, pool: _TrackedPool, fn: Callable[..., T], *args: Any, **kwargs: Any,
    ) -> Future[T]:
        if self._closed:
            raise FileAnalyzerError(
                ErrorKind.THREAD_EXECUTION,
                f"Cannot submit to {pool.name} pool: worker pools are shut down",
            )
        try:
            return pool.submit(fn, *args, **kwargs)
        except RuntimeError as exc:
            raise FileAnalyzerError(
                ErrorKind.THREAD_EXECUTION, f"Task submission to {pool.name} pool failed",
            ) from exc

    def snapshot(self) -> list[PoolSnapshot]:
        """Read-only occupancy counters; never blocks on running tasks."""
        return [p.snapshot() for p in (self._analysis, self._archive, self._general)]

    def log_status(self) -> list[PoolSnapshot]:
        snapshots = self.snapshot()
        logger.info("Thread pool status report:")
        for s in snapshots:
            logger.info(
                "- %s pool: max_workers=%d active=%d pending=%d completed=%d submitted=%d",
                s.name, s.max_workers, s.active, s.pending, s.completed, s.submitted,
            )
        return snapshots

    def shutdown(self, timeout_s: float = 30.0) -> bool:
        """Stop accepting work and drain every pool.

        All pools share one deadline of *timeout_s* to finish in-flight tasks;
        whatever is still queued when it passes is cancelled. Returns ``True``
        when every pool drained cleanly. An interrupt while waiting raises
        ``THREAD_INTERRUPTED``.
        """
        if self._closed:
            return True
        self._closed = True
        logger.info("Shutting down thread pools...")
        pools = (self._analysis, self._archive, self._general)
        for pool in pools:
            pool.stop_accepting()
        try:
            deadline = time.monotonic() + timeout_s
            clean = all([pool.drain(max(deadline - time.monotonic(), 0.0)) for pool in pools])
        except KeyboardInterrupt as exc:
            logger.error("Thread pool shutdown was interrupted")
            raise FileAnalyzerError(
                ErrorKind.THREAD_INTERRUPTED, "Thread pool shutdown was interrupted",
            ) from exc
        logger.info("All thread pools have been shut down")
        return clean

    def __enter__(self) -> WorkerPoolSet:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
