"""Worker pool bounds, serialization, snapshots and shutdown."""
from __future__ import annotations

import threading
import time
from unittest.mock import patch

import pytest

from file_analyzer.config import Settings
from file_analyzer.exceptions import ErrorKind, FileAnalyzerError
from file_analyzer.pools import WorkerPoolSet, _TrackedPool


class _ConcurrencyProbe:
    """Callable that records the peak number of simultaneous invocations."""

    def __init__(self, delay: float = 0.1) -> None:
        self.delay = delay
        self.current = 0
        self.peak = 0
        self.threads: set[str] = set()
        self._lock = threading.Lock()

    def __call__(self, value: int) -> int:
        with self._lock:
            self.current += 1
            self.peak = max(self.peak, self.current)
            self.threads.add(threading.current_thread().name)
        time.sleep(self.delay)
        with self._lock:
            self.current -= 1
        return value


# ---------------------------------------------------------------------------
# Analysis pool
# ---------------------------------------------------------------------------

class TestAnalysisPool:
    def test_excess_tasks_queue_instead_of_failing(self):
        probe = _ConcurrencyProbe(delay=0.2)
        with WorkerPoolSet(analysis_workers=10) as pools:
            futures = [pools.submit_analysis(probe, i) for i in range(11)]
            results = [f.result(timeout=10) for f in futures]
        assert results == list(range(11))
        assert 1 < probe.peak <= 10

    def test_bound_is_respected(self):
        probe = _ConcurrencyProbe(delay=0.05)
        with WorkerPoolSet(analysis_workers=3) as pools:
            for f in [pools.submit_analysis(probe, i) for i in range(12)]:
                f.result(timeout=10)
        assert probe.peak <= 3

    def test_worker_threads_are_named(self):
        with WorkerPoolSet(analysis_workers=2) as pools:
            name = pools.submit_analysis(lambda: threading.current_thread().name).result(timeout=5)
        assert name.startswith("FileAnalysis")

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            WorkerPoolSet(analysis_workers=0)

    def test_from_settings(self):
        pools = WorkerPoolSet.from_settings(Settings(ANALYSIS_POOL_SIZE=4))
        try:
            assert pools.analysis_workers == 4
        finally:
            pools.shutdown()


# ---------------------------------------------------------------------------
# Archive / general pools
# ---------------------------------------------------------------------------

class TestArchivePool:
    def test_single_worker_serializes_tasks(self):
        probe = _ConcurrencyProbe(delay=0.05)
        with WorkerPoolSet() as pools:
            for f in [pools.submit_archive(probe, i) for i in range(5)]:
                f.result(timeout=10)
        assert probe.peak == 1
        assert len(probe.threads) == 1
        assert next(iter(probe.threads)).startswith("Archive")

    def test_tasks_run_in_submission_order(self):
        seen: list[int] = []
        with WorkerPoolSet() as pools:
            futures = [pools.submit_archive(seen.append, i) for i in range(20)]
            for f in futures:
                f.result(timeout=5)
        assert seen == list(range(20))


class TestGeneralPool:
    def test_runs_tasks(self):
        with WorkerPoolSet() as pools:
            assert pools.submit_general(sum, [1, 2, 3]).result(timeout=5) == 6

    def test_task_exception_surfaces_on_handle(self):
        def boom() -> None:
            raise ValueError("bad")

        with WorkerPoolSet() as pools:
            future = pools.submit_general(boom)
            with pytest.raises(ValueError, match="bad"):
                future.result(timeout=5)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

class TestSnapshot:
    def test_counts_submitted_and_completed(self):
        with WorkerPoolSet(analysis_workers=2) as pools:
            for f in [pools.submit_analysis(abs, -i) for i in range(4)]:
                f.result(timeout=5)
            pools.submit_general(abs, 1).result(timeout=5)
            # Completion callbacks run right after the result is set.
            time.sleep(0.05)
            snaps = {s.name: s for s in pools.snapshot()}
        assert snaps["analysis"].submitted == 4
        assert snaps["analysis"].completed == 4
        assert snaps["analysis"].active == 0
        assert snaps["analysis"].pending == 0
        assert snaps["analysis"].max_workers == 2
        assert snaps["archive"].max_workers == 1
        assert snaps["archive"].submitted == 0
        assert snaps["general"].submitted == 1

    def test_reports_active_tasks(self):
        gate = threading.Event()
        started = threading.Event()

        def blocker() -> None:
            started.set()
            gate.wait(5)

        with WorkerPoolSet() as pools:
            future = pools.submit_archive(blocker)
            queued = pools.submit_archive(abs, -1)
            assert started.wait(5)
            archive = next(s for s in pools.snapshot() if s.name == "archive")
            assert archive.active == 1
            assert archive.pending == 1
            gate.set()
            future.result(timeout=5)
            queued.result(timeout=5)


# ---------------------------------------------------------------------------
# Shutdown
# ---------------------------------------------------------------------------

class TestShutdown:
    def test_submit_after_shutdown_fails(self):
        pools = WorkerPoolSet()
        assert pools.shutdown() is True
        with pytest.raises(FileAnalyzerError) as exc_info:
            pools.submit_analysis(abs, 1)
        assert exc_info.value.kind is ErrorKind.THREAD_EXECUTION

    def test_shutdown_is_idempotent(self):
        pools = WorkerPoolSet()
        assert pools.shutdown() is True
        assert pools.shutdown() is True

    def test_waits_for_in_flight_tasks(self):
        pools = WorkerPoolSet()
        future = pools.submit_analysis(time.sleep, 0.1)
        assert pools.shutdown(timeout_s=5) is True
        assert future.done()

    def test_timeout_cancels_queued_tasks(self):
        gate = threading.Event()
        pools = WorkerPoolSet(analysis_workers=1)
        running = pools.submit_analysis(gate.wait, 5)
        queued = pools.submit_analysis(abs, -1)
        try:
            assert pools.shutdown(timeout_s=0.05) is False
            assert queued.cancelled()
        finally:
            gate.set()
        assert running.result(timeout=5) is True

    def test_interrupt_while_waiting_is_fatal(self):
        pools = WorkerPoolSet()
        with patch.object(_TrackedPool, "drain", side_effect=KeyboardInterrupt):
            with pytest.raises(FileAnalyzerError) as exc_info:
                pools.shutdown(timeout_s=1)
        assert exc_info.value.kind is ErrorKind.THREAD_INTERRUPTED
        assert isinstance(exc_info.value.cause, KeyboardInterrupt)

    def test_pools_share_one_deadline(self):
        gate = threading.Event()
        pools = WorkerPoolSet(analysis_workers=1)
        pools.submit_analysis(gate.wait, 5)
        pools.submit_archive(gate.wait, 5)
        pools.submit_general(gate.wait, 5)
        try:
            started = time.monotonic()
            assert pools.shutdown(timeout_s=0.3) is False
            assert time.monotonic() - started < 0.8
        finally:
            gate.set()


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

class TestCounters:
    def test_submitted_counted_before_task_starts(self):
        seen: list[int] = []

        with WorkerPoolSet() as pools:
            def record() -> None:
                archive = next(s for s in pools.snapshot() if s.name == "archive")
                seen.append(archive.submitted)

            pools.submit_archive(record).result(timeout=5)
        assert seen == [1]

    def test_rejected_submit_is_not_counted(self):
        pools = WorkerPoolSet()
        pools._general.stop_accepting()
        try:
            with pytest.raises(FileAnalyzerError):
                pools.submit_general(abs, 1)
            general = next(s for s in pools.snapshot() if s.name == "general")
            assert general.submitted == 0
        finally:
            pools.shutdown()
