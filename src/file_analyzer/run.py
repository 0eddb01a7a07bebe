from __future__ import annotations

import dataclasses
import functools
import logging
import time
from concurrent.futures import CancelledError, Future
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence, TypeVar

from .analysis import aggregate_stats, analyze_file
from .archive import ArchiveBuilder
from .config import Settings
from .contracts import Aggregator, Analyzer, Archiver
from .exceptions import ErrorKind, FileAnalyzerError
from .models import AnalysisResult, ArchiveInfo, FileStats, PipelineReport
from .pools import WorkerPoolSet
from .utils.logger import setup_file_handler

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineOrchestrator:
    """Runs analysis, aggregation and archiving on a :class:`WorkerPoolSet`.

    All analysis tasks are submitted before any of them is waited on, and their
    results are collected in submission order. Aggregation (general pool) and
    archive creation (archive pool) are then submitted together and waited on
    in that order. Any failure aborts the run; there are no partial results.
    """

    def __init__(
        self,
        pools: WorkerPoolSet,
        *,
        analyzer: Analyzer | None = None,
        aggregator: Aggregator = aggregate_stats,
        archiver: Archiver | None = None,
        extension: str = ".txt",
        delete_sources: bool = True,
    ) -> None:
        self.pools = pools
        self.analyzer = analyzer or functools.partial(analyze_file, extension=extension)
        self.aggregator = aggregator
        self.archiver = archiver or ArchiveBuilder(extension=extension)
        self.delete_sources = delete_sources

    @classmethod
    def from_settings(cls, pools: WorkerPoolSet, cfg: Settings) -> PipelineOrchestrator:
        return cls(
            pools,
            archiver=ArchiveBuilder.from_settings(cfg),
            extension=cfg.TEXT_EXTENSION,
            delete_sources=cfg.DELETE_SOURCES,
        )

    def run_directory(self, input_dir: str | Path, output_archive: str | Path) -> PipelineReport:
        """Run the pipeline over every eligible file found in *input_dir*."""
        file_paths = self.archiver.find_text_files(input_dir)
        if not file_paths:
            raise FileAnalyzerError(
                ErrorKind.NO_CONTENT, f"No eligible files found in directory: {input_dir}",
            )
        return self.run_pipeline(file_paths, input_dir, output_archive)

    def run_pipeline(
        self,
        file_paths: Sequence[str | Path],
        input_dir: str | Path,
        output_archive: str | Path,
    ) -> PipelineReport:
        analysis_start = datetime.now(timezone.utc)
        input_dir = Path(input_dir)
        logger.info(
            "Starting file processing for %d files from directory: %s", len(file_paths), input_dir,
        )
        if not input_dir.exists():
            raise FileAnalyzerError(
                ErrorKind.DIRECTORY_NOT_FOUND, f"Input directory not found: {input_dir}",
            )
        if not file_paths:
            raise FileAnalyzerError(ErrorKind.FILE_PROCESSING, "No files provided for processing")

        try:
            futures = self.submit_analysis_tasks([Path(p) for p in file_paths])
            file_stats = self.wait_for_analysis(futures)

            aggregate_future = self.submit_aggregation(file_stats, analysis_start)
            archive_future = self.submit_archive(input_dir, Path(output_archive))

            analysis = self.wait_for_aggregation(aggregate_future)
            archive = self.wait_for_archive(archive_future)
        except FileAnalyzerError:
            logger.exception("File analyzer error during processing")
            raise
        except Exception as exc:
            logger.exception("Error during file processing")
            raise FileAnalyzerError(
                ErrorKind.FILE_PROCESSING, f"File processing failed: {exc}",
            ) from exc

        pool_status = self.pools.log_status()
        logger.info(
            "File processing completed. Processed %d files, created archive: %s",
            analysis.total_processed_files, archive.archive_name,
        )
        return PipelineReport(analysis=analysis, archive=archive, pool_status=pool_status)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def submit_analysis_tasks(self, file_paths: list[Path]) -> list[Future[FileStats]]:
        logger.info("Submitting %d file analysis tasks", len(file_paths))
        futures = [self.pools.submit_analysis(self.analyzer, p) for p in file_paths]
        logger.debug("Submitted %d analysis tasks to the analysis pool", len(futures))
        return futures

    def wait_for_analysis(self, futures: list[Future[FileStats]]) -> list[FileStats]:
        """Block on every handle in submission order.

        The first failure cancels the tasks that have not started yet and is
        raised; results already collected are discarded.
        """
        logger.info("Waiting for completion of %d file analysis tasks", len(futures))
        t0 = time.perf_counter_ns()
        results: list[FileStats] = []
        for i, future in enumerate(futures, start=1):
            try:
                stats = self._wait(future, f"Analysis task {i}")
            except FileAnalyzerError:
                cancelled = sum(f.cancel() for f in futures[i:])
                if cancelled:
                    logger.warning("Cancelled %d queued analysis tasks", cancelled)
                raise
            logger.debug(
                "Analysis task %d completed. File: %s, Worker: %s, Duration: %.3f ms",
                i, stats.file_name, stats.worker_name, stats.processing_time_ms,
            )
            results.append(stats)
        logger.info(
            "All %d analysis tasks completed, total wait %.3f ms",
            len(results), (time.perf_counter_ns() - t0) / 1_000_000,
        )
        return results

    # ------------------------------------------------------------------
    # Aggregation / archive
    # ------------------------------------------------------------------

    def submit_aggregation(
        self, file_stats: list[FileStats], analysis_start: datetime,
    ) -> Future[AnalysisResult]:
        logger.info("Submitting total result calculation for %d files", len(file_stats))
        return self.pools.submit_general(self.aggregator, file_stats, analysis_start)

    def submit_archive(self, input_dir: Path, output_archive: Path) -> Future[ArchiveInfo]:
        logger.info("Submitting archive task for directory: %s", input_dir)
        return self.pools.submit_archive(self._archive_task, input_dir, output_archive)

    def _archive_task(self, input_dir: Path, output_archive: Path) -> ArchiveInfo:
        info = self.archiver.create_archive(input_dir, output_archive)
        if not self.delete_sources or info.archived_file_count == 0:
            return info
        failed = self.archiver.delete_sources(input_dir / name for name in info.archived_file_names)
        if failed:
            return dataclasses.replace(info, undeleted_file_names=[p.name for p in failed])
        return info

    def wait_for_aggregation(self, future: Future[AnalysisResult]) -> AnalysisResult:
        logger.info("Waiting for total result calculation")
        result = self._wait(future, "Total result calculation")
        logger.info(
            "Total result: %d files (%d ok, %d failed), %d lines, %d characters, %.3f s elapsed",
            result.total_processed_files, result.successful_file_count,
            result.failed_file_count, result.total_line_count,
            result.total_character_count, result.elapsed_s,
        )
        return result

    def wait_for_archive(self, future: Future[ArchiveInfo]) -> ArchiveInfo:
        logger.info("Waiting for archive task completion")
        info = self._wait(future, "Archive task")
        logger.info(
            "Archive %s: %d files, %.1f KB, worker %s",
            info.archive_path, info.archived_file_count, info.size_kb, info.worker_name,
        )
        return info

    def _wait(self, future: Future[T], label: str) -> T:
        try:
            return future.result()
        except FileAnalyzerError:
            logger.error("%s failed", label)
            raise
        except (CancelledError, KeyboardInterrupt) as exc:
            logger.error("%s was interrupted", label)
            raise FileAnalyzerError(
                ErrorKind.THREAD_INTERRUPTED, f"{label} was interrupted",
            ) from exc
        except Exception as exc:
            logger.error("%s failed during execution", label)
            raise FileAnalyzerError(
                ErrorKind.THREAD_EXECUTION, f"{label} execution failed",
            ) from exc


def run_all(
    cfg: Settings,
    *,
    file_paths: Sequence[str | Path] | None = None,
) -> PipelineReport:
    """Build the worker pools from *cfg*, run one pipeline and drain the pools.

    Without *file_paths* every eligible file in ``cfg.INPUT_DIR`` is processed.
    """
    if cfg.LOG_DIR is not None:
        setup_file_handler(logging.getLogger("file_analyzer"), cfg.LOG_DIR)

    pools = WorkerPoolSet.from_settings(cfg)
    try:
        orchestrator = PipelineOrchestrator.from_settings(pools, cfg)
        if file_paths is None:
            return orchestrator.run_directory(cfg.INPUT_DIR, cfg.OUTPUT_ARCHIVE)
        return orchestrator.run_pipeline(file_paths, cfg.INPUT_DIR, cfg.OUTPUT_ARCHIVE)
    finally:
        pools.shutdown(timeout_s=cfg.SHUTDOWN_TIMEOUT_S)
