from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class FileStats:
    """Line/character counts for one analysed file."""

    file_name: str
    line_count: int
    character_count: int
    processing_time_ns: int
    worker_name: str
    start_time: datetime
    end_time: datetime
    completed: bool = True

    @property
    def processing_time_ms(self) -> float:
        return self.processing_time_ns / 1_000_000


@dataclass(frozen=True)
class AnalysisResult:
    """Summary of a batch of :class:`FileStats`.

    ``total_processing_time_ns`` is the sum of per-file durations and may exceed
    the wall-clock span ``analysis_end_time - analysis_start_time`` when files
    were analysed in parallel.
    """

    file_stats: list[FileStats] = field(default_factory=list)
    total_line_count: int = 0
    total_character_count: int = 0
    successful_file_count: int = 0
    failed_file_count: int = 0
    total_processing_time_ns: int = 0
    analysis_start_time: datetime | None = None
    analysis_end_time: datetime | None = None

    @property
    def total_processed_files(self) -> int:
        return len(self.file_stats)

    @property
    def total_processing_time_ms(self) -> float:
        return self.total_processing_time_ns / 1_000_000

    @property
    def elapsed_s(self) -> float:
        if self.analysis_start_time is None or self.analysis_end_time is None:
            return 0.0
        return (self.analysis_end_time - self.analysis_start_time).total_seconds()


@dataclass(frozen=True)
class ArchiveInfo:
    """Outcome of one archive creation."""

    archive_name: str
    archive_path: Path
    archived_file_names: list[str] = field(default_factory=list)
    size_bytes: int = 0
    source_bytes: int = 0
    compression_method: str = "ZIP_DEFLATED"
    start_time: datetime | None = None
    end_time: datetime | None = None
    worker_name: str = ""
    undeleted_file_names: list[str] = field(default_factory=list)

    @property
    def archived_file_count(self) -> int:
        return len(self.archived_file_names)

    @property
    def processing_time_ns(self) -> int:
        if self.start_time is None or self.end_time is None:
            return 0
        return int((self.end_time - self.start_time) / timedelta(microseconds=1)) * 1_000

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)

    @property
    def compression_ratio(self) -> float:
        if not self.archived_file_names or self.source_bytes == 0:
            return 0.0
        return self.size_bytes / self.source_bytes


@dataclass(frozen=True)
class PoolSnapshot:
    """Point-in-time occupancy counters for one worker pool."""

    name: str
    max_workers: int
    submitted: int
    completed: int
    active: int

    @property
    def pending(self) -> int:
        return max(self.submitted - self.completed - self.active, 0)


@dataclass(frozen=True)
class PipelineReport:
    """Outcome of ``run_pipeline()``."""

    analysis: AnalysisResult
    archive: ArchiveInfo
    pool_status: list[PoolSnapshot] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["analysis"]["total_processed_files"] = self.analysis.total_processed_files
        data["analysis"]["elapsed_s"] = self.analysis.elapsed_s
        data["archive"]["archived_file_count"] = self.archive.archived_file_count
        data["archive"]["compression_ratio"] = self.archive.compression_ratio
        return data
