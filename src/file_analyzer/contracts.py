"""Capability interfaces the orchestrator depends on."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable, Protocol

from .models import AnalysisResult, ArchiveInfo, FileStats


class Analyzer(Protocol):
    def __call__(self, path: Path) -> FileStats: ...


class Aggregator(Protocol):
    def __call__(self, file_stats: Iterable[FileStats], analysis_start: datetime) -> AnalysisResult: ...


class Archiver(Protocol):
    def find_text_files(self, directory: str | Path) -> list[Path]: ...

    def create_archive(self, input_dir: str | Path, output_path: str | Path) -> ArchiveInfo: ...

    def delete_sources(self, paths: Iterable[str | Path]) -> list[Path]: ...
