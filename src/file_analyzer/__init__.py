from __future__ import annotations

from .config import Settings, load_settings
from .run import PipelineOrchestrator, run_all
from .pools import WorkerPoolSet
from .analysis import aggregate_stats, analyze_file
from .archive import ArchiveBuilder, find_text_files
from .exceptions import ErrorKind, FileAnalyzerError
from .models import AnalysisResult, ArchiveInfo, FileStats, PipelineReport, PoolSnapshot

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "run_all",
    "PipelineOrchestrator",
    "WorkerPoolSet",
    "ArchiveBuilder",
    "analyze_file",
    "aggregate_stats",
    "find_text_files",
    "Settings",
    "load_settings",
    "FileStats",
    "AnalysisResult",
    "ArchiveInfo",
    "PipelineReport",
    "PoolSnapshot",
    "ErrorKind",
    "FileAnalyzerError",
]
