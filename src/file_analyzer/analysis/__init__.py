from __future__ import annotations

from .aggregate import aggregate_stats
from .file_stats import DEFAULT_TEXT_EXTENSION, analyze_file

__all__ = ["DEFAULT_TEXT_EXTENSION", "aggregate_stats", "analyze_file"]
