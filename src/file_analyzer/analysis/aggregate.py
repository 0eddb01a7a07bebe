from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Iterable

from ..models import AnalysisResult, FileStats

logger = logging.getLogger(__name__)


def aggregate_stats(
    file_stats: Iterable[FileStats], analysis_start: datetime,
) -> AnalysisResult:
    """Reduce per-file stats into one :class:`AnalysisResult`.

    Only completed entries contribute to the sums; the others are counted as
    failed. The reduction is order-independent.
    """
    stats = list(file_stats)
    t0 = time.perf_counter_ns()

    total_lines = 0
    total_chars = 0
    total_ns = 0
    successful = 0
    failed = 0
    for s in stats:
        if s.completed:
            total_lines += s.line_count
            total_chars += s.character_count
            total_ns += s.processing_time_ns
            successful += 1
        else:
            failed += 1

    result = AnalysisResult(
        file_stats=stats,
        total_line_count=total_lines,
        total_character_count=total_chars,
        successful_file_count=successful,
        failed_file_count=failed,
        total_processing_time_ns=total_ns,
        analysis_start_time=analysis_start,
        analysis_end_time=datetime.now(timezone.utc),
    )
    logger.info(
        "Total result calculation completed in %.3f ms: %d lines, %d characters, "
        "%d successful files, %d failed files",
        (time.perf_counter_ns() - t0) / 1_000_000,
        total_lines, total_chars, successful, failed,
    )
    return result
