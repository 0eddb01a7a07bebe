from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

from ..exceptions import ErrorKind, FileAnalyzerError
from ..models import FileStats

logger = logging.getLogger(__name__)

DEFAULT_TEXT_EXTENSION = ".txt"


def analyze_file(path: str | Path, extension: str = DEFAULT_TEXT_EXTENSION) -> FileStats:
    """Count lines and characters of a single text file.

    Lines and characters are counted in two separate reads so each count can be
    checked on its own. Line terminators (``\\n``, ``\\r``, ``\\r\\n``) are kept
    as-is and count toward the character total.

    Raises ``FILE_NOT_FOUND`` if *path* does not exist, ``INVALID_FILE_TYPE``
    if its name does not end with *extension* and ``FILE_PROCESSING`` on any
    read failure. No partially populated stats are ever returned.
    """
    path = Path(path)
    if not path.exists():
        raise FileAnalyzerError(ErrorKind.FILE_NOT_FOUND, f"File does not exist: {path}")
    if not path.name.lower().endswith(extension.lower()):
        raise FileAnalyzerError(
            ErrorKind.INVALID_FILE_TYPE,
            f"Only {extension} files can be analyzed. Found: {path.name}",
        )

    worker = threading.current_thread().name
    start_time = datetime.now(timezone.utc)
    t0 = time.perf_counter_ns()

    line_count = _count_lines(path)
    character_count = _count_characters(path)

    elapsed_ns = time.perf_counter_ns() - t0
    end_time = datetime.now(timezone.utc)
    logger.debug(
        "Analyzed %s in %.3f ms (%d lines, %d chars)",
        path.name, elapsed_ns / 1_000_000, line_count, character_count,
    )
    return FileStats(
        file_name=path.name,
        line_count=line_count,
        character_count=character_count,
        processing_time_ns=elapsed_ns,
        worker_name=worker,
        start_time=start_time,
        end_time=end_time,
        completed=True,
    )


def _count_lines(path: Path) -> int:
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            return sum(1 for _ in f)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error counting lines in file: %s", path)
        raise FileAnalyzerError(
            ErrorKind.FILE_PROCESSING, f"Failed to count lines in file: {path}",
        ) from exc


def _count_characters(path: Path) -> int:
    try:
        with path.open("r", encoding="utf-8", newline="") as f:
            return len(f.read())
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error counting characters in file: %s", path)
        raise FileAnalyzerError(
            ErrorKind.FILE_PROCESSING, f"Failed to count characters in file: {path}",
        ) from exc
