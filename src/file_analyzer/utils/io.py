from __future__ import annotations
import json
import re
import traceback as tb_mod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from ..exceptions import FileAnalyzerError


def write_report(path: Path, report: Mapping[str, Any]) -> Path:
    """Write *report* as indented JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
    return path


def write_failure(
    failures_dir: Path, stage: str, name: str, error: BaseException,
) -> Path:
    """Write a failure record to failures/<stage>_<name>.json.

    Returns the path of the written file.
    """
    failures_dir.mkdir(parents=True, exist_ok=True)
    safe_name = re.sub(r"[^\w\-]", "_", name)
    path = failures_dir / f"{stage}_{safe_name}.json"
    cause = error.__cause__
    record = {
        "stage": stage,
        "name": name,
        "error_type": type(error).__name__,
        "error_kind": error.kind.value if isinstance(error, FileAnalyzerError) else None,
        "error_message": error.message if isinstance(error, FileAnalyzerError) else str(error),
        "cause_type": type(cause).__name__ if cause is not None else None,
        "traceback": tb_mod.format_exception(type(error), error, error.__traceback__),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    return path
