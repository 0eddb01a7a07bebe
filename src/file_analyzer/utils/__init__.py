from __future__ import annotations

from .io import write_failure, write_report

__all__ = ["write_failure", "write_report"]
