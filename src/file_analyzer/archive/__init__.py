from __future__ import annotations

from .builder import (
    COMPRESSION_METHOD,
    ZIP_LOCAL_HEADER_SIGNATURE,
    ArchiveBuilder,
    ensure_directory,
    find_text_files,
)

__all__ = [
    "COMPRESSION_METHOD",
    "ZIP_LOCAL_HEADER_SIGNATURE",
    "ArchiveBuilder",
    "ensure_directory",
    "find_text_files",
]
