from __future__ import annotations

import logging
import shutil
import threading
import zipfile
import zlib
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Iterable

from ..exceptions import ErrorKind, FileAnalyzerError
from ..models import ArchiveInfo

logger = logging.getLogger(__name__)

ZIP_LOCAL_HEADER_SIGNATURE = b"PK\x03\x04"
COMPRESSION_METHOD = "ZIP_DEFLATED"

# zipfile surfaces corrupt deflate streams as zlib.error and truncated ones as EOFError.
_ZIP_READ_ERRORS = (
    OSError, EOFError, zlib.error, zipfile.BadZipFile, RuntimeError, NotImplementedError,
)


def find_text_files(directory: str | Path, extension: str = ".txt") -> list[Path]:
    """List regular files in *directory* (non-recursive) whose name ends with *extension*.

    Returned sorted by name so archive entry order is stable.
    """
    dir_path = Path(directory)
    if not dir_path.exists():
        raise FileAnalyzerError(ErrorKind.DIRECTORY_NOT_FOUND, f"Directory not found: {dir_path}")
    if not dir_path.is_dir():
        raise FileAnalyzerError(ErrorKind.DIRECTORY_ACCESS, f"Path is not a directory: {dir_path}")
    try:
        return sorted(
            (p for p in dir_path.iterdir()
             if p.is_file() and p.name.lower().endswith(extension.lower())),
            key=lambda p: p.name,
        )
    except OSError as exc:
        raise FileAnalyzerError(
            ErrorKind.DIRECTORY_ACCESS, f"Failed to access directory: {dir_path}",
        ) from exc


def ensure_directory(directory: Path) -> None:
    """Create *directory* and its parents; no error if it already exists."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileAnalyzerError(
            ErrorKind.DIRECTORY_ACCESS, f"Failed to create directory: {directory}",
        ) from exc


class ArchiveBuilder:
    """Creates, validates and extracts deflate-compressed ZIP archives.

    Entries are addressed by base file name only; the directory layout of the
    sources is not preserved.
    """

    def __init__(
        self,
        extension: str = ".txt",
        compression_level: int = 6,
        buffer_size: int = 4096,
    ) -> None:
        self.extension = extension
        self.compression_level = compression_level
        self.buffer_size = buffer_size

    @classmethod
    def from_settings(cls, cfg) -> ArchiveBuilder:
        return cls(
            extension=cfg.TEXT_EXTENSION,
            compression_level=cfg.COMPRESSION_LEVEL,
            buffer_size=cfg.EXTRACT_BUFFER_SIZE,
        )

    def find_text_files(self, directory: str | Path) -> list[Path]:
        return find_text_files(directory, self.extension)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_archive(self, input_dir: str | Path, output_path: str | Path) -> ArchiveInfo:
        """Archive every eligible file of *input_dir* into *output_path*.

        An input directory without eligible files yields an :class:`ArchiveInfo`
        with no entries and no archive is written.
        """
        input_dir = Path(input_dir)
        output_path = Path(output_path)
        start_time = datetime.now(timezone.utc)
        worker = threading.current_thread().name

        files = self.find_text_files(input_dir)
        if not files:
            logger.warning("No %s files found to archive in directory: %s", self.extension, input_dir)
            return ArchiveInfo(
                archive_name=output_path.name,
                archive_path=output_path,
                compression_method=COMPRESSION_METHOD,
                start_time=start_time,
                end_time=datetime.now(timezone.utc),
                worker_name=worker,
            )

        ensure_directory(output_path.parent)

        archived: list[str] = []
        source_bytes = 0
        try:
            with zipfile.ZipFile(
                output_path, "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            ) as zf:
                for f in files:
                    zf.write(f, arcname=f.name)
                    archived.append(f.name)
                    source_bytes += f.stat().st_size
        except (OSError, zipfile.BadZipFile) as exc:
            raise FileAnalyzerError(
                ErrorKind.ARCHIVE_CREATION, f"Failed to create ZIP archive: {exc}",
            ) from exc

        if not output_path.exists():
            raise FileAnalyzerError(
                ErrorKind.ARCHIVE_CREATION, f"ZIP file was not created successfully: {output_path}",
            )

        info = ArchiveInfo(
            archive_name=output_path.name,
            archive_path=output_path,
            archived_file_names=archived,
            size_bytes=output_path.stat().st_size,
            source_bytes=source_bytes,
            compression_method=COMPRESSION_METHOD,
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            worker_name=worker,
        )
        logger.info("Zipped %d files to %s (%d bytes)", len(archived), output_path, info.size_bytes)
        return info

    # ------------------------------------------------------------------
    # Validation / extraction
    # ------------------------------------------------------------------

    def validate(self, path: str | Path) -> bool:
        """True only for a file starting with the ZIP local header whose first entry reads."""
        path = Path(path)
        try:
            with path.open("rb") as fh:
                if fh.read(4) != ZIP_LOCAL_HEADER_SIGNATURE:
                    return False
            with zipfile.ZipFile(path) as zf:
                infos = zf.infolist()
                if not infos:
                    return False
                with zf.open(infos[0]) as entry:
                    entry.read(self.buffer_size)
            return True
        except _ZIP_READ_ERRORS as exc:
            logger.warning("Failed to validate ZIP file %s: %s", path, exc)
            return False

    def extract(self, path: str | Path, dest_dir: str | Path) -> list[Path]:
        """Extract *path* into *dest_dir* and return the written file paths.

        Entries that would resolve outside *dest_dir* (``..`` segments, absolute
        names) reject the whole archive before anything is written.
        """
        path = Path(path)
        dest_dir = Path(dest_dir)
        if not path.exists():
            raise FileAnalyzerError(ErrorKind.FILE_NOT_FOUND, f"ZIP file not found: {path}")
        if not self.validate(path):
            raise FileAnalyzerError(
                ErrorKind.INVALID_ARCHIVE, f"Invalid or corrupted ZIP file: {path}",
            )
        ensure_directory(dest_dir)
        root = dest_dir.resolve()

        written: list[Path] = []
        try:
            with zipfile.ZipFile(path) as zf:
                plan = [(info, _entry_target(root, info.filename)) for info in zf.infolist()]
                for info, target in plan:
                    if info.is_dir():
                        ensure_directory(target)
                        continue
                    ensure_directory(target.parent)
                    with zf.open(info) as src, target.open("wb") as dst:
                        shutil.copyfileobj(src, dst, self.buffer_size)
                    written.append(target)
        except _ZIP_READ_ERRORS as exc:
            raise FileAnalyzerError(
                ErrorKind.ARCHIVE_EXTRACTION, f"Failed to extract ZIP file: {exc}",
            ) from exc
        logger.info("Unzip process completed: %s (%d files)", dest_dir, len(written))
        return written

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def delete_sources(self, paths: Iterable[str | Path]) -> list[Path]:
        """Delete each path independently and return the ones that could not be removed.

        Already-missing files are not failures.
        """
        failed: list[Path] = []
        deleted = 0
        for p in paths:
            p = Path(p)
            try:
                p.unlink(missing_ok=True)
                deleted += 1
            except OSError as exc:
                logger.warning("Failed to delete source file %s: %s", p, exc)
                failed.append(p)
        logger.info("Deleted %d source files (%d failed)", deleted, len(failed))
        return failed


def _entry_target(root: Path, name: str) -> Path:
    target = root.joinpath(*PurePosixPath(name.replace("\\", "/")).parts).resolve()
    if target != root and not target.is_relative_to(root):
        raise FileAnalyzerError(
            ErrorKind.ARCHIVE_EXTRACTION, f"Archive entry escapes destination directory: {name}",
        )
    return target
