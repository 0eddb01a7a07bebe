from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories raised by the pipeline."""

    DIRECTORY_NOT_FOUND = "DirectoryNotFound"
    DIRECTORY_ACCESS = "DirectoryAccess"
    FILE_NOT_FOUND = "FileNotFound"
    INVALID_FILE_TYPE = "InvalidFileType"
    FILE_PROCESSING = "FileProcessing"
    ARCHIVE_CREATION = "ArchiveCreation"
    ARCHIVE_EXTRACTION = "ArchiveExtraction"
    INVALID_ARCHIVE = "InvalidArchive"
    THREAD_EXECUTION = "ThreadExecution"
    THREAD_INTERRUPTED = "ThreadInterrupted"
    NO_CONTENT = "NoContent"


class FileAnalyzerError(Exception):
    """Base exception for file-analyzer.

    Every failure carries a :class:`ErrorKind`. The original fault, when there
    is one, is chained through ``raise ... from exc`` and exposed as ``cause``.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    @classmethod
    def wrap(
        cls, kind: ErrorKind, message: str, exc: BaseException,
    ) -> FileAnalyzerError:
        """Return *exc* unchanged if it is already typed, else a chained error of *kind*."""
        if isinstance(exc, FileAnalyzerError):
            return exc
        err = cls(kind, message)
        err.__cause__ = exc
        return err
