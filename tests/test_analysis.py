"""Per-file analysis and result aggregation."""
from __future__ import annotations

import random
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from file_analyzer.analysis import aggregate_stats, analyze_file
from file_analyzer.exceptions import ErrorKind, FileAnalyzerError
from file_analyzer.models import FileStats


def _write(path: Path, text: str) -> Path:
    path.write_bytes(text.encode("utf-8"))
    return path


def _stats(name: str, lines: int, chars: int, ns: int = 1000, completed: bool = True) -> FileStats:
    now = datetime.now(timezone.utc)
    return FileStats(
        file_name=name,
        line_count=lines,
        character_count=chars,
        processing_time_ns=ns,
        worker_name="test",
        start_time=now,
        end_time=now,
        completed=completed,
    )


# ---------------------------------------------------------------------------
# analyze_file
# ---------------------------------------------------------------------------

class TestAnalyzeFile:
    def test_counts_lines_and_characters(self, tmp_path):
        p = _write(tmp_path / "a.txt", ("x" * 23 + "\n") * 5)
        stats = analyze_file(p)
        assert stats.file_name == "a.txt"
        assert stats.line_count == 5
        assert stats.character_count == 120
        assert stats.completed is True

    def test_empty_file(self, tmp_path):
        stats = analyze_file(_write(tmp_path / "empty.txt", ""))
        assert stats.line_count == 0
        assert stats.character_count == 0
        assert stats.completed is True

    def test_last_line_without_terminator_counts(self, tmp_path):
        stats = analyze_file(_write(tmp_path / "a.txt", "one\ntwo"))
        assert stats.line_count == 2
        assert stats.character_count == 7

    def test_crlf_terminators_are_kept_in_character_count(self, tmp_path):
        stats = analyze_file(_write(tmp_path / "a.txt", "one\r\ntwo\r\n"))
        assert stats.line_count == 2
        assert stats.character_count == 10

    def test_non_ascii_counts_characters_not_bytes(self, tmp_path):
        stats = analyze_file(_write(tmp_path / "a.txt", "çağ\n"))
        assert stats.character_count == 4

    def test_extension_match_is_case_insensitive(self, tmp_path):
        stats = analyze_file(_write(tmp_path / "UPPER.TXT", "x\n"))
        assert stats.line_count == 1

    def test_records_timing_and_worker(self, tmp_path):
        stats = analyze_file(_write(tmp_path / "a.txt", "hello\n"))
        assert stats.worker_name == threading.current_thread().name
        assert stats.start_time <= stats.end_time
        assert stats.processing_time_ns >= 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileAnalyzerError) as exc_info:
            analyze_file(tmp_path / "nope.txt")
        assert exc_info.value.kind is ErrorKind.FILE_NOT_FOUND

    def test_wrong_extension(self, tmp_path):
        p = _write(tmp_path / "data.csv", "a,b\n")
        with pytest.raises(FileAnalyzerError) as exc_info:
            analyze_file(p)
        assert exc_info.value.kind is ErrorKind.INVALID_FILE_TYPE

    def test_missing_checked_before_extension(self, tmp_path):
        with pytest.raises(FileAnalyzerError) as exc_info:
            analyze_file(tmp_path / "data.csv")
        assert exc_info.value.kind is ErrorKind.FILE_NOT_FOUND

    def test_custom_extension(self, tmp_path):
        p = _write(tmp_path / "notes.md", "# title\nbody\n")
        assert analyze_file(p, extension=".md").line_count == 2

    def test_undecodable_content_is_processing_error(self, tmp_path):
        p = tmp_path / "bad.txt"
        p.write_bytes(b"\xff\xfe\xfa invalid")
        with pytest.raises(FileAnalyzerError) as exc_info:
            analyze_file(p)
        assert exc_info.value.kind is ErrorKind.FILE_PROCESSING
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_directory_with_text_suffix_is_processing_error(self, tmp_path):
        d = tmp_path / "folder.txt"
        d.mkdir()
        with pytest.raises(FileAnalyzerError) as exc_info:
            analyze_file(d)
        assert exc_info.value.kind is ErrorKind.FILE_PROCESSING
        assert isinstance(exc_info.value.cause, OSError)


# ---------------------------------------------------------------------------
# aggregate_stats
# ---------------------------------------------------------------------------

class TestAggregateStats:
    def test_sums_completed_entries(self):
        start = datetime.now(timezone.utc)
        result = aggregate_stats(
            [_stats("a", 5, 120), _stats("b", 10, 340), _stats("c", 0, 0)], start,
        )
        assert result.total_line_count == 15
        assert result.total_character_count == 460
        assert result.total_processed_files == 3
        assert result.successful_file_count == 3
        assert result.failed_file_count == 0
        assert result.total_processing_time_ns == 3000

    def test_incomplete_entries_count_as_failed(self):
        start = datetime.now(timezone.utc)
        result = aggregate_stats(
            [_stats("a", 5, 50, ns=10), _stats("b", 99, 999, ns=500, completed=False)], start,
        )
        assert result.total_line_count == 5
        assert result.total_character_count == 50
        assert result.total_processing_time_ns == 10
        assert result.successful_file_count == 1
        assert result.failed_file_count == 1
        assert result.successful_file_count + result.failed_file_count == result.total_processed_files

    def test_order_does_not_change_totals(self):
        start = datetime.now(timezone.utc)
        items = [_stats(f"f{i}", i, i * 7, completed=i % 3 != 0) for i in range(20)]
        shuffled = items[:]
        random.Random(42).shuffle(shuffled)
        a = aggregate_stats(items, start)
        b = aggregate_stats(shuffled, start)
        for attr in (
            "total_line_count", "total_character_count", "successful_file_count",
            "failed_file_count", "total_processing_time_ns", "total_processed_files",
        ):
            assert getattr(a, attr) == getattr(b, attr)

    def test_keeps_input_order(self):
        items = [_stats("z", 1, 1), _stats("a", 2, 2)]
        result = aggregate_stats(items, datetime.now(timezone.utc))
        assert [s.file_name for s in result.file_stats] == ["z", "a"]

    def test_stamps_start_and_end(self):
        start = datetime.now(timezone.utc) - timedelta(seconds=2)
        result = aggregate_stats([_stats("a", 1, 1)], start)
        assert result.analysis_start_time == start
        assert result.analysis_end_time >= start
        assert result.elapsed_s >= 2.0

    def test_empty_input(self):
        result = aggregate_stats([], datetime.now(timezone.utc))
        assert result.total_processed_files == 0
        assert result.total_line_count == 0
