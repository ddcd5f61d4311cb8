"""Tests for core/progress.py module.

Covers:
- _stderr_is_tty() helper
- status() function
- pluralize() function
- spinner() context manager
- suppress_console_logs() context manager
- FileProgress in non-TTY mode
"""

from __future__ import annotations

import sys
from io import StringIO
from unittest.mock import patch

import pytest
from rich.console import Console

from ultravec.core.progress import (
    _PREFIXES,
    FileProgress,
    _stderr_is_tty,
    get_console,
    is_console_suppressed,
    pluralize,
    spinner,
    status,
    suppress_console_logs,
)


def _capture_console() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, force_terminal=False, width=120), buffer


class TestIsTty:
    """Tests for the stderr TTY check."""

    def test_false_for_stringio(self) -> None:
        """Returns False for non-TTY stderr."""
        original = sys.stderr
        try:
            sys.stderr = StringIO()
            assert _stderr_is_tty() is False
        finally:
            sys.stderr = original


class TestStatus:
    """Tests for status function."""

    @pytest.mark.parametrize("style", sorted(_PREFIXES))
    def test_prints_message_for_each_style(self, style: str) -> None:
        console, buffer = _capture_console()
        with patch("ultravec.core.progress._console", console):
            status("Index cleared", style=style)
        assert "Index cleared" in buffer.getvalue()

    def test_indent_prefixes_spaces(self) -> None:
        console, buffer = _capture_console()
        with patch("ultravec.core.progress._console", console):
            status("nested", style="none", indent=4)
        assert buffer.getvalue().startswith("    nested")

    def test_get_console_is_shared(self) -> None:
        assert get_console() is get_console()


class TestPluralize:
    """Tests for pluralize function."""

    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "0 files"), (1, "1 file"), (2, "2 files")],
    )
    def test_default_plural(self, count: int, expected: str) -> None:
        assert pluralize(count, "file") == expected

    def test_custom_plural(self) -> None:
        assert pluralize(3, "index", "indices") == "3 indices"


class TestSuppressConsoleLogs:
    """Tests for console suppression."""

    def test_active_only_inside_context(self) -> None:
        assert is_console_suppressed() is False
        with suppress_console_logs():
            assert is_console_suppressed() is True
        assert is_console_suppressed() is False

    def test_reset_after_exception(self) -> None:
        with pytest.raises(RuntimeError), suppress_console_logs():
            raise RuntimeError("boom")
        assert is_console_suppressed() is False


class TestSpinner:
    """Tests for spinner in non-TTY mode."""

    def test_prints_message_once(self) -> None:
        console, buffer = _capture_console()
        with (
            patch("ultravec.core.progress._console", console),
            patch("ultravec.core.progress._stderr_is_tty", return_value=False),
            spinner("Searching"),
        ):
            pass
        assert buffer.getvalue() == "Searching...\n"


class TestFileProgress:
    """Tests for FileProgress in non-TTY mode."""

    def test_updates_print_processed_lines(self) -> None:
        console, buffer = _capture_console()
        with patch("ultravec.core.progress._stderr_is_tty", return_value=False):
            with FileProgress("Indexing", console=console) as bar:
                bar.start(20)
                bar.update(10)
                bar.update(20)
        lines = buffer.getvalue().splitlines()
        assert lines == ["  Processed 10 / 20 files", "  Processed 20 / 20 files"]

    def test_custom_unit(self) -> None:
        console, buffer = _capture_console()
        with patch("ultravec.core.progress._stderr_is_tty", return_value=False):
            with FileProgress("Embedding", unit="chunks", console=console) as bar:
                bar.start(5)
                bar.update(5)
        assert "5 / 5 chunks" in buffer.getvalue()
