"""Terminal feedback for the ultravec CLI.

Everything is written to stderr so that ``--json`` and ``--files-only``
output on stdout stays machine-readable. Live displays (spinner, progress
bar) mute structlog's console handler while they are drawn; file handlers
keep logging.

    status("Index cleared", style="success")

    with spinner("Searching"):
        hits = engine.search(query)

    with FileProgress("Indexing") as bar:
        bar.start(total=120)
        bar.update(completed=10)
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from types import TracebackType

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TaskProgressColumn, TextColumn

_console = Console(stderr=True)

_PREFIXES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_live = threading.local()


def is_console_suppressed() -> bool:
    return getattr(_live, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Mute console log handlers for the duration of a live display."""
    previous = is_console_suppressed()
    _live.active = True
    try:
        yield
    finally:
        _live.active = previous


def _stderr_is_tty() -> bool:
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


def get_console() -> Console:
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """One styled line on stderr, mirrored to the debug log."""
    from ultravec.core.logging import get_logger

    _console.print(f"{' ' * indent}{_PREFIXES.get(style, '')}{message}", highlight=False)
    get_logger("progress").debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Count with the matching noun form, e.g. "1 file" or "3 files"."""
    return f"{count} {singular if count == 1 else (plural or singular + 's')}"


@contextmanager
def spinner(message: str, *, indent: int = 0) -> Iterator[None]:
    """Animated spinner on a TTY; a single "message..." line elsewhere."""
    text = f"{' ' * indent}{message}"
    if not _stderr_is_tty():
        _console.print(f"{text}...", highlight=False)
        yield
        return
    with suppress_console_logs(), _console.status(f"[cyan]{text}[/cyan]", spinner="dots"):
        yield


class FileProgress:
    """Progress bar whose total is only known once the work has started.

    The bar is rendered on a TTY only. Elsewhere each update is written as
    a plain "Processed X / Y files" line so CI logs still show movement.
    """

    def __init__(self, desc: str, *, unit: str = "files", console: Console | None = None):
        self._desc = desc
        self._unit = unit
        self._console = console or _console
        self._show_bar = _stderr_is_tty()
        self._stack = ExitStack()
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._total = 0

    def __enter__(self) -> FileProgress:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._stack.close()

    def start(self, total: int) -> None:
        self._total = total
        if not self._show_bar or total == 0:
            return
        self._stack.enter_context(suppress_console_logs())
        self._progress = self._stack.enter_context(
            Progress(
                TextColumn("    {task.description}:"),
                BarColumn(bar_width=25, style="cyan", complete_style="cyan"),
                TaskProgressColumn(),
                TextColumn("{task.completed}/{task.total} {task.fields[unit]}"),
                console=self._console,
                transient=True,
            )
        )
        self._task_id = self._progress.add_task(self._desc, total=total, unit=self._unit)

    def update(self, completed: int) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, completed=completed)
        else:
            self._console.print(
                f"  Processed {completed} / {self._total} {self._unit}", highlight=False
            )
