"""structlog setup for the CLI and library.

Every record goes through the stdlib logging tree so that library loggers
(httpx, sqlalchemy) share the same outputs. Each configured output gets its
own handler, level and renderer:

- console outputs (stderr/stdout) render with ConsoleRenderer and are muted
  while a Rich progress display is live
- file outputs render JSON lines; the first one is remembered so CLI errors
  can point at it

An index or search run binds a short ``run_id`` that is merged into every
record emitted until it is unbound.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from ultravec.config.models import LoggingConfig, LogOutputConfig

_RUN_ID_KEY = "run_id"
_CONSOLE_DESTINATIONS = ("stderr", "stdout")

# Quiet third-party loggers that narrate every request
_NOISY_LOGGERS = ("httpx", "httpcore")

_log_file_path: Path | None = None


def bind_run_id(run_id: str | None = None) -> str:
    """Tag subsequent records in this context with run_id (generated if omitted)."""
    rid = run_id or uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(**{_RUN_ID_KEY: rid})
    return rid


def current_run_id() -> str | None:
    return structlog.contextvars.get_contextvars().get(_RUN_ID_KEY)


def unbind_run_id() -> None:
    structlog.contextvars.unbind_contextvars(_RUN_ID_KEY)


def get_log_file_path() -> Path | None:
    """The file receiving logs from the last configure_logging() call, if any."""
    return _log_file_path


def _to_level(name: str | None, fallback: int) -> int:
    if not name:
        return fallback
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else fallback


class ConsoleSuppressingFilter(logging.Filter):
    """Drop console records while a Rich live display owns the terminal."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        # progress imports this module
        from ultravec.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _build_handler(
    output: LogOutputConfig,
    pre_chain: list[structlog.types.Processor],
    fallback_level: int,
) -> logging.Handler:
    is_console = output.destination in _CONSOLE_DESTINATIONS
    handler: logging.Handler
    renderer: structlog.types.Processor
    if is_console:
        stream = sys.stderr if output.destination == "stderr" else sys.stdout
        handler = logging.StreamHandler(stream)
        handler.addFilter(ConsoleSuppressingFilter())
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")

    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        colors = is_console and getattr(handler, "stream", sys.stderr).isatty()
        renderer = structlog.dev.ConsoleRenderer(colors=colors, pad_event_to=0, pad_level=False)

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )
    handler.setLevel(_to_level(output.level, fallback_level))
    return handler


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """(Re)configure logging.

    Without config, a single stderr output at ``level`` is set up, rendered
    as JSON when json_format is true.
    """
    global _log_file_path
    from ultravec.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    root_level = _to_level(config.level, logging.INFO)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
        old.close()
    root.setLevel(root_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _log_file_path = None
    for output in config.outputs:
        if _log_file_path is None and output.destination not in _CONSOLE_DESTINATIONS:
            _log_file_path = Path(output.destination)
        root.addHandler(_build_handler(output, pre_chain, root_level))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
