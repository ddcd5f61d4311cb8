"""CLI utilities."""

from pathlib import Path

import click

from ultravec.config import UltravecConfig, load_config
from ultravec.core.errors import UltravecError
from ultravec.core.excludes import STORE_DIRNAME
from ultravec.core.logging import configure_logging, get_log_file_path


def find_project_root(start_path: Path | None = None) -> Path:
    """Find the project root from the given path.

    An explicit path is used as-is. Otherwise walks up from the current
    directory to the nearest directory holding an existing store
    (.ultra-mcp) or a .git directory, falling back to the current directory.
    """
    if start_path is not None:
        return start_path.resolve()

    cwd = Path.cwd().resolve()
    for current in (cwd, *cwd.parents):
        if (current / STORE_DIRNAME).is_dir() or (current / ".git").exists():
            return current
    return cwd


def load_project_config(ctx: click.Context, project_root: Path) -> UltravecConfig:
    """Load config for a project and apply its logging section.

    -v on the command group keeps DEBUG console logging regardless of config.
    """
    try:
        config = load_config(project_root)
    except UltravecError as e:
        raise fail(e) from e
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    if not verbose:
        configure_logging(config=config.logging)
    return config


def fail(error: UltravecError) -> click.ClickException:
    """Turn a domain error into a ClickException, pointing at the log file if any."""
    message = error.message
    log_path = get_log_file_path()
    if log_path is not None:
        message = f"{message}\nSee {log_path} for details."
    return click.ClickException(message)
