"""ultravec clear command - remove every vector from a project's index."""

from pathlib import Path

import click
import questionary
from rich.console import Console

from ultravec.cli.utils import fail, find_project_root, load_project_config
from ultravec.config import UltravecConfig
from ultravec.core.errors import UltravecError
from ultravec.index import VectorStore, store_path


def clear_index(project_root: Path, config: UltravecConfig, *, yes: bool = False) -> int | None:
    """Delete all vectors of a project.

    Returns the number of vectors removed, or None if cancelled or there
    was nothing to clear.
    """
    console = Console(stderr=True)
    db_path = store_path(project_root)

    if not db_path.exists():
        console.print("[yellow]Nothing to clear[/yellow] - no vector index found")
        return None

    with VectorStore.open(project_root, config=config) as store:
        count = store.count()
        if count == 0:
            console.print("[yellow]Nothing to clear[/yellow] - the vector index is empty")
            return None

        console.print(f"\n[bold]{count} vectors will be permanently deleted from[/bold] {db_path}\n")

        if not yes:
            answer = questionary.select(
                "This action cannot be undone. Are you sure?",
                choices=[
                    questionary.Choice("No, keep the index", value=False),
                    questionary.Choice("Yes, delete all vectors", value=True),
                ],
                style=questionary.Style(
                    [
                        ("question", "bold"),
                        ("highlighted", "fg:red bold"),
                        ("selected", "fg:red"),
                    ]
                ),
            ).ask()

            if not answer:
                console.print("[dim]Cancelled[/dim]")
                return None

        removed = store.clear()

    console.print(f"[green]✓[/green] Removed {removed} vectors")
    return removed


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear_command(ctx: click.Context, path: Path | None, yes: bool) -> None:
    """Remove all vectors from the project's index.

    The store file and its dimension are kept, so the next index run
    starts from an empty table.

    PATH is the project root (default: nearest directory with .ultra-mcp or
    .git above the current directory).
    """
    project_root = find_project_root(path)
    config = load_project_config(ctx, project_root)
    try:
        clear_index(project_root, config, yes=yes)
    except UltravecError as e:
        raise fail(e) from e
