"""ultravec status command - show the state of a project's vector index."""

import json
from pathlib import Path

import click

from ultravec.cli.utils import fail, find_project_root, load_project_config
from ultravec.core.errors import UltravecError
from ultravec.index import VectorStore, store_path


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status_command(ctx: click.Context, path: Path | None, as_json: bool) -> None:
    """Show vector index status.

    PATH is the project root (default: nearest directory with .ultra-mcp or
    .git above the current directory).
    """
    project_root = find_project_root(path)
    config = load_project_config(ctx, project_root)
    db_path = store_path(project_root)

    if not db_path.exists():
        if as_json:
            click.echo(json.dumps({"store": str(db_path), "exists": False}))
        else:
            click.echo("Vector index: not created. Run 'ultravec index' first.")
            click.echo(f"Project: {project_root}")
        return

    try:
        with VectorStore.open(project_root, config=config) as store:
            info = {
                "store": str(db_path),
                "exists": True,
                "vectors": store.count(),
                "dimension": store.dimension,
                "backend": store.backend.value,
            }
    except UltravecError as e:
        raise fail(e) from e

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.echo(f"Project: {project_root}")
    click.echo(f"Store: {info['store']}")
    click.echo(f"Vectors: {info['vectors']}")
    click.echo(f"Dimension: {info['dimension'] if info['dimension'] is not None else 'unknown'}")
    click.echo(f"Search backend: {info['backend']}")
