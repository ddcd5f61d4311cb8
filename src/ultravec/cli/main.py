"""Ultravec CLI - ultravec command."""

import click

from ultravec.cli.clear import clear_command
from ultravec.cli.index import index_command
from ultravec.cli.search import search_command
from ultravec.cli.status import status_command
from ultravec.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="ultravec")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Ultravec - local semantic code search over a project's files."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(index_command, name="index")
cli.add_command(search_command, name="search")
cli.add_command(clear_command, name="clear")
cli.add_command(status_command, name="status")


if __name__ == "__main__":
    cli()
