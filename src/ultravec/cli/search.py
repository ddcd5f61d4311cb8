"""ultravec search command - query a project's vector index."""

import json
from dataclasses import asdict
from pathlib import Path

import click

from ultravec.cli.utils import fail, find_project_root, load_project_config
from ultravec.config.constants import PREVIEW_CHARS, SEARCH_MAX_LIMIT
from ultravec.core.errors import UltravecError
from ultravec.core.progress import pluralize, spinner
from ultravec.embeddings import PROVIDERS, create_embedding_client
from ultravec.index import SearchEngine, SearchResult, VectorStore


def _preview(text: str) -> str:
    flat = text.replace("\r\n", " ").replace("\n", " ")
    if len(flat) > PREVIEW_CHARS:
        return flat[:PREVIEW_CHARS] + "..."
    return flat


def _echo_results(query: str, results: list[SearchResult]) -> None:
    if not results:
        click.echo(f'No results found for "{query}"')
        return
    click.echo(f'Found {pluralize(len(results), "result")} for "{query}":\n')
    for rank, r in enumerate(results, start=1):
        click.echo(f"{rank}. {r.relpath} (similarity {r.similarity * 100:.1f}%, chunk {r.chunk_id})")
        click.echo(f"   {_preview(r.chunk)}\n")


@click.command()
@click.argument("query")
@click.option("--path", "path", default=None, type=click.Path(exists=True, file_okay=False, path_type=Path), help="Project root")
@click.option("--provider", type=click.Choice(PROVIDERS), default=None, help="Embedding provider")
@click.option("--limit", type=click.IntRange(1, SEARCH_MAX_LIMIT), default=None, help="Maximum results (1-50)")
@click.option("--threshold", type=click.FloatRange(0.0, 1.0), default=None, help="Minimum similarity (0-1)")
@click.option("--files-only", is_flag=True, help="Only print the distinct matching file paths")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search_command(
    ctx: click.Context,
    query: str,
    path: Path | None,
    provider: str | None,
    limit: int | None,
    threshold: float | None,
    files_only: bool,
    as_json: bool,
) -> None:
    """Search indexed files with a natural-language QUERY."""
    project_root = find_project_root(path)
    config = load_project_config(ctx, project_root)
    limit = limit if limit is not None else min(config.limits.search_default, SEARCH_MAX_LIMIT)
    threshold = threshold if threshold is not None else config.limits.similarity_threshold_default

    try:
        with VectorStore.open(project_root, config=config) as store:
            if store.count() == 0:
                raise click.ClickException(
                    "No vectors found. Please run 'ultravec index' first."
                )
            client = create_embedding_client(config, provider)
            try:
                engine = SearchEngine(store, client)
                with spinner("Searching"):
                    if files_only:
                        files = engine.related_files(query, limit=limit, similarity_threshold=threshold)
                    else:
                        results = engine.search(query, limit=limit, similarity_threshold=threshold)
            finally:
                client.close()
    except UltravecError as e:
        raise fail(e) from e

    if files_only:
        if as_json:
            click.echo(json.dumps(files, indent=2))
        elif files:
            click.echo("\n".join(files))
        else:
            click.echo(f'No related files found for "{query}"')
        return

    if as_json:
        click.echo(json.dumps([asdict(r) for r in results], indent=2))
    else:
        _echo_results(query, results)
