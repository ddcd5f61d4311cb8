"""ultravec index command - build or refresh a project's vector index."""

from pathlib import Path

import click

from ultravec.cli.utils import fail, find_project_root, load_project_config
from ultravec.core.errors import UltravecError
from ultravec.core.logging import bind_run_id, unbind_run_id
from ultravec.core.progress import FileProgress, pluralize, status
from ultravec.embeddings import PROVIDERS, create_embedding_client
from ultravec.index import (
    BatchCompleted,
    IndexCompleted,
    IndexResult,
    Indexer,
    ScanCompleted,
    VectorStore,
)


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--provider", type=click.Choice(PROVIDERS), default=None, help="Embedding provider")
@click.option("--force", is_flag=True, help="Re-embed every chunk, even unchanged ones")
@click.pass_context
def index_command(ctx: click.Context, path: Path | None, provider: str | None, force: bool) -> None:
    """Index project files for semantic search.

    PATH is the project root (default: nearest directory with .ultra-mcp or
    .git above the current directory).
    """
    project_root = find_project_root(path)
    config = load_project_config(ctx, project_root)
    bind_run_id()

    try:
        client = create_embedding_client(config, provider)
        try:
            with VectorStore.open(project_root, dimension=client.dimension, config=config) as store:
                existing = store.count()
                if existing > 0 and not force:
                    status(
                        f"Index already contains {pluralize(existing, 'vector')}; "
                        "only changed files will be re-embedded (use --force to rebuild)",
                        style="info",
                    )

                result: IndexResult | None = None
                with FileProgress("Indexing") as bar:
                    indexer = Indexer(project_root, store, client, config)
                    for event in indexer.iter_events(force=force):
                        if isinstance(event, ScanCompleted):
                            status(f"Found {pluralize(event.files_total, 'file')} to process")
                            bar.start(event.files_total)
                        elif isinstance(event, BatchCompleted):
                            bar.update(event.files_processed)
                        elif isinstance(event, IndexCompleted):
                            result = event.result
                            for skipped in event.skipped_files:
                                status(f"Skipped unreadable file {skipped}", style="warning")
                total = store.count()
        finally:
            client.close()
    except UltravecError as e:
        raise fail(e) from e
    finally:
        unbind_run_id()

    assert result is not None
    status(
        f"Indexed {pluralize(result.files_indexed, 'file')}, "
        f"created {pluralize(result.chunks_created, 'chunk')} "
        f"in {result.elapsed_ms / 1000:.1f}s",
        style="success",
    )
    status(f"Total vectors in index: {total}")
