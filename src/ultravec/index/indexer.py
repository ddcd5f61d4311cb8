"""Project indexing: scan, chunk, change-detect, embed, store.

Batches are processed strictly in order: one batch's embedding call and its
writes complete before the next batch is read. Progress is a lazy stream of
events (ScanCompleted, BatchCompleted per batch, then IndexCompleted).
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from pathlib import Path

import structlog

from ultravec.config.models import UltravecConfig
from ultravec.core.errors import EmbeddingProviderError, ScanError
from ultravec.embeddings.base import EmbeddingClient
from ultravec.index._internal.chunking import ChunkCandidate, TextChunker, mtime_ms
from ultravec.index._internal.db.codec import encode_vector
from ultravec.index._internal.db.store import VectorStore, now_ms
from ultravec.index._internal.discovery import FileScanner
from ultravec.index._internal.ignore import ensure_gitignore_entry
from ultravec.index.models import (
    BatchCompleted,
    IndexCompleted,
    IndexEvent,
    IndexResult,
    ScanCompleted,
    VectorChunk,
)

log = structlog.get_logger()

ProgressCallback = Callable[[IndexEvent], None]


class Indexer:
    """Indexes one project into an already-open VectorStore."""

    def __init__(
        self,
        project_path: Path,
        store: VectorStore,
        client: EmbeddingClient,
        config: UltravecConfig | None = None,
    ) -> None:
        self.project_path = project_path.resolve()
        self.store = store
        self.client = client
        self.config = config or UltravecConfig()
        vector = self.config.vector
        self._chunker = TextChunker(vector.chunk_size, vector.chunk_overlap)

    def _scanner(self) -> FileScanner:
        return FileScanner(
            self.project_path,
            self.config.vector.file_patterns,
            max_file_size_bytes=self.config.index.max_file_size_mb * 1024 * 1024,
        )

    def _read_candidates(self, path: Path) -> list[ChunkCandidate]:
        """All chunks of one file.

        Raises:
            ScanError: The file could not be read or decoded.
        """
        rel = path.relative_to(self.project_path).as_posix()
        try:
            stat = path.stat()
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ScanError.read_failed(rel, str(e)) from e
        return list(self._chunker.candidates(rel, text, mtime_ms(stat.st_mtime_ns)))

    def _needs_embedding(self, candidate: ChunkCandidate) -> bool:
        stored = self.store.get_by_id(candidate.id)
        if stored is None:
            return True
        return stored.hash != candidate.content_hash or stored.mtime_ms != candidate.mtime_ms

    def _embed_and_store(self, pending: list[ChunkCandidate]) -> int:
        texts = [c.text for c in pending]
        vectors = self.client.get_embeddings(texts)
        if len(vectors) != len(pending):
            raise EmbeddingProviderError.batch_mismatch(
                self.client.name, len(pending), len(vectors)
            )
        created_at = now_ms()
        rows = [
            VectorChunk(
                id=c.id,
                relpath=c.relpath,
                chunk=c.text,
                hash=c.content_hash,
                mtime_ms=c.mtime_ms,
                embedding=encode_vector(v),
                created_at=created_at,
            )
            for c, v in zip(pending, vectors, strict=True)
        ]
        return self.store.upsert_many(rows)

    def iter_events(self, force: bool = False) -> Iterator[IndexEvent]:
        """Run the index, yielding progress events in order.

        Raises:
            EmbeddingProviderError: The provider failed; earlier batches stay stored.
            StoreError: A batch could not be written (including dimension mismatches).
        """
        start = time.perf_counter()
        ensure_gitignore_entry(self.project_path)

        files = self._scanner().scan()
        total = len(files)
        yield ScanCompleted(files_total=total)

        if not files:
            log.warning("indexer.no_files", project=str(self.project_path))
            yield IndexCompleted(IndexResult(0, 0, _elapsed_ms(start)))
            return

        batch_size = self.config.vector.batch_size
        files_indexed = 0
        chunks_created = 0
        skipped: list[str] = []

        for batch_number, offset in enumerate(range(0, total, batch_size), start=1):
            batch = files[offset : offset + batch_size]
            pending: list[ChunkCandidate] = []
            pending_files: set[str] = set()

            for path in batch:
                try:
                    candidates = self._read_candidates(path)
                except ScanError as e:
                    log.warning("indexer.file_skipped", path=e.details["path"], error=e.message)
                    skipped.append(e.details["path"])
                    continue
                for candidate in candidates:
                    if force or self._needs_embedding(candidate):
                        pending.append(candidate)
                        pending_files.add(candidate.relpath)

            written = self._embed_and_store(pending) if pending else 0
            files_indexed += len(pending_files)
            chunks_created += written
            log.debug(
                "indexer.batch_done",
                batch=batch_number,
                files=len(batch),
                chunks_written=written,
            )
            yield BatchCompleted(
                batch_number=batch_number,
                files_processed=min(offset + batch_size, total),
                files_total=total,
                chunks_written=written,
            )

        result = IndexResult(files_indexed, chunks_created, _elapsed_ms(start))
        log.info(
            "indexer.complete",
            files_total=total,
            files_indexed=files_indexed,
            chunks_created=chunks_created,
            skipped=len(skipped),
            elapsed_ms=result.elapsed_ms,
        )
        yield IndexCompleted(result, skipped)

    def run(self, force: bool = False, on_progress: ProgressCallback | None = None) -> IndexResult:
        """Drain iter_events(), forwarding each event to on_progress."""
        result: IndexResult | None = None
        for event in self.iter_events(force=force):
            if on_progress is not None:
                on_progress(event)
            if isinstance(event, IndexCompleted):
                result = event.result
        assert result is not None
        return result


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def index_project(
    project_path: Path,
    client: EmbeddingClient,
    config: UltravecConfig | None = None,
    *,
    force: bool = False,
    on_progress: ProgressCallback | None = None,
) -> IndexResult:
    """Open the project's store, index it, and close the store."""
    with VectorStore.open(project_path, dimension=client.dimension, config=config) as store:
        return Indexer(project_path, store, client, config).run(force=force, on_progress=on_progress)
