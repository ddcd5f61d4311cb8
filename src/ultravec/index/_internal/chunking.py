"""Fixed-window text chunking and content addressing.

Chunk ids are "<relpath>#<index>" and chunk hashes are SHA-256 hex digests
of the chunk text, so re-chunking an unchanged file reproduces the same
(id, hash) pairs and the indexer can skip it.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterator
from dataclasses import dataclass


def content_hash(text: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def chunk_id(relpath: str, index: int) -> str:
    return f"{relpath}#{index}"


def mtime_ms(st_mtime_ns: int) -> int:
    """File mtime in integer milliseconds."""
    return st_mtime_ns // 1_000_000


@dataclass(frozen=True, slots=True)
class ChunkCandidate:
    """A chunk produced from a file, before it is embedded."""

    id: str
    relpath: str
    text: str
    content_hash: str
    mtime_ms: int


class _Chunks:
    """Lazy, restartable iterable over the windows of one text."""

    __slots__ = ("_text", "_size", "_step")

    def __init__(self, text: str, size: int, step: int) -> None:
        self._text = text
        self._size = size
        self._step = step

    def __iter__(self) -> Iterator[str]:
        text = self._text
        if not text.strip():
            return
        start = 0
        length = len(text)
        while True:
            end = min(start + self._size, length)
            window = text[start:end]
            if window.strip():
                yield window
            if end >= length:
                return
            start += self._step


class TextChunker:
    """Split text into windows of at most chunk_size characters.

    Consecutive windows share exactly chunk_overlap characters and the last
    window ends at the end of the text. Whitespace-only windows are dropped.
    """

    def __init__(self, chunk_size: int, chunk_overlap: int) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap} "
                f"with chunk_size {chunk_size}"
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split(self, text: str) -> _Chunks:
        return _Chunks(text, self.chunk_size, self.chunk_size - self.chunk_overlap)

    def candidates(self, relpath: str, text: str, file_mtime_ms: int) -> Iterator[ChunkCandidate]:
        """Chunks of one file, numbered in emission order."""
        for index, chunk in enumerate(self.split(text)):
            yield ChunkCandidate(
                id=chunk_id(relpath, index),
                relpath=relpath,
                text=chunk,
                content_hash=content_hash(chunk),
                mtime_ms=file_mtime_ms,
            )
