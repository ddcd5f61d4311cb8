"""Project file discovery for the vector index.

Walks the project once, pruning excluded directories in place, and keeps
the files that match at least one include glob and are not ignored.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

import structlog

from ultravec.index._internal.ignore import IgnoreChecker, matches_glob

log = structlog.get_logger()


class FileScanner:
    """Enumerates indexable files under a project root.

    Dot-files and dot-directories are never matched. Directories in the
    tiered exclude sets and anything the root .gitignore ignores are skipped.
    """

    def __init__(
        self,
        root: Path,
        patterns: Sequence[str],
        *,
        max_file_size_bytes: int | None = None,
        ignore_checker: IgnoreChecker | None = None,
    ) -> None:
        self.root = root.resolve()
        self.patterns = list(patterns)
        self.max_file_size_bytes = max_file_size_bytes
        self._ignore = ignore_checker or IgnoreChecker(root)

    def _prune(self, rel_dir: str, dirnames: list[str]) -> None:
        kept: list[str] = []
        for d in dirnames:
            if d.startswith(".") or self._ignore.should_prune_dir(d):
                continue
            rel = f"{rel_dir}/{d}" if rel_dir else d
            if self._ignore.is_excluded_rel(rel, is_dir=True):
                continue
            kept.append(d)
        dirnames[:] = kept

    def _matches_patterns(self, rel_str: str) -> bool:
        return any(matches_glob(rel_str, pattern) for pattern in self.patterns)

    def _too_large(self, full_path: Path) -> bool:
        if self.max_file_size_bytes is None:
            return False
        try:
            size = full_path.stat().st_size
        except OSError:
            return True
        if size > self.max_file_size_bytes:
            log.debug("scan.file_too_large", path=str(full_path), size=size)
            return True
        return False

    def iter_files(self) -> set[Path]:
        """Return absolute paths of all files to index. No ordering guarantee."""
        found: set[Path] = set()
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            if rel_dir == ".":
                rel_dir = ""
            # Prune dirs in-place to skip expensive subtrees
            self._prune(rel_dir, dirnames)

            for filename in filenames:
                if filename.startswith("."):
                    continue
                rel_str = f"{rel_dir}/{filename}" if rel_dir else filename
                if not self._matches_patterns(rel_str):
                    continue
                if self._ignore.is_excluded_rel(rel_str):
                    continue
                full_path = Path(dirpath) / filename
                if not full_path.is_file() or self._too_large(full_path):
                    continue
                found.add(full_path)
        return found

    def scan(self) -> list[Path]:
        """Sorted variant of iter_files() for deterministic progress reporting."""
        files = sorted(self.iter_files())
        log.debug("scan.complete", root=str(self.root), files=len(files))
        return files
