"""Decides which files and directories the scanner skips.

Three layers are consulted, strongest first: HARDCODED_DIRS (never
entered), DEFAULT_PRUNABLE_DIRS (entered only when .gitignore re-includes
them with "!name/"), and the rules of the project's root .gitignore.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import Path

import structlog

from ultravec.core.excludes import (
    DEFAULT_PRUNABLE_DIRS,
    GITIGNORE_BLOCK,
    HARDCODED_DIRS,
    PRUNABLE_DIRS,
    STORE_DIRNAME,
    is_hardcoded_dir,
)

__all__ = [
    "PRUNABLE_DIRS",
    "HARDCODED_DIRS",
    "DEFAULT_PRUNABLE_DIRS",
    "IgnoreChecker",
    "ensure_gitignore_entry",
    "matches_glob",
]

log = structlog.get_logger()

GITIGNORE_NAME = ".gitignore"


@dataclass(frozen=True, slots=True)
class _Rule:
    pattern: str
    negated: bool
    dir_only: bool
    anchored: bool


def _parse_line(raw: str) -> _Rule | None:
    line = raw.rstrip()
    if not line or line.startswith("#"):
        return None

    negated = line.startswith("!")
    if negated:
        line = line[1:]
    elif line.startswith("\\"):
        # "\#foo" and "\!foo" escape a literal first character
        line = line[1:]

    dir_only = line.endswith("/")
    line = line.rstrip("/")
    # A slash at the start or in the middle anchors the pattern to the root
    anchored = "/" in line
    line = line.lstrip("/")
    if line.startswith("**/"):
        line = line[3:]
        anchored = "/" in line
    if not line:
        return None
    return _Rule(pattern=line, negated=negated, dir_only=dir_only, anchored=anchored)


class IgnoreChecker:
    """Root .gitignore rules plus the directory tiers of core.excludes.

    Pattern syntax follows .gitignore:
    - Blank lines and # comments are skipped
    - Later patterns override earlier ones; ! negates
    - A trailing / only matches directories
    - Patterns containing a / are relative to the root, others match at any depth
    - Once a directory is ignored, nothing beneath it can be re-included
    """

    def __init__(self, root: Path, extra_patterns: list[str] | None = None) -> None:
        self._root = root
        self._rules: list[_Rule] = []
        self._negated_dirs: set[str] = set()
        self._load_ignore_file(root / GITIGNORE_NAME)
        for line in extra_patterns or []:
            self._add_line(line)

    @property
    def negated_dirs(self) -> frozenset[str]:
        """Directory names opted back in with "!name/" in .gitignore."""
        return frozenset(self._negated_dirs)

    def should_prune_dir(self, dirname: str) -> bool:
        """True when the scanner should not descend into dirname.

        With "!build/" in .gitignore:
            checker.should_prune_dir("build")  # False
            checker.should_prune_dir(".git")   # True, always
            checker.should_prune_dir("node_modules")  # True, not re-included
        """
        if is_hardcoded_dir(dirname):
            return True
        if dirname in DEFAULT_PRUNABLE_DIRS:
            return dirname not in self._negated_dirs
        return False

    def _load_ignore_file(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            # An unreadable ignore file behaves like an empty one
            log.warning("ignore_file.unreadable", path=str(path), error=str(e))
            return
        for line in content.splitlines():
            self._add_line(line)

    def _add_line(self, line: str) -> None:
        rule = _parse_line(line)
        if rule is None:
            return
        if rule.negated and not rule.anchored and not any(c in rule.pattern for c in "*?["):
            self._negated_dirs.add(rule.pattern)
        self._rules.append(rule)

    def _matches(self, parts: list[str], *, is_dir: bool) -> bool:
        rel = "/".join(parts)
        name = parts[-1]
        ignored = False
        for rule in self._rules:
            if rule.dir_only and not is_dir:
                continue
            target = rel if rule.anchored else name
            if fnmatch.fnmatchcase(target, rule.pattern):
                ignored = not rule.negated
        return ignored

    def is_excluded_rel(self, rel_path: str, *, is_dir: bool = False) -> bool:
        """Check a root-relative POSIX path against the loaded rules."""
        parts = [p for p in rel_path.replace("\\", "/").split("/") if p and p != "."]
        if not parts:
            return False
        for i in range(1, len(parts)):
            if self._matches(parts[:i], is_dir=True):
                return True
        return self._matches(parts, is_dir=is_dir)

    def should_ignore(self, path: Path) -> bool:
        try:
            rel_path = path.relative_to(self._root)
        except ValueError:
            return True
        return self.is_excluded_rel(rel_path.as_posix(), is_dir=path.is_dir())


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Check if a path matches a glob pattern, with ** support."""
    if fnmatch.fnmatch(rel_path, pattern):
        return True
    # Handle **/pattern for any-depth matching
    if pattern.startswith("**/"):
        return fnmatch.fnmatch(rel_path, pattern[3:])
    return False


def ensure_gitignore_entry(root: Path) -> bool:
    """Append the store directory to the project's .gitignore if missing.

    Best-effort: failures are logged and never raised.

    Returns:
        True if the file was modified.
    """
    path = root / GITIGNORE_NAME
    try:
        content = path.read_text(encoding="utf-8") if path.exists() else ""
        if STORE_DIRNAME in content:
            return False
        if not content:
            block = GITIGNORE_BLOCK.lstrip("\n")
        elif content.endswith("\n"):
            block = GITIGNORE_BLOCK
        else:
            block = "\n" + GITIGNORE_BLOCK
        with path.open("a", encoding="utf-8") as f:
            f.write(block)
    except (OSError, UnicodeDecodeError) as e:
        log.warning("gitignore.update_failed", path=str(path), error=str(e))
        return False
    log.info("gitignore.updated", path=str(path), entry=f"{STORE_DIRNAME}/")
    return True
