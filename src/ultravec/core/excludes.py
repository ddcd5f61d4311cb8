"""Directories the file scanner never descends into.

Two tiers:

HARDCODED_DIRS
    VCS internals and the ultravec store directory. Skipped even when a
    .gitignore negation names them.
DEFAULT_PRUNABLE_DIRS
    Dependency, cache and build output trees. Skipped unless the project's
    .gitignore re-includes them with a ``!name/`` rule.
"""

from __future__ import annotations

from itertools import chain

# Holds the store file and project config.yaml, relative to the project root
STORE_DIRNAME = ".ultra-mcp"

HARDCODED_DIRS: frozenset[str] = frozenset({".git", ".svn", ".hg", ".bzr", STORE_DIRNAME})

_DEFAULT_SKIPS: dict[str, tuple[str, ...]] = {
    "node": ("node_modules", "bower_components", ".next", ".nuxt", ".turbo"),
    "python": (
        "venv",
        ".venv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        "site-packages",
    ),
    "rust": ("target",),
    "output": ("dist", "build", "coverage", ".nyc_output"),
    "cache": (".cache",),
}

DEFAULT_PRUNABLE_DIRS: frozenset[str] = frozenset(chain.from_iterable(_DEFAULT_SKIPS.values()))

PRUNABLE_DIRS: frozenset[str] = HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS


def is_hardcoded_dir(dirname: str) -> bool:
    return dirname in HARDCODED_DIRS


def is_default_prunable(dirname: str) -> bool:
    return dirname in DEFAULT_PRUNABLE_DIRS


# Appended to a project's .gitignore on first index
GITIGNORE_BLOCK = f"\n# Ultra MCP vector index\n{STORE_DIRNAME}/\n"
