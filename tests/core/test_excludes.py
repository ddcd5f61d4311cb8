"""Tests for the tiered exclude sets."""

import pytest

from ultravec.core.excludes import (
    DEFAULT_PRUNABLE_DIRS,
    GITIGNORE_BLOCK,
    HARDCODED_DIRS,
    PRUNABLE_DIRS,
    STORE_DIRNAME,
    is_default_prunable,
    is_hardcoded_dir,
)


class TestTiers:
    """Tier membership tests."""

    def test_store_dir_is_hardcoded(self) -> None:
        assert STORE_DIRNAME == ".ultra-mcp"
        assert is_hardcoded_dir(STORE_DIRNAME)

    @pytest.mark.parametrize("name", [".git", ".svn", ".hg", ".bzr"])
    def test_vcs_dirs_are_hardcoded(self, name: str) -> None:
        assert is_hardcoded_dir(name)
        assert not is_default_prunable(name)

    @pytest.mark.parametrize("name", ["node_modules", "__pycache__", "dist", "build", "venv"])
    def test_dependency_and_build_dirs_are_default_prunable(self, name: str) -> None:
        assert is_default_prunable(name)
        assert not is_hardcoded_dir(name)

    def test_tiers_are_disjoint(self) -> None:
        assert not HARDCODED_DIRS & DEFAULT_PRUNABLE_DIRS

    def test_prunable_is_union(self) -> None:
        assert PRUNABLE_DIRS == HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS

    def test_source_dirs_are_not_excluded(self) -> None:
        assert "src" not in PRUNABLE_DIRS
        assert "lib" not in PRUNABLE_DIRS


class TestGitignoreBlock:
    def test_block_ignores_store_dir(self) -> None:
        assert f"{STORE_DIRNAME}/" in GITIGNORE_BLOCK.splitlines()
