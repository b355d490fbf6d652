"""Tests for core/excludes.py tiers."""

from __future__ import annotations

from codescope.core.excludes import (
    DEFAULT_IGNORE_PATTERNS,
    DEFAULT_PRUNABLE_DIRS,
    HARDCODED_DIRS,
    PRUNABLE_DIRS,
    is_default_prunable,
    is_hardcoded_dir,
)


class TestDirectoryTiers:
    def test_vcs_and_data_dirs_are_hardcoded(self) -> None:
        for name in (".git", ".svn", ".hg", ".codescope"):
            assert is_hardcoded_dir(name)

    def test_dependency_and_build_dirs_are_default_prunable(self) -> None:
        for name in ("node_modules", "__pycache__", ".venv", "dist", "build", "target"):
            assert is_default_prunable(name)
            assert not is_hardcoded_dir(name)

    def test_tiers_are_disjoint_and_combined(self) -> None:
        assert not HARDCODED_DIRS & DEFAULT_PRUNABLE_DIRS
        assert PRUNABLE_DIRS == HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS

    def test_source_dirs_not_pruned(self) -> None:
        for name in ("src", "lib", "app", "tests"):
            assert name not in PRUNABLE_DIRS


class TestDefaultPatterns:
    def test_minified_and_map_files_ignored(self) -> None:
        assert "*.min.js" in DEFAULT_IGNORE_PATTERNS
        assert "*.map" in DEFAULT_IGNORE_PATTERNS

    def test_index_directory_ignored(self) -> None:
        assert ".codescope/**" in DEFAULT_IGNORE_PATTERNS
