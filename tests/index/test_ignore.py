"""Tests for IgnoreChecker - shared path exclusion logic."""

from pathlib import Path

from codescope.index._internal.ignore import IgnoreChecker


class TestIgnoreChecker:
    """Tests for IgnoreChecker."""

    def test_init_without_gitignore(self, tmp_path: Path) -> None:
        """IgnoreChecker works when .gitignore doesn't exist."""
        checker = IgnoreChecker(tmp_path)
        assert not checker.should_ignore(tmp_path / "file.py")
        assert checker.gitignore_paths == []

    def test_init_with_extra_patterns(self, tmp_path: Path) -> None:
        """IgnoreChecker accepts extra patterns."""
        checker = IgnoreChecker(tmp_path, extra_patterns=["*.tmp", "temp/**"])
        assert checker.should_ignore(tmp_path / "debug.tmp")
        assert checker.should_ignore(tmp_path / "temp" / "file.txt")
        assert not checker.should_ignore(tmp_path / "main.py")

    def test_default_patterns(self, tmp_path: Path) -> None:
        """Built-in patterns cover dependencies, bundles and logs."""
        checker = IgnoreChecker(tmp_path)
        assert checker.is_excluded_rel("node_modules/pkg/index.js")
        assert checker.is_excluded_rel("static/app.min.js")
        assert checker.is_excluded_rel("server.log")
        assert not checker.is_excluded_rel("src/app.js")

    def test_directory_patterns_match_contents(self, tmp_path: Path) -> None:
        """Patterns ending in / match everything under the directory."""
        (tmp_path / ".gitignore").write_text("generated/\n")
        checker = IgnoreChecker(tmp_path)
        assert checker.is_excluded_rel("generated/out.js")
        assert checker.is_excluded_rel("src/generated/deep/out.js")
        # A file with the same name is not a directory
        assert not checker.is_excluded_rel("generated")

    def test_anchored_pattern_matches_from_root(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("/docs/*.md\n")
        checker = IgnoreChecker(tmp_path)
        assert checker.is_excluded_rel("docs/intro.md")
        assert not checker.is_excluded_rel("src/docs/intro.md")

    def test_last_matching_line_wins(self, tmp_path: Path) -> None:
        """Negation re-includes a path excluded by an earlier line."""
        (tmp_path / ".gitignore").write_text("*.txt\n!important.txt\n")
        checker = IgnoreChecker(tmp_path)
        assert checker.is_excluded_rel("notes.txt")
        assert not checker.is_excluded_rel("important.txt")

    def test_path_outside_root_is_ignored(self, tmp_path: Path) -> None:
        """Paths outside root are always ignored."""
        checker = IgnoreChecker(tmp_path / "repo")
        assert checker.should_ignore(tmp_path / "other" / "file.py")

    def test_comment_and_empty_lines_skipped(self, tmp_path: Path) -> None:
        """Comments and empty lines in .gitignore are skipped."""
        (tmp_path / ".gitignore").write_text("# This is a comment\n\n  \n*.bak\n")
        checker = IgnoreChecker(tmp_path)
        assert checker.should_ignore(tmp_path / "old.bak")
        assert not checker.should_ignore(tmp_path / "# This is a comment")

    def test_gitignore_directory_is_skipped(self, tmp_path: Path) -> None:
        """A directory named .gitignore is not read."""
        (tmp_path / ".gitignore").mkdir()
        checker = IgnoreChecker(tmp_path)
        assert not checker.should_ignore(tmp_path / "file.py")

    def test_respect_gitignore_false(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("*.py\n")
        checker = IgnoreChecker(tmp_path, respect_gitignore=False)
        assert not checker.is_excluded_rel("main.py")


class TestHierarchicalGitignore:
    """Nested .gitignore files apply below their own directory."""

    def test_loads_nested_gitignore(self, tmp_path: Path) -> None:
        subdir = tmp_path / "src" / "lib"
        subdir.mkdir(parents=True)
        nested = subdir / ".gitignore"
        nested.write_text("*.tmp\n")

        checker = IgnoreChecker(tmp_path)
        assert checker.is_excluded_rel("src/lib/cache.tmp")
        assert not checker.is_excluded_rel("other.tmp")
        assert nested in checker.gitignore_paths

    def test_gitignore_inside_pruned_dir_not_loaded(self, tmp_path: Path) -> None:
        pkg = tmp_path / "node_modules" / "pkg"
        pkg.mkdir(parents=True)
        (pkg / ".gitignore").write_text("*.js\n")

        checker = IgnoreChecker(tmp_path)
        assert checker.gitignore_paths == []


class TestDirectoryPruning:
    """Tiered directory pruning."""

    def test_hardcoded_dirs_always_pruned(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("!.git/\n")
        checker = IgnoreChecker(tmp_path)
        assert checker.should_prune_dir(".git")
        assert checker.should_prune_dir(".codescope")

    def test_default_prunable_dirs(self, tmp_path: Path) -> None:
        checker = IgnoreChecker(tmp_path)
        assert checker.should_prune_dir("node_modules")
        assert checker.should_prune_dir("__pycache__")
        assert not checker.should_prune_dir("src")

    def test_negation_opts_prunable_dir_back_in(self, tmp_path: Path) -> None:
        (tmp_path / ".gitignore").write_text("!dist/\n")
        checker = IgnoreChecker(tmp_path)
        assert "dist" in checker.negated_dirs
        assert not checker.should_prune_dir("dist")
        assert not checker.is_excluded_rel("dist/bundle.js")
