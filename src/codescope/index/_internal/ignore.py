"""Shared ignore/exclude pattern matching with tiered architecture.

Single source of truth for path exclusion logic used by:
- IndexingPipeline (repository traversal with directory pruning)
- ChangeWatcher (runtime file change filtering)

Tiered Architecture:
- HARDCODED_DIRS: Always excluded, cannot be overridden (VCS, .codescope)
- DEFAULT_PRUNABLE_DIRS: Excluded by default, user can opt-in via !pattern
- Glob patterns: built-in defaults, then .gitignore files, then caller extras
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import Path

import structlog

from codescope.core.excludes import (
    DEFAULT_IGNORE_PATTERNS,
    DEFAULT_PRUNABLE_DIRS,
    HARDCODED_DIRS,
    PRUNABLE_DIRS,
    is_hardcoded_dir,
)

__all__ = [
    "PRUNABLE_DIRS",
    "HARDCODED_DIRS",
    "DEFAULT_PRUNABLE_DIRS",
    "IgnoreChecker",
]

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class _Rule:
    """One compiled gitignore-style line.

    Attributes:
        pattern: Glob with the negation marker and slashes stripped off the ends
        negated: Line started with '!'
        anchored: Pattern contains a slash, so it matches from ``base``
        dir_only: Line ended with '/', so only directories match
        base: Directory of the ignore file relative to the root ('' for root)
    """

    pattern: str
    negated: bool
    anchored: bool
    dir_only: bool
    base: str = ""

    @classmethod
    def parse(cls, line: str, base: str = "") -> _Rule | None:
        line = line.strip()
        if not line or line.startswith("#"):
            return None
        negated = line.startswith("!")
        if negated:
            line = line[1:]
        dir_only = line.endswith("/")
        line = line.rstrip("/")
        anchored = "/" in line
        line = line.lstrip("/")
        if not line:
            return None
        return cls(line, negated, anchored, dir_only, base)

    def matches(self, parts: tuple[str, ...]) -> bool:
        """Match against the path or any of its ancestor directories."""
        if self.base:
            base_parts = tuple(self.base.split("/"))
            if parts[: len(base_parts)] != base_parts:
                return False
            parts = parts[len(base_parts) :]

        for depth in range(len(parts), 0, -1):
            is_dir = depth < len(parts)
            if self.dir_only and not is_dir:
                continue
            if self.anchored:
                candidate = "/".join(parts[:depth])
            else:
                candidate = parts[depth - 1]
            if fnmatch.fnmatchcase(candidate, self.pattern):
                return True
        return False


class IgnoreChecker:
    """Checks if paths should be ignored based on tiered patterns.

    Tiered Architecture:
    - Tier 0 (HARDCODED_DIRS): Always pruned, not overridable
    - Tier 1 (DEFAULT_PRUNABLE_DIRS): Pruned by default, user can opt-in via !pattern
    - Tier 2 (patterns): Built-in defaults, .gitignore, then extras

    Pattern syntax follows .gitignore:
    - Standard glob patterns (fnmatch)
    - Patterns without a slash match a name at any depth
    - Patterns ending in / match directories and everything under them
    - Negation with ! prefix; the last matching line wins
    """

    GITIGNORE_NAME = ".gitignore"

    def __init__(
        self,
        root: Path,
        extra_patterns: list[str] | None = None,
        *,
        respect_gitignore: bool = True,
    ) -> None:
        self._root = root
        self._rules: list[_Rule] = []
        self._negated_dirs: set[str] = set()  # Negated dir names override pruning
        self._gitignore_paths: list[Path] = []

        for pattern in DEFAULT_IGNORE_PATTERNS:
            self._add_line(pattern)
        if respect_gitignore:
            self._load_gitignore_recursive(root)
        for pattern in extra_patterns or []:
            self._add_line(pattern)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def negated_dirs(self) -> frozenset[str]:
        """Directory names that were negated in an ignore source.

        These directories will NOT be pruned during traversal even if they
        are in DEFAULT_PRUNABLE_DIRS.
        """
        return frozenset(self._negated_dirs)

    @property
    def gitignore_paths(self) -> list[Path]:
        return self._gitignore_paths.copy()

    def should_prune_dir(self, dirname: str) -> bool:
        """Check if a directory should be pruned during traversal.

        Args:
            dirname: Directory name (not path), e.g., "node_modules", "vendor"

        Returns:
            True if directory should be skipped during traversal.

        Example:
            # User adds "!vendor/" to .gitignore
            checker.should_prune_dir("vendor")  # Returns False (opted-in)
            checker.should_prune_dir(".git")    # Returns True (hardcoded)
            checker.should_prune_dir("node_modules")  # Returns True (default)
        """
        # Tier 0: Hardcoded dirs are ALWAYS pruned
        if is_hardcoded_dir(dirname):
            return True

        # Tier 1: Default prunable dirs, unless user negated them
        if dirname in DEFAULT_PRUNABLE_DIRS:
            return dirname not in self._negated_dirs

        return False

    def should_ignore(self, path: Path) -> bool:
        """True if an absolute or root-relative path is excluded.

        Paths outside the root are always ignored.
        """
        if path.is_absolute():
            try:
                rel_path = path.relative_to(self._root)
            except ValueError:
                return True
        else:
            rel_path = path
        return self.is_excluded_rel(rel_path.as_posix())

    def is_excluded_rel(self, rel_path: str) -> bool:
        # Normalize to POSIX-style separators for pattern matching on Windows
        parts = tuple(p for p in rel_path.replace("\\", "/").split("/") if p and p != ".")
        if not parts:
            return False

        # Directory tiers apply to every ancestor
        if any(self.should_prune_dir(part) for part in parts[:-1]):
            return True

        ignored = False
        for rule in self._rules:
            if rule.matches(parts):
                ignored = not rule.negated
        return ignored

    def _add_line(self, line: str, base: str = "") -> None:
        rule = _Rule.parse(line, base)
        if rule is None:
            return
        # Track root-level negated directory names for pruning override,
        # e.g. "!vendor/" or "!vendor" -> "vendor"
        if rule.negated and not base and not rule.anchored and "*" not in rule.pattern:
            self._negated_dirs.add(rule.pattern)
        self._rules.append(rule)

    def _load_gitignore_recursive(self, root: Path) -> None:
        """Load .gitignore from root and all subdirectories.

        Nested files are scoped to their own directory.
        """
        root_gitignore = root / self.GITIGNORE_NAME
        if root_gitignore.is_file():
            self._load_ignore_file(root_gitignore)

        for dirpath, dirnames, filenames in root.walk():
            dirnames[:] = [d for d in dirnames if d not in PRUNABLE_DIRS]
            if dirpath == root:
                continue  # Already loaded
            if self.GITIGNORE_NAME in filenames:
                rel_dir = dirpath.relative_to(root).as_posix()
                self._load_ignore_file(dirpath / self.GITIGNORE_NAME, base=rel_dir)

    def _load_ignore_file(self, path: Path, base: str = "") -> None:
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("ignore_file_unreadable", path=str(path), error=str(e))
            return
        self._gitignore_paths.append(path)
        for line in content.splitlines():
            self._add_line(line, base)
