"""Canonical exclude patterns with tiered architecture.

Tier 0 (HARDCODED_DIRS): Never traversed, not user-configurable.
    - VCS internals, codescope data directories

Tier 1 (DEFAULT_PRUNABLE_DIRS): Excluded by default, user can override with !pattern.
    - Dependencies, caches, build outputs

Tier 2 (DEFAULT_IGNORE_PATTERNS): Glob patterns applied to every scan and
    every watcher event, layered under .gitignore and caller-supplied patterns.
"""

from __future__ import annotations

# =============================================================================
# Tier 0: HARDCODED - Never traverse, not user-configurable
# =============================================================================

HARDCODED_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        # codescope data
        ".codescope",
    )
)

# =============================================================================
# Tier 1: DEFAULT_PRUNABLE - Excluded by default, user can override
# =============================================================================

DEFAULT_PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        # JavaScript/Node.js
        "node_modules",
        ".npm",
        ".yarn",
        ".pnpm-store",
        "bower_components",
        ".next",
        ".nuxt",
        ".turbo",
        # Python
        "venv",
        ".venv",
        ".virtualenv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".nox",
        ".eggs",
        "site-packages",
        ".ipynb_checkpoints",
        ".hypothesis",
        "htmlcov",
        # Rust
        "target",
        # JVM
        ".gradle",
        ".m2",
        # Generic build/output directories
        "dist",
        "build",
        "coverage",
        ".nyc_output",
        "logs",
        # IDE/Editor directories
        ".idea",
        ".vscode",
        ".vs",
        ".cache",
    )
)

PRUNABLE_DIRS: frozenset[str] = HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS

# =============================================================================
# Tier 2: Default glob patterns (gitignore syntax)
# =============================================================================

DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "node_modules/**",
    ".git/**",
    "dist/**",
    "build/**",
    "*.min.js",
    "*.map",
    "coverage/**",
    ".nyc_output/**",
    "logs/**",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
    ".codescope/**",
)


def is_hardcoded_dir(dirname: str) -> bool:
    """Check if directory is hardcoded (never traversable, not overridable)."""
    return dirname in HARDCODED_DIRS


def is_default_prunable(dirname: str) -> bool:
    """Check if directory is prunable by default (but user can override)."""
    return dirname in DEFAULT_PRUNABLE_DIRS
