"""Canonical language definitions.

This module defines the authoritative mapping of:
- File extensions → language tags
- Language tags → comment syntax family (used by code preprocessing)
- Which tags get structural extraction (symbols and dependencies)
- The extension set a repository scan considers

Anything unmapped detects as UNKNOWN_LANGUAGE. That is a normal outcome,
not an error: such files are still stored and embedded, just not parsed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

UNKNOWN_LANGUAGE = "unknown"


class CommentStyle(str, Enum):
    """Comment syntax family used when stripping comments."""

    C_LIKE = "c_like"  # // line and /* block */
    HASH = "hash"  # '# line'
    NONE = "none"


@dataclass(frozen=True, slots=True)
class Language:
    """Canonical definition for a language tag.

    Attributes:
        name: Unique lowercase tag (e.g., "python", "typescript")
        extensions: File extensions including dot
        comments: Comment syntax family
        supported: True if the tag is eligible for symbol/dependency extraction
    """

    name: str
    extensions: frozenset[str]
    comments: CommentStyle = CommentStyle.NONE
    supported: bool = False


ALL_LANGUAGES: tuple[Language, ...] = (
    Language("javascript", frozenset({".js", ".jsx", ".mjs", ".cjs"}), CommentStyle.C_LIKE, True),
    Language("typescript", frozenset({".ts", ".tsx"}), CommentStyle.C_LIKE, True),
    Language("python", frozenset({".py", ".pyw"}), CommentStyle.HASH, True),
    Language("java", frozenset({".java"}), CommentStyle.C_LIKE, True),
    Language("cpp", frozenset({".cpp", ".cxx", ".cc", ".hpp"}), CommentStyle.C_LIKE, True),
    Language("c", frozenset({".c", ".h"}), CommentStyle.C_LIKE, True),
    Language("csharp", frozenset({".cs"}), CommentStyle.C_LIKE, True),
    Language("php", frozenset({".php"}), CommentStyle.C_LIKE, True),
    Language("ruby", frozenset({".rb"}), CommentStyle.HASH, True),
    Language("go", frozenset({".go"}), CommentStyle.C_LIKE, True),
    Language("rust", frozenset({".rs"}), CommentStyle.C_LIKE, True),
    Language("swift", frozenset({".swift"}), CommentStyle.C_LIKE, True),
    Language("kotlin", frozenset({".kt"}), CommentStyle.C_LIKE, True),
    Language("scala", frozenset({".scala"}), CommentStyle.C_LIKE, True),
    Language("clojure", frozenset({".clj"}), CommentStyle.NONE, True),
    # Detected but never parsed
    Language("json", frozenset({".json"})),
    Language("yaml", frozenset({".yaml", ".yml"}), CommentStyle.HASH),
    Language("xml", frozenset({".xml"})),
    Language("html", frozenset({".html"})),
    Language("css", frozenset({".css"}), CommentStyle.C_LIKE),
    Language("scss", frozenset({".scss"}), CommentStyle.C_LIKE),
    Language("markdown", frozenset({".md"})),
)

_BY_NAME: dict[str, Language] = {lang.name: lang for lang in ALL_LANGUAGES}
_BY_EXTENSION: dict[str, str] = {
    ext: lang.name for lang in ALL_LANGUAGES for ext in lang.extensions
}

# Extensions a repository scan considers: code, then config/doc.
CODE_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".py", ".java", ".cpp", ".c",
        ".h", ".hpp", ".cc", ".cxx", ".cs", ".php", ".rb", ".go", ".rs", ".swift",
        ".kt", ".scala", ".clj", ".hs", ".ml", ".fs", ".elm", ".dart", ".vue",
        ".svelte",
    }
)  # fmt: skip
CONFIG_DOC_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".json", ".yaml", ".yml", ".xml", ".html", ".css", ".scss", ".sass",
        ".less", ".md", ".txt", ".cfg", ".ini", ".toml",
    }
)  # fmt: skip
INDEXABLE_EXTENSIONS: frozenset[str] = CODE_EXTENSIONS | CONFIG_DOC_EXTENSIONS


def detect_language(path: str | Path) -> str:
    """Detect the language tag for a path from its extension."""
    return _BY_EXTENSION.get(Path(path).suffix.lower(), UNKNOWN_LANGUAGE)


def is_supported(tag: str) -> bool:
    """True if the tag is eligible for structural extraction."""
    lang = _BY_NAME.get(tag)
    return lang is not None and lang.supported


def supported_languages() -> list[str]:
    return [lang.name for lang in ALL_LANGUAGES if lang.supported]


def comment_style(tag: str) -> CommentStyle:
    lang = _BY_NAME.get(tag)
    return lang.comments if lang else CommentStyle.NONE


def extensions_for(tag: str) -> frozenset[str]:
    lang = _BY_NAME.get(tag)
    return lang.extensions if lang else frozenset()


def is_indexable(path: str | Path) -> bool:
    """True if a repository scan would consider this path by extension."""
    return Path(path).suffix.lower() in INDEXABLE_EXTENSIONS
