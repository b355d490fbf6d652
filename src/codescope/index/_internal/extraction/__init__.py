"""Language-dispatched, pattern-based symbol and dependency extraction.

Both extract_* calls are pure functions of their text. Empty text and
unsupported languages yield empty lists. A failure inside a supported
language's rules surfaces as ExtractionError so the caller can count it
against the file.
"""

from __future__ import annotations

import structlog

from codescope.core.errors import ExtractionError
from codescope.core.languages import detect_language, is_supported
from codescope.index._internal.extraction.base import ExtractedDependency, ExtractedSymbol
from codescope.index._internal.extraction.imports import IMPORT_PARSERS, WILDCARD
from codescope.index._internal.extraction.symbols import (
    BRACE_RULES,
    extract_brace_symbols,
    extract_python_symbols,
)

logger = structlog.get_logger()

__all__ = [
    "WILDCARD",
    "ExtractedDependency",
    "ExtractedSymbol",
    "detect_language",
    "extract_dependencies",
    "extract_symbols",
    "has_symbol_rules",
    "is_supported",
]


def has_symbol_rules(language: str) -> bool:
    return language == "python" or language in BRACE_RULES


def extract_symbols(text: str | None, language: str) -> list[ExtractedSymbol]:
    """Extract declaration sites from text in the given language."""
    if not text:
        return []
    if not is_supported(language) or not has_symbol_rules(language):
        logger.debug("symbol_extraction_skipped", language=language)
        return []
    try:
        if language == "python":
            return extract_python_symbols(text)
        return extract_brace_symbols(text, BRACE_RULES[language])
    except Exception as e:
        raise ExtractionError.failed(language, f"symbols: {e}") from e


def extract_dependencies(
    text: str | None, language: str, path: str = ""
) -> list[ExtractedDependency]:
    """Extract import/require/include statements from text."""
    if not text:
        return []
    parser = IMPORT_PARSERS.get(language)
    if parser is None or not is_supported(language):
        logger.debug("dependency_extraction_skipped", language=language, path=path)
        return []
    try:
        return parser(text, path)
    except Exception as e:
        raise ExtractionError.failed(language, f"dependencies: {e}", path or None) from e
