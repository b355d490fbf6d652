"""Shared types and block-extent helpers for pattern-based extraction.

Extraction is best-effort: rules locate declaration sites line by line and
block extents come from brace counting (C-like syntax) or indentation
scanning (Python). Malformed code yields partial results, never an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from codescope.config.constants import DEFINITION_MAX_LINES
from codescope.index.models import ImportType, SymbolKind


@dataclass(slots=True)
class ExtractedSymbol:
    """A declaration site found in source text. Lines and columns are 1-based."""

    name: str
    kind: SymbolKind
    start_line: int
    end_line: int
    start_column: int
    end_column: int
    definition: str
    doc: str | None = None
    modifiers: list[str] = field(default_factory=list)

    def contains(self, start_line: int, end_line: int) -> bool:
        return self.start_line <= start_line and end_line <= self.end_line


@dataclass(slots=True)
class ExtractedDependency:
    """An import/include statement found in source text."""

    import_path: str
    import_type: ImportType
    is_external: bool
    symbols: list[str] = field(default_factory=list)
    line: int = 0


class Scope(Enum):
    """Where a rule is allowed to match relative to enclosing spans."""

    ANY = "any"
    TOP_LEVEL = "top_level"  # not inside a function or method body
    IN_CONTAINER = "in_container"  # directly inside a class/interface/impl body


@dataclass(frozen=True, slots=True)
class SymbolRule:
    """One entry of a language's dispatch table.

    Attributes:
        kind: Kind recorded for a match
        pattern: Line regex; the named group "name" is the symbol name
        scope: Enclosing-span constraint
        block: True if the symbol spans a brace/indent block, False for one line
        container: True if members declared inside should be scoped to it
        emit: False for container-only rules (e.g., Rust impl blocks)
        kind_in_container: Kind override when the match sits inside a container
        bare: True if no declaring keyword anchors the match, so statement lines
            and control words must be rejected
    """

    kind: SymbolKind
    pattern: re.Pattern[str]
    scope: Scope = Scope.ANY
    block: bool = True
    container: bool = False
    emit: bool = True
    kind_in_container: SymbolKind | None = None
    bare: bool = False


@dataclass(slots=True)
class Span:
    """Extent of a block-bearing declaration, used for scope checks."""

    start_line: int
    end_line: int
    container: bool

    def encloses(self, line: int) -> bool:
        return self.start_line < line <= self.end_line


def innermost_span(spans: list[Span], line: int) -> Span | None:
    """Span with the latest start that strictly encloses line."""
    best: Span | None = None
    for span in spans:
        if span.encloses(line) and (best is None or span.start_line >= best.start_line):
            best = span
    return best


def scope_allows(scope: Scope, spans: list[Span], line: int) -> bool:
    if scope is Scope.ANY:
        return True
    inner = innermost_span(spans, line)
    if scope is Scope.IN_CONTAINER:
        return inner is not None and inner.container
    return not any(span.encloses(line) and not span.container for span in spans)


def find_brace_block_end(lines: list[str], start_idx: int) -> int:
    """Return the 0-based index of the line closing the block opened at start_idx.

    A statement that terminates with ';' before any '{' is a single line.
    If no brace ever opens, the block is the start line alone. An unbalanced
    block runs to the end of the text.
    """
    depth = 0
    opened = False
    for i in range(start_idx, len(lines)):
        for ch in _strip_strings(lines[i]):
            if ch == "{":
                depth += 1
                opened = True
            elif ch == "}":
                depth -= 1
                if opened and depth <= 0:
                    return i
            elif ch == ";" and not opened:
                return i
        if not opened and i - start_idx >= DEFINITION_MAX_LINES:
            return start_idx
    return len(lines) - 1 if opened else start_idx


_STRING_RE = re.compile(r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'|`(?:\\.|[^`\\])*`|//.*$")


def _strip_strings(line: str) -> str:
    return _STRING_RE.sub("", line)


def find_indent_block_end(lines: list[str], start_idx: int) -> int:
    """Return the 0-based index of the last non-blank line of an indented block."""
    base = indent_of(lines[start_idx])
    last = start_idx
    i = start_idx + 1
    # Wrapped parameter lists belong to the header
    while i < len(lines) and not _header_complete(lines[start_idx:i]):
        last = i
        i += 1
    for j in range(i, len(lines)):
        stripped = lines[j].strip()
        if not stripped or stripped.startswith("#"):
            continue
        if indent_of(lines[j]) <= base:
            break
        last = j
    return last


def _header_complete(header: list[str]) -> bool:
    joined = " ".join(line.split("#", 1)[0] for line in header)
    return joined.count("(") <= joined.count(")") and joined.count("[") <= joined.count("]")


def indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def definition_excerpt(lines: list[str], start_idx: int, end_idx: int) -> str:
    """Up to DEFINITION_MAX_LINES lines of the declaration, trimmed."""
    stop = min(end_idx, start_idx + DEFINITION_MAX_LINES - 1)
    return "\n".join(lines[start_idx : stop + 1]).strip()


def extract_modifiers(line: str, keywords: frozenset[str]) -> list[str]:
    """Keywords present on the declaration line, in order of appearance."""
    found: list[str] = []
    for match in re.finditer(r"[A-Za-z_]\w*", line):
        word = match.group(0)
        if word in keywords and word not in found:
            found.append(word)
    return found
