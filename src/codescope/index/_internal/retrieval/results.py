"""Result types returned by the retrieval engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from codescope.index.models import Dependency, File, Symbol


@dataclass
class TextMatch:
    """Case-insensitive occurrence of a query word inside a snippet source."""

    start: int
    end: int
    text: str


@dataclass
class SearchResult:
    """One ranked chunk from a semantic search."""

    file: File
    score: float
    snippet: str
    line: int
    matches: list[TextMatch] = field(default_factory=list)
    symbol: Symbol | None = None


@dataclass
class SymbolResult:
    symbol: Symbol
    file: File
    score: float


class ReferenceKind(str, Enum):
    """How a reference site relates to the symbol."""

    DEFINITION = "definition"
    USAGE = "usage"
    IMPORT = "import"


@dataclass
class ReferenceResult:
    """A definition or usage site. Line and column are 1-based."""

    file: File
    line: int
    column: int
    context: str
    kind: ReferenceKind


@dataclass
class DependencyInfo:
    """Outgoing dependency; file is the resolved target when one exists."""

    import_path: str
    import_type: str
    symbols: list[str]
    is_external: bool
    file: File | None = None


@dataclass
class DependentInfo:
    """Incoming dependency from another indexed file."""

    file: File
    import_path: str
    import_type: str
    symbols: list[str]


@dataclass
class DependencyGraph:
    """Dependencies and dependents of one file.

    transitive lists the paths reachable through resolved targets up to the
    requested depth, excluding the file itself, in breadth-first order.
    """

    file: File
    dependencies: list[DependencyInfo]
    dependents: list[DependentInfo]
    transitive: list[str] = field(default_factory=list)


@dataclass
class CodeChunk:
    content: str
    start_line: int
    end_line: int
    score: float


@dataclass
class CodeContext:
    """Everything assembled around one file for a caller's context window."""

    file: File
    symbols: list[Symbol]
    related_files: list[File]
    dependencies: list[Dependency]
    relevant_code: list[CodeChunk]
