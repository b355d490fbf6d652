"""Query operations over the index.

Every public query validates its arguments first and raises QueryError
for missing or invalid input. Past that point failures are logged and
converted to an empty result ([] or None) so callers see "no results"
rather than an exception.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

import numpy as np
import structlog

from codescope.config.constants import DEFINITION_CONTEXT_CHARS, SNIPPET_MAX_CHARS
from codescope.config.models import SearchConfig
from codescope.core.errors import CodeScopeError, QueryError
from codescope.index._internal.cache import FileLookupCache
from codescope.index._internal.db.store import IndexStore
from codescope.index._internal.embedding.provider import EmbeddingProvider
from codescope.index._internal.embedding.similarity import cosine_scores
from codescope.index._internal.retrieval.results import (
    CodeChunk,
    CodeContext,
    DependencyGraph,
    DependencyInfo,
    DependentInfo,
    ReferenceKind,
    ReferenceResult,
    SearchResult,
    SymbolResult,
    TextMatch,
)
from codescope.index.models import Embedding, File, Symbol

logger = structlog.get_logger()

_EXACT_MATCH_SCORE = 1.0
_KIND_MATCH_BONUS = 0.2

# Lines that bring a name into scope rather than use it
_IMPORT_LINE = re.compile(
    r"^\s*(?:import\b|from\s+\S+\s+import\b|export\b.*\bfrom\b|#\s*include\b|(?:pub\s+)?use\b)"
    r"|\brequire\s*\("
)


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def find_matches(query: str, content: str) -> list[TextMatch]:
    """Every case-insensitive occurrence of each query word (2+ chars), by position."""
    lowered = content.lower()
    matches: list[TextMatch] = []
    for word in query.lower().split():
        if len(word) < 2:
            continue
        index = lowered.find(word)
        while index != -1:
            matches.append(TextMatch(index, index + len(word), content[index : index + len(word)]))
            index = lowered.find(word, index + 1)
    matches.sort(key=lambda m: m.start)
    return matches


def _normalize_extensions(extensions: list[str] | None) -> frozenset[str]:
    if not extensions:
        return frozenset()
    return frozenset(
        (ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions if ext
    )


def _require_text(argument: str, value: str | None) -> str:
    if value is None or not value.strip():
        raise QueryError.missing_argument(argument)
    return value


class RetrievalEngine:
    """Answers search, symbol, reference, dependency and context queries."""

    def __init__(
        self,
        store: IndexStore,
        provider: EmbeddingProvider,
        config: SearchConfig | None = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._config = config or SearchConfig()

    # =========================================================================
    # Semantic search
    # =========================================================================

    async def search_code(
        self,
        query: str,
        limit: int | None = None,
        file_extensions: list[str] | None = None,
        threshold: float | None = None,
    ) -> list[SearchResult]:
        """Rank indexed chunks by cosine similarity to the query.

        Results are in non-increasing score order and never score below
        threshold. file_extensions keeps only files with those suffixes.
        """
        query = _require_text("query", query)
        limit = self._config.default_limit if limit is None else limit
        threshold = self._config.default_threshold if threshold is None else threshold
        if limit <= 0:
            raise QueryError.invalid_argument("limit", limit, "must be positive")

        try:
            return await self._search(query, limit, _normalize_extensions(file_extensions), threshold)
        except CodeScopeError as e:
            logger.error("search_failed", query=query, error=e.message, code=e.error_name)
        except Exception as e:
            logger.error(
                "search_unexpected_error",
                query=query,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        return []

    async def _search(
        self, query: str, limit: int, extensions: frozenset[str], threshold: float
    ) -> list[SearchResult]:
        query_vector = await self._provider.embed(query)
        embeddings = [
            e for e in self._store.all_embeddings() if len(e.vector) == query_vector.size * 4
        ]
        if not embeddings:
            return []

        matrix = np.vstack([e.get_vector() for e in embeddings])
        scores = cosine_scores(query_vector, matrix)
        order = np.argsort(-scores, kind="stable")

        cache = FileLookupCache(self._store)
        symbols_by_file: dict[int, dict[int, Symbol]] = {}
        results: list[SearchResult] = []

        for idx in order:
            score = float(scores[idx])
            if score < threshold:
                break
            embedding = embeddings[idx]
            file = cache.by_id(embedding.file_id)
            if file is None:
                continue
            if extensions and PurePosixPath(file.path).suffix.lower() not in extensions:
                continue

            metadata = embedding.get_metadata()
            results.append(
                SearchResult(
                    file=file,
                    score=score,
                    snippet=_truncate(embedding.content, SNIPPET_MAX_CHARS),
                    line=int(metadata.get("start_line", 1)),
                    matches=find_matches(query, embedding.content),
                    symbol=self._symbol_of(embedding, symbols_by_file),
                )
            )
            if len(results) >= limit:
                break

        logger.debug("search_completed", query=query, candidates=len(embeddings), results=len(results))
        return results

    def _symbol_of(
        self, embedding: Embedding, symbols_by_file: dict[int, dict[int, Symbol]]
    ) -> Symbol | None:
        if embedding.symbol_id is None:
            return None
        if embedding.file_id not in symbols_by_file:
            symbols_by_file[embedding.file_id] = {
                s.id: s for s in self._store.symbols_of(embedding.file_id) if s.id is not None
            }
        return symbols_by_file[embedding.file_id].get(embedding.symbol_id)

    # =========================================================================
    # Symbols and references
    # =========================================================================

    async def find_symbol(self, name: str, kind: str | None = None) -> list[SymbolResult]:
        """Exact-name symbol lookup, optionally restricted to one kind."""
        name = _require_text("name", name)
        try:
            cache = FileLookupCache(self._store)
            results: list[SymbolResult] = []
            for symbol in self._store.find_symbols_by_name(name, kind):
                file = cache.by_id(symbol.file_id)
                if file is None:
                    continue
                score = _EXACT_MATCH_SCORE
                if kind is not None and symbol.kind == kind:
                    score += _KIND_MATCH_BONUS
                results.append(SymbolResult(symbol=symbol, file=file, score=score))
            results.sort(key=lambda r: r.score, reverse=True)
            return results
        except CodeScopeError as e:
            logger.error("find_symbol_failed", name=name, error=e.message, code=e.error_name)
        except Exception as e:
            logger.error(
                "find_symbol_unexpected_error",
                name=name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        return []

    async def get_references(self, name: str, file_path: str | None = None) -> list[ReferenceResult]:
        """Definitions of name, then every whole-word usage across indexed files.

        file_path restricts which definitions are reported. Usages on lines
        covered by a same-named definition in the same file are excluded.

        The usage scan reads every indexed file on each call.
        """
        name = _require_text("name", name)
        try:
            return self._references(name, file_path)
        except CodeScopeError as e:
            logger.error("get_references_failed", name=name, error=e.message, code=e.error_name)
        except Exception as e:
            logger.error(
                "get_references_unexpected_error",
                name=name,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        return []

    def _references(self, name: str, file_path: str | None) -> list[ReferenceResult]:
        cache = FileLookupCache(self._store)
        symbols = self._store.find_symbols_by_name(name)
        results: list[ReferenceResult] = []

        spans: dict[int, list[tuple[int, int]]] = {}
        for symbol in symbols:
            spans.setdefault(symbol.file_id, []).append((symbol.start_line, symbol.end_line))
            file = cache.by_id(symbol.file_id)
            if file is None or (file_path and file.path != file_path):
                continue
            results.append(
                ReferenceResult(
                    file=file,
                    line=symbol.start_line,
                    column=symbol.start_column,
                    context=_truncate(symbol.definition, DEFINITION_CONTEXT_CHARS),
                    kind=ReferenceKind.DEFINITION,
                )
            )

        pattern = re.compile(rf"\b{re.escape(name)}\b")
        for file in self._store.list_files():
            file_spans = spans.get(file.id or -1, [])
            for line_no, line in enumerate(file.content.splitlines(), start=1):
                if any(start <= line_no <= end for start, end in file_spans):
                    continue
                kind = ReferenceKind.IMPORT if _IMPORT_LINE.search(line) else ReferenceKind.USAGE
                for match in pattern.finditer(line):
                    results.append(
                        ReferenceResult(
                            file=file,
                            line=line_no,
                            column=match.start() + 1,
                            context=line.strip(),
                            kind=kind,
                        )
                    )
        return results

    # =========================================================================
    # Dependencies and context
    # =========================================================================

    async def analyze_dependencies(self, file_path: str, depth: int = 1) -> DependencyGraph | None:
        """Direct dependencies and dependents of a file.

        With depth > 1 the graph also lists every file reachable through
        resolved targets within that many hops.
        """
        file_path = _require_text("file_path", file_path)
        if depth < 1:
            raise QueryError.invalid_argument("depth", depth, "must be at least 1")
        try:
            file = self._store.get_file(file_path)
            if file is None or file.id is None:
                logger.warning("file_not_found", path=file_path)
                return None
            return self._dependency_graph(file, depth)
        except CodeScopeError as e:
            logger.error(
                "analyze_dependencies_failed", path=file_path, error=e.message, code=e.error_name
            )
        except Exception as e:
            logger.error(
                "analyze_dependencies_unexpected_error",
                path=file_path,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        return None

    def _dependency_graph(self, file: File, depth: int) -> DependencyGraph:
        assert file.id is not None
        cache = FileLookupCache(self._store)
        cache.remember(file)

        outgoing = self._store.dependencies_of(file.id)
        targets = cache.many_by_id(d.target_file_id for d in outgoing if d.target_file_id is not None)
        dependencies = [
            DependencyInfo(
                import_path=dep.import_path,
                import_type=dep.import_type,
                symbols=dep.get_symbols(),
                is_external=dep.is_external,
                file=targets.get(dep.target_file_id) if dep.target_file_id is not None else None,
            )
            for dep in outgoing
        ]

        incoming = [d for d in self._store.dependents_of(file.id) if d.source_file_id != file.id]
        sources = cache.many_by_id(d.source_file_id for d in incoming)
        dependents = [
            DependentInfo(
                file=sources[dep.source_file_id],
                import_path=dep.import_path,
                import_type=dep.import_type,
                symbols=dep.get_symbols(),
            )
            for dep in incoming
            if dep.source_file_id in sources
        ]

        transitive = self._reachable(file.id, depth, cache) if depth > 1 else []
        return DependencyGraph(
            file=file, dependencies=dependencies, dependents=dependents, transitive=transitive
        )

    def _reachable(self, file_id: int, depth: int, cache: FileLookupCache) -> list[str]:
        visited = {file_id}
        frontier = [file_id]
        paths: list[str] = []
        for _ in range(depth):
            next_frontier: list[int] = []
            for current in frontier:
                for dep in self._store.dependencies_of(current):
                    target_id = dep.target_file_id
                    if target_id is None or target_id in visited:
                        continue
                    visited.add(target_id)
                    target = cache.by_id(target_id)
                    if target is not None:
                        paths.append(target.path)
                        next_frontier.append(target_id)
            if not next_frontier:
                break
            frontier = next_frontier
        return paths

    async def get_context(
        self,
        file_path: str,
        symbol: str | None = None,
        context_size: int | None = None,
    ) -> CodeContext | None:
        """Symbols, related files, dependencies and the most relevant chunks of a file.

        With symbol, chunks are the file's own chunks ranked by similarity to
        it. Without, they are the first chunks in order with score 1.0.
        """
        file_path = _require_text("file_path", file_path)
        context_size = self._config.context_size if context_size is None else context_size
        if context_size < 0:
            raise QueryError.invalid_argument("context_size", context_size, "must not be negative")
        try:
            return await self._context(file_path, symbol or None, context_size)
        except CodeScopeError as e:
            logger.error("get_context_failed", path=file_path, error=e.message, code=e.error_name)
        except Exception as e:
            logger.error(
                "get_context_unexpected_error",
                path=file_path,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        return None

    async def _context(self, file_path: str, symbol: str | None, context_size: int) -> CodeContext | None:
        snapshot = self._store.file_snapshot(file_path)
        if snapshot is None:
            logger.warning("file_not_found", path=file_path)
            return None

        symbols = (
            [s for s in snapshot.symbols if symbol in s.name] if symbol else snapshot.symbols
        )

        cache = FileLookupCache(self._store)
        target_ids = [d.target_file_id for d in snapshot.dependencies if d.target_file_id is not None]
        targets = cache.many_by_id(target_ids)
        related: list[File] = []
        for target_id in dict.fromkeys(target_ids):
            if target_id in targets:
                related.append(targets[target_id])

        if symbol and snapshot.embeddings:
            relevant = await self._ranked_chunks(symbol, snapshot.embeddings, context_size)
        else:
            relevant = [_chunk(e, 1.0) for e in snapshot.embeddings[:context_size]]

        return CodeContext(
            file=snapshot.file,
            symbols=symbols,
            related_files=related,
            dependencies=snapshot.dependencies,
            relevant_code=relevant,
        )

    async def _ranked_chunks(
        self, text: str, embeddings: list[Embedding], limit: int
    ) -> list[CodeChunk]:
        query_vector = await self._provider.embed(text)
        usable = [e for e in embeddings if len(e.vector) == query_vector.size * 4]
        if not usable:
            return []
        scores = cosine_scores(query_vector, np.vstack([e.get_vector() for e in usable]))
        order = np.argsort(-scores, kind="stable")[:limit]
        return [_chunk(usable[i], float(scores[i])) for i in order]


def _chunk(embedding: Embedding, score: float) -> CodeChunk:
    metadata = embedding.get_metadata()
    return CodeChunk(
        content=embedding.content,
        start_line=int(metadata.get("start_line", 1)),
        end_line=int(metadata.get("end_line", 1)),
        score=score,
    )
