"""Per-file indexing and full-repository scans.

index_file() is the unit of work: read, fingerprint, extract, resolve,
chunk, embed, then persist through IndexStore.replace_file() in one
transaction. index_repository() walks the tree, applies the skip rules,
and runs the unit for every candidate, counting failures instead of
stopping on them.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

import structlog

from codescope.config.constants import PROGRESS_LOG_INTERVAL
from codescope.config.models import IndexConfig
from codescope.core.errors import CodeScopeError, EmbeddingError, NotFoundError, QueryError
from codescope.core.languages import detect_language, is_indexable
from codescope.index._internal.cache import FileLookupCache
from codescope.index._internal.db.store import FileUpsert, IndexStore, PendingEmbedding
from codescope.index._internal.embedding.preprocess import preprocess_code
from codescope.index._internal.embedding.provider import EmbeddingProvider
from codescope.index._internal.extraction import extract_dependencies, extract_symbols
from codescope.index._internal.extraction.base import ExtractedDependency, ExtractedSymbol
from codescope.index._internal.ignore import IgnoreChecker
from codescope.index._internal.indexing.chunking import Chunk, enclosing_symbol, split_into_chunks
from codescope.index._internal.indexing.resolver import DependencyResolver
from codescope.index.models import ChunkKind, Dependency, Embedding, File, Symbol, encode_vector

logger = structlog.get_logger()

# Absolute imports in these languages may still name a module in the repo
_ABSOLUTE_IMPORT_LANGUAGES = ("python",)


@dataclass
class ScanSummary:
    """Outcome of one index_repository() run."""

    processed: int = 0
    skipped: int = 0
    errors: int = 0
    removed: int = 0
    linked: int = 0
    cancelled: bool = False
    duration_sec: float = 0.0
    failed_paths: list[str] = field(default_factory=list)


def relative_path(path: Path, root: Path) -> str:
    """Repository-relative POSIX path used as the File key.

    Raises:
        QueryError: If an absolute path lies outside root.
    """
    if not path.is_absolute():
        return path.as_posix()
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        raise QueryError.invalid_argument(
            "path", path, f"outside repository root {root}"
        ) from None


def _anchor(path: Path, root: Path) -> tuple[Path, Path]:
    """Resolve root, and path against it, so both share one real prefix."""
    root = root.resolve()
    path = path if path.is_absolute() else root / path
    return path.parent.resolve() / path.name, root


class IndexingPipeline:
    """Drives extraction, embedding and persistence for a repository."""

    def __init__(
        self,
        store: IndexStore,
        provider: EmbeddingProvider,
        config: IndexConfig | None = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._config = config or IndexConfig()
        self._scan_lock = asyncio.Lock()
        self._cancel_requested = False

    @property
    def scanning(self) -> bool:
        return self._scan_lock.locked()

    def cancel(self) -> None:
        """Stop the running scan before its next file."""
        if self._scan_lock.locked():
            self._cancel_requested = True
            logger.info("scan_cancel_requested")

    def ignore_checker(self, root: Path, extra_patterns: list[str] | None = None) -> IgnoreChecker:
        return IgnoreChecker(root, [*self._config.ignore_patterns, *(extra_patterns or [])])

    # =========================================================================
    # Full scans
    # =========================================================================

    async def index_repository(self, root: Path, force: bool = False) -> ScanSummary:
        """Index every candidate file under root.

        Non-forced scans skip files over the size ceiling and files whose
        stored timestamp or fingerprint shows no change. Completed scans
        prune rows for files no longer present or now ignored, then relink
        dangling local dependencies.
        """
        root = root.resolve()
        async with self._scan_lock:
            self._cancel_requested = False
            started = time.monotonic()
            summary = ScanSummary()
            cache = FileLookupCache(self._store)

            try:
                candidates = self.walk(root, self.ignore_checker(root))
            except OSError as e:
                logger.error("scan_walk_failed", root=str(root), error=str(e))
                summary.errors += 1
                summary.duration_sec = time.monotonic() - started
                return summary

            logger.info("scan_started", root=str(root), candidates=len(candidates), force=force)
            seen: set[str] = set()

            for count, path in enumerate(candidates, start=1):
                if self._cancel_requested:
                    summary.cancelled = True
                    logger.info("scan_cancelled", completed=count - 1, total=len(candidates))
                    break

                rel = relative_path(path, root)
                seen.add(rel)
                try:
                    if not force and self._should_skip(path, rel, cache):
                        summary.skipped += 1
                    else:
                        _, written = await self._index_path(path, root, cache, force=force)
                        if written:
                            summary.processed += 1
                        else:
                            summary.skipped += 1
                except CodeScopeError as e:
                    summary.errors += 1
                    summary.failed_paths.append(rel)
                    logger.warning(
                        "file_index_failed", path=rel, error=e.message, code=e.error_name
                    )
                except OSError as e:
                    summary.errors += 1
                    summary.failed_paths.append(rel)
                    logger.warning("file_read_failed", path=rel, error=str(e))

                if count % PROGRESS_LOG_INTERVAL == 0:
                    logger.info(
                        "scan_progress",
                        done=count,
                        total=len(candidates),
                        processed=summary.processed,
                        skipped=summary.skipped,
                        errors=summary.errors,
                    )
                # Cancellation and watcher updates get a turn between files
                await asyncio.sleep(0)

            try:
                if not summary.cancelled:
                    summary.removed = self._prune(seen, cache)
                summary.linked = self.link_dangling_dependencies(cache)
            except CodeScopeError as e:
                summary.errors += 1
                logger.error("scan_finalize_failed", error=e.message, code=e.error_name)
            summary.duration_sec = time.monotonic() - started
            self._cancel_requested = False

        stats = asdict(summary)
        stats.pop("failed_paths")
        logger.info("scan_completed", **stats)
        return summary

    def walk(self, root: Path, ignore: IgnoreChecker) -> list[Path]:
        """Candidate files under root, sorted, with ignored paths removed."""
        found: list[Path] = []
        for dirpath, dirnames, filenames in root.walk():
            dirnames[:] = sorted(d for d in dirnames if not ignore.should_prune_dir(d))
            for filename in sorted(filenames):
                path = dirpath / filename
                if not is_indexable(path) or ignore.should_ignore(path):
                    continue
                if path.is_file():
                    found.append(path)
        return found

    def _should_skip(self, path: Path, rel: str, cache: FileLookupCache) -> bool:
        stat = path.stat()
        if stat.st_size > self._config.max_file_size_bytes:
            logger.debug("file_too_large", path=rel, size=stat.st_size)
            return True
        existing = cache.by_path(rel)
        if existing is not None and existing.last_modified >= stat.st_mtime:
            logger.debug("file_not_modified", path=rel)
            return True
        return False

    def _prune(self, seen: set[str], cache: FileLookupCache) -> int:
        removed = 0
        for path in self._store.indexed_paths():
            if path in seen:
                continue
            if self._store.delete_file(path):
                removed += 1
                logger.debug("file_pruned", path=path)
            cache.forget(path)
        return removed

    # =========================================================================
    # Single files
    # =========================================================================

    async def index_file(
        self,
        path: Path,
        root: Path,
        *,
        cache: FileLookupCache | None = None,
        force: bool = False,
    ) -> File:
        """Index one file and return its File row.

        An unchanged fingerprint returns the stored row without writing
        unless force is set.
        """
        path, root = _anchor(path, root)
        cache = cache or FileLookupCache(self._store)
        file, _ = await self._index_path(path, root, cache, force=force)
        return file

    async def update_file(self, path: Path, root: Path) -> File | None:
        """Re-index a changed path, or drop it if it no longer exists.

        Returns None when the file was removed or skipped for size.
        """
        path, root = _anchor(path, root)
        rel = relative_path(path, root)
        cache = FileLookupCache(self._store)

        if not path.is_file():
            await self.remove_file(path, root)
            return None
        if path.stat().st_size > self._config.max_file_size_bytes:
            logger.debug("file_too_large", path=rel)
            return None

        file, written = await self._index_path(path, root, cache, force=False)
        if written:
            self.link_dangling_dependencies(cache)
        return file

    async def remove_file(self, path: Path, root: Path) -> bool:
        """Delete a path and everything derived from it."""
        path, root = _anchor(path, root)
        rel = relative_path(path, root)
        deleted = self._store.delete_file(rel)
        if deleted:
            logger.info("file_removed", path=rel)
        return deleted

    async def _index_path(
        self, path: Path, root: Path, cache: FileLookupCache, *, force: bool
    ) -> tuple[File, bool]:
        rel = relative_path(path, root)
        try:
            stat = path.stat()
            raw = path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError.file(rel) from e

        digest = hashlib.sha256(raw).hexdigest()
        existing = cache.by_path(rel)
        if not force and existing is not None and existing.hash == digest:
            logger.debug("file_unchanged", path=rel)
            return existing, False

        content = raw.decode("utf-8", errors="replace")
        language = detect_language(path)
        extracted_symbols = extract_symbols(content, language)
        extracted_deps = extract_dependencies(content, language, rel)

        dependencies = self._dependency_rows(extracted_deps, rel, language, cache)
        chunks = split_into_chunks(content, self._config.chunk_max_chars)
        embeddings = await self._embed_chunks(chunks, extracted_symbols, language, rel)

        record = FileUpsert(
            path=rel,
            content=content,
            hash=digest,
            size=stat.st_size,
            language=language,
            last_modified=stat.st_mtime,
        )
        file = self._store.replace_file(
            record,
            [_symbol_row(s) for s in extracted_symbols],
            dependencies,
            embeddings,
        )
        cache.remember(file)
        logger.debug(
            "file_indexed",
            path=rel,
            language=language,
            symbols=len(extracted_symbols),
            dependencies=len(dependencies),
            chunks=len(embeddings),
        )
        return file, True

    def _dependency_rows(
        self,
        extracted: list[ExtractedDependency],
        source_path: str,
        language: str,
        cache: FileLookupCache,
    ) -> list[Dependency]:
        resolver = DependencyResolver(cache)
        rows: list[Dependency] = []
        for dep in extracted:
            is_external = dep.is_external
            target: File | None = None
            if not is_external or language in _ABSOLUTE_IMPORT_LANGUAGES:
                target = resolver.resolve(dep.import_path, source_path, language, dep.symbols)
                if target is not None:
                    is_external = False
            rows.append(
                Dependency(
                    target_file_id=target.id if target is not None else None,
                    import_path=dep.import_path,
                    import_type=dep.import_type.value,
                    is_external=is_external,
                    symbols=json.dumps(dep.symbols),
                )
            )
        return rows

    async def _embed_chunks(
        self,
        chunks: list[Chunk],
        symbols: list[ExtractedSymbol],
        language: str,
        rel: str,
    ) -> list[PendingEmbedding]:
        if not chunks:
            return []
        texts = [preprocess_code(chunk.content, language) or chunk.content for chunk in chunks]
        try:
            vectors = await self._provider.embed_batch(texts)
        except EmbeddingError as e:
            logger.warning("file_embedding_failed", path=rel, error=e.message)
            return []

        pending: list[PendingEmbedding] = []
        for chunk, vector in zip(chunks, vectors, strict=True):
            position = enclosing_symbol(chunk, symbols)
            kind = ChunkKind.SYMBOL if position is not None else ChunkKind.CODE
            metadata = {
                "language": language,
                "start_line": chunk.start_line,
                "end_line": chunk.end_line,
                "kind": kind.value,
            }
            pending.append(
                PendingEmbedding(
                    Embedding(
                        chunk_index=chunk.index,
                        content=chunk.content,
                        vector=encode_vector(vector),
                        chunk_metadata=json.dumps(metadata),
                    ),
                    symbol_position=position,
                )
            )
        return pending

    # =========================================================================
    # Dependency linking
    # =========================================================================

    def link_dangling_dependencies(self, cache: FileLookupCache | None = None) -> int:
        """Point unresolved local dependencies at files indexed since."""
        cache = cache or FileLookupCache(self._store)
        resolver = DependencyResolver(cache)
        targets: dict[int, int] = {}
        for dep, source_path, language in self._store.unresolved_dependencies(
            include_external_for=_ABSOLUTE_IMPORT_LANGUAGES
        ):
            target = resolver.resolve(dep.import_path, source_path, language, dep.get_symbols())
            if target is not None and target.id is not None and dep.id is not None:
                targets[dep.id] = target.id
        linked = self._store.set_dependency_targets(targets)
        if linked:
            logger.info("dependencies_linked", count=linked)
        return linked


def _symbol_row(symbol: ExtractedSymbol) -> Symbol:
    return Symbol(
        name=symbol.name,
        kind=symbol.kind.value,
        start_line=symbol.start_line,
        end_line=symbol.end_line,
        start_column=symbol.start_column,
        end_column=symbol.end_column,
        definition=symbol.definition,
        doc=symbol.doc,
        modifiers=json.dumps(symbol.modifiers),
    )
