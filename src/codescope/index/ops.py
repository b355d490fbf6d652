"""High-level entry point tying the store, pipeline, retrieval and watcher together."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from types import TracebackType
from typing import Any

import httpx
import structlog

from codescope.config.loader import get_index_path, load_config
from codescope.config.models import CodeScopeConfig
from codescope.core.errors import UninitializedStoreError
from codescope.core.logging import configure_logging, request_scope
from codescope.index._internal.db.store import IndexStore
from codescope.index._internal.embedding.provider import EmbeddingProvider
from codescope.index._internal.indexing.pipeline import IndexingPipeline, ScanSummary
from codescope.index._internal.retrieval.engine import RetrievalEngine
from codescope.index._internal.retrieval.results import (
    CodeContext,
    DependencyGraph,
    ReferenceResult,
    SearchResult,
    SymbolResult,
)
from codescope.index._internal.watcher.watcher import ChangeWatcher
from codescope.index.models import File

logger = structlog.get_logger()


class CodeIndex:
    """
    Facade over one repository's index.

    Usage::

        index = CodeIndex(Path("/repo"))
        await index.initialize()
        summary = await index.index_repository()
        results = await index.search_code("parse config file")
        await index.start_watching()
        # ... later ...
        await index.shutdown()
    """

    def __init__(
        self,
        repo_root: Path,
        config: CodeScopeConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.repo_root = repo_root.resolve()
        self.config = config or load_config(self.repo_root)
        self.db_path = get_index_path(self.repo_root, self.config)

        db_config = self.config.database
        self.store = IndexStore(
            self.db_path,
            max_retries=db_config.max_retries,
            busy_timeout_ms=db_config.busy_timeout_ms,
            retry_base_delay=db_config.retry_base_delay_sec,
        )
        self.provider = EmbeddingProvider(self.config.embedding, transport=transport)
        self.pipeline = IndexingPipeline(self.store, self.provider, self.config.index)
        self.engine = RetrievalEngine(self.store, self.provider, self.config.search)
        self._watcher: ChangeWatcher | None = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def watcher(self) -> ChangeWatcher | None:
        return self._watcher

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> None:
        """Apply the logging config, then open the store (creating the schema on first use)."""
        if self._initialized:
            return
        configure_logging(config=self.config.logging)
        self.store.open()
        self._initialized = True
        logger.info(
            "index_initialized",
            repo_root=str(self.repo_root),
            db_path=str(self.db_path),
            remote_embeddings=self.provider.remote_enabled,
        )

    async def shutdown(self) -> None:
        """Stop watching, cancel any scan and release every resource."""
        if self._watcher is not None and self._watcher.is_running:
            await self._watcher.stop()
        self._watcher = None
        self.pipeline.cancel()
        await self.provider.close()
        self.store.close()
        self._initialized = False
        logger.info("index_shutdown", repo_root=str(self.repo_root))

    async def __aenter__(self) -> CodeIndex:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    def _require_initialized(self, operation: str) -> None:
        if not self._initialized:
            raise UninitializedStoreError.for_operation(operation)

    # =========================================================================
    # Indexing
    # =========================================================================

    async def index_repository(self, force: bool = False) -> ScanSummary:
        self._require_initialized("index_repository")
        with request_scope():
            return await self.pipeline.index_repository(self.repo_root, force=force)

    async def index_file(self, path: Path | str, *, force: bool = False) -> File:
        self._require_initialized("index_file")
        with request_scope():
            return await self.pipeline.index_file(Path(path), self.repo_root, force=force)

    def cancel_indexing(self) -> None:
        self.pipeline.cancel()

    # =========================================================================
    # Queries
    # =========================================================================

    async def search_code(
        self,
        query: str,
        limit: int | None = None,
        file_extensions: list[str] | None = None,
        threshold: float | None = None,
    ) -> list[SearchResult]:
        self._require_initialized("search_code")
        with request_scope():
            return await self.engine.search_code(query, limit, file_extensions, threshold)

    async def find_symbol(self, name: str, kind: str | None = None) -> list[SymbolResult]:
        self._require_initialized("find_symbol")
        with request_scope():
            return await self.engine.find_symbol(name, kind)

    async def get_references(self, name: str, file_path: str | None = None) -> list[ReferenceResult]:
        self._require_initialized("get_references")
        with request_scope():
            return await self.engine.get_references(name, file_path)

    async def analyze_dependencies(self, file_path: str, depth: int = 1) -> DependencyGraph | None:
        self._require_initialized("analyze_dependencies")
        with request_scope():
            return await self.engine.analyze_dependencies(file_path, depth)

    async def get_context(
        self,
        file_path: str,
        symbol: str | None = None,
        context_size: int | None = None,
    ) -> CodeContext | None:
        self._require_initialized("get_context")
        with request_scope():
            return await self.engine.get_context(file_path, symbol, context_size)

    # =========================================================================
    # Watching
    # =========================================================================

    async def start_watching(self, *, watch_filesystem: bool = True) -> ChangeWatcher:
        """Start (or return the already running) change watcher."""
        self._require_initialized("start_watching")
        if self._watcher is None:
            self._watcher = ChangeWatcher(
                self.repo_root,
                self.pipeline,
                self.config.watcher,
                ignore_patterns=self.config.index.ignore_patterns,
                watch_filesystem=watch_filesystem,
            )
        if not self._watcher.is_running:
            await self._watcher.start()
        return self._watcher

    async def stop_watching(self) -> None:
        if self._watcher is not None:
            await self._watcher.stop()

    def stats(self) -> dict[str, Any]:
        """Row counts plus embedding and watcher counters."""
        self._require_initialized("stats")
        result: dict[str, Any] = {
            "tables": self.store.stats(),
            "embedding": asdict(self.provider.stats),
        }
        if self._watcher is not None:
            result["watcher"] = asdict(self._watcher.stats())
        return result
