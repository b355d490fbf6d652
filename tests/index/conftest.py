"""Shared fixtures for index tests."""

from __future__ import annotations

import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from codescope.config.models import EmbeddingConfig, IndexConfig, SearchConfig
from codescope.index._internal.db.store import IndexStore
from codescope.index._internal.embedding.provider import EmbeddingProvider
from codescope.index._internal.indexing.pipeline import IndexingPipeline
from codescope.index._internal.retrieval.engine import RetrievalEngine

# Small vectors keep the local embedding fast while still separating terms
TEST_DIMENSIONS = 128

RepoBuilder = Callable[[dict[str, str]], Path]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir: Path) -> Generator[IndexStore, None, None]:
    """Open store backed by a fresh database file outside the repo."""
    index_store = IndexStore(temp_dir / "db" / "index.db")
    index_store.open()
    yield index_store
    index_store.close()


@pytest.fixture
def local_embedding_config() -> EmbeddingConfig:
    """Embedding config that never touches the network."""
    return EmbeddingConfig(remote_enabled=False, dimensions=TEST_DIMENSIONS)


@pytest.fixture
def provider(local_embedding_config: EmbeddingConfig) -> EmbeddingProvider:
    return EmbeddingProvider(local_embedding_config)


@pytest.fixture
def pipeline(store: IndexStore, provider: EmbeddingProvider) -> IndexingPipeline:
    return IndexingPipeline(store, provider, IndexConfig())


@pytest.fixture
def engine(store: IndexStore, provider: EmbeddingProvider) -> RetrievalEngine:
    return RetrievalEngine(store, provider, SearchConfig())


@pytest.fixture
def repo_root(temp_dir: Path) -> Path:
    root = temp_dir / "repo"
    root.mkdir()
    return root


@pytest.fixture
def make_repo(repo_root: Path) -> RepoBuilder:
    """Write a mapping of relative path -> content under the repo root."""

    def _write(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = repo_root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return repo_root

    return _write
