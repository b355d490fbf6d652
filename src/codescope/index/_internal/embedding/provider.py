"""Embedding provider with remote primary path and local fallback.

Texts are grouped into provider-sized batches. Each batch is sent to the
remote endpoint when one is configured. A failed or timed-out request
embeds that batch locally instead. Later batches still try the remote path.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx
import numpy as np
import structlog

from codescope.config.models import EmbeddingConfig
from codescope.core.errors import EmbeddingError
from codescope.index._internal.embedding.local import local_embed
from codescope.index._internal.embedding.remote import RemoteEmbeddingClient

logger = structlog.get_logger()


@dataclass
class EmbeddingStats:
    """Counters since the provider was created."""

    remote_batches: int = 0
    local_batches: int = 0
    fallbacks: int = 0


class EmbeddingProvider:
    """Turns text into fixed-length float32 vectors."""

    def __init__(
        self,
        config: EmbeddingConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or EmbeddingConfig()
        self.stats = EmbeddingStats()
        self._remote: RemoteEmbeddingClient | None = None

        api_key = self._config.resolved_api_key() if self._config.remote_enabled else None
        if api_key:
            self._remote = RemoteEmbeddingClient(
                api_key=api_key,
                base_url=self._config.base_url,
                model=self._config.model,
                dimensions=self._config.dimensions,
                timeout_sec=self._config.timeout_sec,
                transport=transport,
            )

    @property
    def dimensions(self) -> int:
        return self._config.dimensions

    @property
    def remote_enabled(self) -> bool:
        return self._remote is not None

    async def embed(self, text: str) -> np.ndarray:
        """Embed a single text."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Embed texts in order, one vector per input."""
        if not texts:
            return []

        vectors: list[np.ndarray] = []
        batch_size = self._config.batch_size
        for start in range(0, len(texts), batch_size):
            vectors.extend(await self._embed_group(texts[start : start + batch_size]))
        return vectors

    async def _embed_group(self, batch: list[str]) -> list[np.ndarray]:
        if self._remote is not None:
            limit = self._config.max_input_chars
            try:
                async with asyncio.timeout(self._config.timeout_sec):
                    raw = await self._remote.embed([text[:limit] or " " for text in batch])
                self.stats.remote_batches += 1
                return [np.asarray(vector, dtype=np.float32) for vector in raw]
            except (httpx.HTTPError, TimeoutError, ValueError, KeyError, TypeError) as e:
                self.stats.fallbacks += 1
                logger.warning(
                    "remote_embedding_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    batch_size=len(batch),
                    fallback="local",
                )
        return self._embed_local(batch)

    def _embed_local(self, batch: list[str]) -> list[np.ndarray]:
        try:
            vectors = [local_embed(text, self._config.dimensions) for text in batch]
        except (ValueError, TypeError, OverflowError, MemoryError) as e:
            raise EmbeddingError.failed(str(e), batch_size=len(batch)) from e
        self.stats.local_batches += 1
        return vectors

    async def close(self) -> None:
        if self._remote is not None:
            await self._remote.aclose()
            self._remote = None
