"""Embedding provider, local fallback and vector utilities."""

from codescope.index._internal.embedding.local import local_embed, term_hash, tokenize
from codescope.index._internal.embedding.preprocess import preprocess_code
from codescope.index._internal.embedding.provider import EmbeddingProvider, EmbeddingStats
from codescope.index._internal.embedding.remote import RemoteEmbeddingClient
from codescope.index._internal.embedding.similarity import (
    cosine_scores,
    cosine_similarity,
    euclidean_distance,
)

__all__ = [
    "EmbeddingProvider",
    "EmbeddingStats",
    "RemoteEmbeddingClient",
    "cosine_scores",
    "cosine_similarity",
    "euclidean_distance",
    "local_embed",
    "preprocess_code",
    "term_hash",
    "tokenize",
]
