"""Vector comparison utilities.

Both functions are total: mismatched lengths produce a neutral answer
(0 similarity, infinite distance) instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

Vector = Sequence[float] | np.ndarray


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity in [-1, 1]; 0 for mismatched lengths or zero vectors."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.size == 0:
        return 0.0
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return max(-1.0, min(1.0, float(np.dot(va, vb)) / norm))


def euclidean_distance(a: Vector, b: Vector) -> float:
    """Euclidean distance; infinity for mismatched lengths."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        return math.inf
    return float(np.linalg.norm(va - vb))


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one query against each row of a matrix.

    Rows with zero norm score 0.
    """
    if matrix.size == 0:
        return np.zeros(0, dtype=np.float64)
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    q_norm = float(np.linalg.norm(q))
    row_norms = np.linalg.norm(m, axis=1)
    denom = row_norms * q_norm
    dots = m @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(denom > 0, dots / np.where(denom > 0, denom, 1.0), 0.0)
    return np.clip(scores, -1.0, 1.0)
