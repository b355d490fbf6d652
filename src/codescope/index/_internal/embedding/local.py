"""Deterministic local embedding.

A hashed bag-of-words: each term's log-scaled frequency is scattered into
a few positions of a fixed-length vector, and the result is L2-normalized.
Pure computation with no model or network, so the same text always gives a
bit-identical vector.
"""

from __future__ import annotations

import math
import re
from collections import Counter

import numpy as np

from codescope.config.constants import (
    LOCAL_EMBED_MAX_TOKENS,
    LOCAL_EMBED_SCATTER,
    LOCAL_EMBED_STRIDE,
)

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercased word tokens longer than one character, capped in count."""
    words = _NON_WORD.sub(" ", text.lower()).split()
    return [w for w in words if len(w) > 1][:LOCAL_EMBED_MAX_TOKENS]


def term_hash(term: str) -> int:
    """Non-negative 32-bit polynomial string hash (h * 31 + c)."""
    h = 0
    for ch in term:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def local_embed(text: str, dimensions: int) -> np.ndarray:
    """Embed text into a unit-length float32 vector (zero vector for no terms)."""
    vector = np.zeros(dimensions, dtype=np.float64)
    for term, count in Counter(tokenize(text)).items():
        h = term_hash(term)
        weight = math.log(1 + count)
        for i in range(LOCAL_EMBED_SCATTER):
            vector[(h + i * LOCAL_EMBED_STRIDE) % dimensions] += weight * math.sin(h * (i + 1))
    norm = float(np.linalg.norm(vector))
    if norm > 0:
        vector /= norm
    return vector.astype(np.float32)
