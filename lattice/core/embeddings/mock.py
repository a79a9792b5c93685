"""
Deterministic offline embedder.

Seeds a random generator from the SHA-256 of the text, so the same text always
maps to the same unit-length vector. Used for offline syncs and tests.
"""

import hashlib

import numpy as np

from lattice.core.embeddings.base import Embedder


class MockEmbedder(Embedder):
    """Hash-seeded, unit-normalized embeddings without any network calls."""

    def __init__(self, dimension: int = 384):
        self.dimension = dimension
        self.calls = 0

    async def embed(self, text: str, **kwargs) -> list[float]:
        self._require_text(text)
        self.calls += 1

        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        vector = np.random.default_rng(seed).standard_normal(self.dimension)
        vector /= np.linalg.norm(vector)
        return vector.tolist()

    async def get_dimension(self) -> int:
        return self.dimension

    async def close(self):
        pass
