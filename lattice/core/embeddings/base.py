"""
Abstract base class for embedding providers.
Maps document and entity text to fixed-length vectors for similarity search.
"""

from abc import ABC, abstractmethod

from lattice.utils.exceptions import EmbeddingError


class Embedder(ABC):
    """
    Abstract base for embedding providers.

    Responsibilities:
    - Generate vector embeddings for text
    - Reject empty text
    - Produce vectors of one fixed dimension per provider
    """

    @abstractmethod
    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding vector for text.

        Args:
            text: Text to embed
            **kwargs: Provider-specific parameters

        Returns:
            List of floats representing the embedding vector

        Raises:
            EmbeddingError: If text is empty or embedding generation fails
        """
        pass

    async def batch_embed(self, texts: list[str], **kwargs) -> list[list[float]]:
        """
        Generate embeddings for multiple texts, sequentially by default.

        Returns:
            List of embedding vectors (same order as input texts)
        """
        return [await self.embed(text, **kwargs) for text in texts]

    async def get_dimension(self) -> int:
        """
        Dimension of vectors produced by this provider.

        Default implementation embeds a sample string.
        """
        return len(await self.embed("dimension sample"))

    @abstractmethod
    async def close(self):
        """Close any open connections."""
        pass

    @staticmethod
    def _require_text(text: str) -> None:
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")
