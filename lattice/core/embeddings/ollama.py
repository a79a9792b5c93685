"""
Ollama embedder using native ollama-python SDK.
"""

import ollama

from lattice.core.embeddings.base import Embedder
from lattice.utils.exceptions import EmbeddingError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for document and entity text.

    Supports models like nomic-embed-text, mxbai-embed-large, etc.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 120.0,
        dimension: int | None = None,
    ):
        """
        Initialize Ollama embedder.

        Args:
            host: Ollama server URL
            model: Embedding model name
            timeout: Request timeout in seconds
            dimension: Known vector length (measured on first use otherwise)
        """
        self.host = host
        self.model = model
        self.timeout = timeout
        self._dimension = dimension

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using Ollama.

        Raises:
            EmbeddingError: If text is empty or Ollama embedding fails
        """
        self._require_text(text)

        try:
            response = await self.client.embed(model=self.model, input=text, **kwargs)

            embeddings = response["embeddings"] if response else None
            if not embeddings:
                raise EmbeddingError("Ollama returned invalid embedding response")

            return list(embeddings[0])
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"Ollama embedding error ({self.model} at {self.host}): {e}")
            raise EmbeddingError(f"Ollama embedding error: {e}") from e

    async def batch_embed(self, texts: list[str], **kwargs) -> list[list[float]]:
        """Embed several texts in one request."""
        if not texts:
            return []
        for text in texts:
            self._require_text(text)

        try:
            response = await self.client.embed(model=self.model, input=texts, **kwargs)
            embeddings = response["embeddings"] if response else None
            if not embeddings or len(embeddings) != len(texts):
                raise EmbeddingError("Ollama returned an incomplete batch response")
            return [list(vector) for vector in embeddings]
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"Ollama batch embedding error ({len(texts)} texts): {e}")
            raise EmbeddingError(f"Ollama batch embedding error: {e}") from e

    async def get_dimension(self) -> int:
        """Embedding dimension, cached after the first measurement."""
        if self._dimension is None:
            self._dimension = await super().get_dimension()
        return self._dimension

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
