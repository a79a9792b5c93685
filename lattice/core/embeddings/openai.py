"""
OpenAI embedder using official SDK.
"""

from openai import AsyncOpenAI

from lattice.core.embeddings.base import Embedder
from lattice.utils.exceptions import EmbeddingError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for document and entity text.

    Supports text-embedding-3-small, text-embedding-3-large, etc.
    """

    # Known dimensions for OpenAI embedding models
    _MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        timeout: float = 120.0,
        dimension: int | None = None,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: OpenAI API key
            model: Embedding model name
            base_url: Optional custom base URL
            timeout: Request timeout in seconds
            dimension: Requested vector length (text-embedding-3 models can shorten)
        """
        self.model = model
        self.dimension = dimension

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def _request_options(self, kwargs: dict) -> dict:
        if self.dimension is not None and "dimensions" not in kwargs:
            kwargs = {**kwargs, "dimensions": self.dimension}
        return kwargs

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using OpenAI.

        Raises:
            EmbeddingError: If text is empty or the API call fails
        """
        self._require_text(text)

        try:
            response = await self.client.embeddings.create(
                model=self.model, input=text, **self._request_options(kwargs)
            )

            if not response.data:
                raise EmbeddingError("OpenAI returned empty embedding response")

            return response.data[0].embedding
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"OpenAI embedding error ({self.model}, {type(e).__name__}): {e}")
            raise EmbeddingError(f"OpenAI embedding error: {e}") from e

    async def batch_embed(self, texts: list[str], **kwargs) -> list[list[float]]:
        """Embed up to 2048 texts per request."""
        for text in texts:
            self._require_text(text)

        embeddings: list[list[float]] = []
        try:
            for i in range(0, len(texts), 2048):
                batch = texts[i : i + 2048]
                response = await self.client.embeddings.create(
                    model=self.model, input=batch, **self._request_options(kwargs)
                )
                if not response.data:
                    raise EmbeddingError("OpenAI returned empty batch embedding response")
                embeddings.extend(item.embedding for item in response.data)
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"OpenAI batch embedding error ({len(texts)} texts): {e}")
            raise EmbeddingError(f"OpenAI batch embedding error: {e}") from e

        return embeddings

    async def get_dimension(self) -> int:
        """Configured or known model dimension, probing only for unknown models."""
        if self.dimension is not None:
            return self.dimension
        if self.model in self._MODEL_DIMENSIONS:
            return self._MODEL_DIMENSIONS[self.model]
        return await super().get_dimension()

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
