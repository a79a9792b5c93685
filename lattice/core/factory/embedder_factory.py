"""
Factory for creating embedder providers.
"""

from lattice.config import EmbedderConfig
from lattice.core.embeddings.base import Embedder
from lattice.core.embeddings.mock import MockEmbedder
from lattice.core.embeddings.ollama import OllamaEmbedder
from lattice.core.embeddings.openai import OpenAIEmbedder
from lattice.utils.exceptions import ConfigurationError

OLLAMA_DEFAULT_HOST = "http://localhost:11434"


class EmbedderFactory:
    """Factory for creating embedder providers from configuration."""

    @staticmethod
    def create(config: EmbedderConfig) -> Embedder:
        """
        Create embedder from configuration.

        Args:
            config: Embedder configuration

        Returns:
            Embedder instance

        Raises:
            ConfigurationError: If provider is not supported
        """
        if config.provider == "ollama":
            return OllamaEmbedder(
                host=config.base_url or OLLAMA_DEFAULT_HOST,
                model=config.model,
                timeout=config.timeout,
                dimension=config.dimension,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required")
            return OpenAIEmbedder(
                api_key=config.api_key,
                model=config.model,
                base_url=config.base_url,
                timeout=config.timeout,
                dimension=config.dimension,
            )
        elif config.provider == "mock":
            return MockEmbedder(dimension=config.dimension or 384)
        else:
            raise ConfigurationError(f"Unsupported embedder provider: {config.provider}")
