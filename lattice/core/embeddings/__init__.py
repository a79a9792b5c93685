"""
Embedding providers for Lattice.

Available providers:
- OllamaEmbedder: Local models served by Ollama
- OpenAIEmbedder: OpenAI embedding API
- MockEmbedder: Deterministic offline vectors
"""

from lattice.core.embeddings.base import Embedder
from lattice.core.embeddings.mock import MockEmbedder
from lattice.core.embeddings.ollama import OllamaEmbedder
from lattice.core.embeddings.openai import OpenAIEmbedder

__all__ = [
    "Embedder",
    "MockEmbedder",
    "OllamaEmbedder",
    "OpenAIEmbedder",
]
