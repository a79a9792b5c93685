"""
Factory modules for creating Lattice components.

Provides modular factories for graph stores, hash indexes, embedders, LLMs
and the fully wired sync service.
"""

from lattice.core.factory.embedder_factory import EmbedderFactory
from lattice.core.factory.graph_factory import GraphStoreFactory
from lattice.core.factory.hash_index_factory import HashIndexFactory
from lattice.core.factory.llm_factory import LLMFactory
from lattice.core.factory.sync_factory import SyncServiceFactory

__all__ = [
    "EmbedderFactory",
    "GraphStoreFactory",
    "HashIndexFactory",
    "LLMFactory",
    "SyncServiceFactory",
]
