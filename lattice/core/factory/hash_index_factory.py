"""
Factory for creating hash index backends.
"""

from lattice.config import SyncConfig
from lattice.core.graph_store.base import GraphStore
from lattice.core.hash_index.base import HashIndex
from lattice.core.hash_index.graph_index import GraphHashIndex
from lattice.core.hash_index.manifest import ManifestHashIndex
from lattice.utils.exceptions import ConfigurationError


class HashIndexFactory:
    """Factory for creating hash index backends from configuration."""

    @staticmethod
    def create(config: SyncConfig, graph_store: GraphStore) -> HashIndex:
        """
        Create hash index from configuration.

        Raises:
            ConfigurationError: If backend is not supported
        """
        if config.hash_index == "graph":
            return GraphHashIndex(graph_store)
        elif config.hash_index == "manifest":
            return ManifestHashIndex(config.manifest_path)
        else:
            raise ConfigurationError(f"Unsupported hash index backend: {config.hash_index}")
