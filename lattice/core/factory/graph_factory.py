"""
Factory for creating graph store backends.
"""

from lattice.config import Config
from lattice.core.graph_store.base import GraphStore
from lattice.core.graph_store.neo4j_store import Neo4jGraphStore
from lattice.core.graph_store.sqlite_store import SQLiteGraphStore
from lattice.utils.exceptions import ConfigurationError


class GraphStoreFactory:
    """Factory for creating graph store backends from configuration."""

    @staticmethod
    def create(config: Config, embedding_dimension: int | None = None) -> GraphStore:
        """
        Create graph store from configuration.

        Args:
            config: Main configuration object
            embedding_dimension: Vector length every embedding must have, if known

        Returns:
            Graph store instance

        Raises:
            ConfigurationError: If backend is not supported
        """
        if config.graph_backend == "sqlite":
            return SQLiteGraphStore(
                db_path=config.sqlite.db_path,
                embedding_dimension=embedding_dimension,
            )
        elif config.graph_backend == "neo4j":
            return Neo4jGraphStore(
                uri=config.neo4j.uri,
                username=config.neo4j.username,
                password=config.neo4j.password,
                database=config.neo4j.database,
                embedding_dimension=embedding_dimension,
            )
        else:
            raise ConfigurationError(f"Unsupported graph backend: {config.graph_backend}")
