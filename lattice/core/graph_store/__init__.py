"""
Graph store implementations for Lattice.

Provides the upsert capability interface and its backends.

Available backends:
- SQLiteGraphStore: Embedded, relational emulation of nodes and edges
- Neo4jGraphStore: Native Cypher graph database
"""

from lattice.core.graph_store.base import GraphStore
from lattice.core.graph_store.neo4j_store import Neo4jGraphStore
from lattice.core.graph_store.sqlite_store import SQLiteGraphStore

__all__ = [
    "GraphStore",
    "Neo4jGraphStore",
    "SQLiteGraphStore",
]
