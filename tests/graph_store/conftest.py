"""
Shared test fixtures for graph store tests.
"""

import pytest

from lattice.core.graph_store.neo4j_store import Neo4jGraphStore


@pytest.fixture
def neo4j_store():
    """Create Neo4j store for testing."""
    return Neo4jGraphStore(
        uri="bolt://localhost:7687",
        username="neo4j",
        password="password",
        database="neo4j",
    )


@pytest.fixture
async def populated_store(sqlite_store):
    """
    SQLite store holding two documents:

    /docs/a.md declares FalkorDB and Redis and references FalkorDB.
    /docs/b.md references FalkorDB and links to /docs/a.md.
    """
    await sqlite_store.upsert_node("Document", {"name": "/docs/a.md", "title": "A"})
    await sqlite_store.upsert_node("Document", {"name": "/docs/b.md", "title": "B"})
    await sqlite_store.upsert_node("Technology", {"name": "FalkorDB", "description": "Graph DB"})
    await sqlite_store.upsert_node("Technology", {"name": "Redis"})

    for ordinal, name in enumerate(["FalkorDB", "Redis"]):
        await sqlite_store.upsert_relationship(
            "Technology", name, "APPEARS_IN", "Document", "/docs/a.md",
            {"document_path": "/docs/a.md", "ordinal": ordinal},
        )
    await sqlite_store.upsert_relationship(
        "Document", "/docs/a.md", "REFERENCES", "Technology", "FalkorDB", {"document_path": "/docs/a.md"}
    )
    await sqlite_store.upsert_relationship(
        "Document", "/docs/b.md", "REFERENCES", "Technology", "FalkorDB", {"document_path": "/docs/b.md"}
    )
    await sqlite_store.upsert_relationship(
        "Document", "/docs/b.md", "REFERENCES", "Document", "/docs/a.md", {"document_path": "/docs/b.md"}
    )
    return sqlite_store
