"""
Hash index stored on Document nodes in the graph itself.
"""

from lattice.core.graph_store.base import GraphStore
from lattice.core.hash_index.base import HashIndex
from lattice.models.graph import HashEntry


class GraphHashIndex(HashIndex):
    """Keeps content hashes as Document node properties."""

    def __init__(self, graph_store: GraphStore):
        self.graph_store = graph_store

    async def load(self) -> dict[str, HashEntry]:
        return await self.graph_store.load_all_document_hashes()

    async def record(self, path: str, entry: HashEntry) -> None:
        await self.graph_store.update_document_hashes(
            path, entry.content_hash, entry.embedding_source_hash
        )

    async def remove(self, path: str) -> None:
        # Deleting the Document node removes its hashes with it
        return None
