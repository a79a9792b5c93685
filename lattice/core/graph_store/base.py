"""
Base interface for graph storage.

Both backends (relational emulation and native Cypher) satisfy the same
upsert contract: nodes keyed by (label, name), edges keyed by both endpoints
plus the relation, every edge stamped with the document path that created it.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from lattice.models.document import Entity, EntityType, RelationType
from lattice.models.graph import (
    DocumentRef,
    GraphNode,
    GraphRelationship,
    HashEntry,
    Properties,
    SearchHit,
    properties_adapter,
)
from lattice.utils.exceptions import MissingKeyError, ValidationError


def normalize_label(label: str | EntityType) -> str:
    """Validate a node label against the closed set."""
    try:
        return EntityType(label).value
    except ValueError as e:
        raise ValidationError(f"Unknown node label: {label!r}") from e


def normalize_relation(relation: str | RelationType) -> str:
    """Validate a relationship type against the closed set."""
    try:
        return RelationType(relation).value
    except ValueError as e:
        raise ValidationError(f"Unknown relation type: {relation!r}") from e


def validate_properties(properties: dict | None, require_name: bool = False) -> dict:
    """
    Check a property bag against the allowed value kinds.

    Raises:
        MissingKeyError: If require_name is set and "name" is absent or empty
        ValidationError: If a value is not a scalar or a list of strings
    """
    properties = properties or {}
    if require_name and not properties.get("name"):
        raise MissingKeyError("Node properties must include a non-empty \"name\"")
    try:
        return properties_adapter.validate_python(properties)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid property bag: {e}") from e


class GraphStore(ABC):
    """Abstract base class for graph storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the graph store (create tables/schema)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        pass

    # ═══════════════════════════════════════════════════════════
    # NODE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def upsert_node(self, label: str | EntityType, properties: Properties) -> None:
        """
        Create or merge a node keyed by (label, properties["name"]).

        Given properties overwrite existing ones; updated_at is bumped.

        Args:
            label: Node label
            properties: Property bag, must contain "name"

        Raises:
            MissingKeyError: If name is absent
            ValidationError: If the label or a property value is not allowed
            GraphStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def get_node(self, label: str | EntityType, name: str) -> GraphNode | None:
        """
        Retrieve a node by its natural key.

        Returns:
            GraphNode or None if not found
        """
        pass

    @abstractmethod
    async def delete_node(self, label: str | EntityType, name: str) -> None:
        """
        Delete a node after removing all of its relationships (both directions).
        """
        pass

    @abstractmethod
    async def count_nodes(self, label: str | EntityType | None = None) -> int:
        """Count nodes, optionally restricted to one label."""
        pass

    @abstractmethod
    async def list_nodes(self, label: str | EntityType | None = None) -> list[GraphNode]:
        """Every node, optionally restricted to one label, ordered by label and name."""
        pass

    # ═══════════════════════════════════════════════════════════
    # RELATIONSHIP OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def upsert_relationship(
        self,
        source_label: str | EntityType,
        source_name: str,
        relation: str | RelationType,
        target_label: str | EntityType,
        target_name: str,
        properties: Properties | None = None,
    ) -> None:
        """
        Create or merge a typed edge.

        Both endpoints are created as bare nodes first if they don't exist yet,
        so an edge is never lost because an endpoint hasn't been synced.

        Args:
            source_label: Label of the source node
            source_name: Name of the source node
            relation: Relationship type
            target_label: Label of the target node
            target_name: Name of the target node
            properties: Edge properties (overwrite on conflict)
        """
        pass

    @abstractmethod
    async def delete_document_relationships(self, document_path: str) -> int:
        """
        Remove every relationship stamped with the given document path.

        Returns:
            Number of relationships removed
        """
        pass

    @abstractmethod
    async def get_relationships(self, document_path: str | None = None) -> list[GraphRelationship]:
        """List relationships, optionally only those created by one document."""
        pass

    # ═══════════════════════════════════════════════════════════
    # EMBEDDINGS / VECTOR SEARCH
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def update_node_embedding(
        self, label: str | EntityType, name: str, embedding: list[float]
    ) -> None:
        """
        Attach an embedding to an existing node.

        Raises:
            ValidationError: If the vector length differs from the configured dimension
            NotFoundError: If the node doesn't exist
        """
        pass

    @abstractmethod
    async def create_vector_index(self, label: str | EntityType) -> None:
        """Ensure a vector index exists for a label (no-op where not supported)."""
        pass

    @abstractmethod
    async def vector_search(
        self, label: str | EntityType, query_vector: list[float], k: int = 10
    ) -> list[SearchHit]:
        """
        Return up to k nodes of one label nearest to the query vector.

        Returns:
            Hits sorted by descending similarity
        """
        pass

    async def vector_search_all(self, query_vector: list[float], k: int = 10) -> list[SearchHit]:
        """
        Search every label and merge the results.

        Each label may be indexed independently, so per-label hits are merged
        and re-sorted by score before truncating to k.
        """
        hits: list[SearchHit] = []
        for label in EntityType:
            hits.extend(await self.vector_search(label, query_vector, k))
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:k]

    # ═══════════════════════════════════════════════════════════
    # DOCUMENT HASH BOOKKEEPING
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def load_all_document_hashes(self) -> dict[str, HashEntry]:
        """Load the hash index for every Document node in one round trip."""
        pass

    @abstractmethod
    async def update_document_hashes(
        self,
        document_path: str,
        content_hash: str,
        embedding_source_hash: str | None = None,
    ) -> None:
        """Record the content (and embedding source) hash on a Document node."""
        pass

    # ═══════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def get_document_entities(self, document_path: str) -> list[Entity]:
        """
        Entities attached to a document by APPEARS_IN, in document order.

        Used to reconstruct the previous version of a document.
        """
        pass

    @abstractmethod
    async def find_documents_referencing(
        self, entity_name: str, relation: str | RelationType | None = None
    ) -> list[DocumentRef]:
        """
        Documents connected to the named entity by an edge in either direction.

        Covers both entity -[APPEARS_IN]-> document and document -[REFERENCES]-> entity.

        Args:
            entity_name: Entity name (any non-Document label)
            relation: Edge type to follow, or None for any
        """
        pass

    @abstractmethod
    async def resolve_entity_types(self, names: list[str]) -> dict[str, str]:
        """
        Look up the label of existing non-Document nodes by name.

        Returns:
            Mapping of name to label for every name found
        """
        pass

    @abstractmethod
    async def find_documents_linking_to(self, document_path: str) -> list[DocumentRef]:
        """Documents with an edge pointing at the given document."""
        pass

    @abstractmethod
    async def query(self, statement: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a backend-native query with bound parameters and return rows as dicts."""
        pass

    @abstractmethod
    async def checkpoint(self) -> None:
        """Force durability of buffered writes."""
        pass
