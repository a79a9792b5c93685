"""
Graph store records: property bags, nodes, edges, search hits, hash entries.
"""

from datetime import datetime
from typing import Union

from pydantic import BaseModel, Field, TypeAdapter

# Closed set of values a node or edge property may hold
PropertyValue = Union[str, int, float, bool, None, list[str]]
Properties = dict[str, PropertyValue]

properties_adapter: TypeAdapter[Properties] = TypeAdapter(Properties)

# Property stamped on every relationship naming the document that created it
PROVENANCE_KEY = "document_path"


class GraphNode(BaseModel):
    """A node as read back from the graph store."""

    label: str
    name: str
    properties: dict = Field(default_factory=dict)
    has_embedding: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GraphRelationship(BaseModel):
    """A typed edge keyed by both endpoints and the relation."""

    source_label: str
    source_name: str
    relation: str
    target_label: str
    target_name: str
    properties: dict = Field(default_factory=dict)

    @property
    def document_path(self) -> str | None:
        return self.properties.get(PROVENANCE_KEY)


class SearchHit(BaseModel):
    """A vector search result."""

    label: str
    name: str
    score: float
    title: str | None = None
    description: str | None = None


class DocumentRef(BaseModel):
    """A document found by a graph lookup."""

    path: str
    title: str | None = None


class HashEntry(BaseModel):
    """Persisted per-document change-tracking record."""

    content_hash: str | None = None
    embedding_source_hash: str | None = None
    last_synced: datetime | None = None
    entity_count: int = 0
    relationship_count: int = 0
