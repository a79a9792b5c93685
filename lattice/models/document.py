"""
Document, entity, and relationship models.

A ParsedDocument is the extracted state of one markdown file for a single
sync pass. Entities are identified by (type, name); relationships point at
entity names or document paths.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

# Placeholder accepted in relationship endpoints for "the owning document"
DOCUMENT_SELF = "this"


class EntityType(str, Enum):
    """Node labels allowed in the knowledge graph."""

    TOPIC = "Topic"
    TECHNOLOGY = "Technology"
    CONCEPT = "Concept"
    TOOL = "Tool"
    PROCESS = "Process"
    PERSON = "Person"
    ORGANIZATION = "Organization"
    DOCUMENT = "Document"
    QUESTION = "Question"


# Entity labels a document may declare (everything but Document itself)
ENTITY_TYPES: tuple[EntityType, ...] = tuple(t for t in EntityType if t != EntityType.DOCUMENT)


class RelationType(str, Enum):
    """Typed edges allowed in the knowledge graph."""

    REFERENCES = "REFERENCES"
    APPEARS_IN = "APPEARS_IN"
    ANSWERED_BY = "ANSWERED_BY"


# Relations a document may declare in its frontmatter; APPEARS_IN edges are written by sync
DECLARABLE_RELATIONS: tuple[RelationType, ...] = (RelationType.REFERENCES,)


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Entity(BaseModel):
    """An entity declared by (or extracted from) a document."""

    name: str = Field(..., min_length=1, description="Entity name, unique within its type")
    type: EntityType = Field(..., description="Entity label")
    description: str | None = Field(default=None, description="Optional description")

    @property
    def key(self) -> str:
        """Identity key used for deduplication (type:name)."""
        return f"{self.type.value}:{self.name}"


class Relationship(BaseModel):
    """A typed edge between two entity names or document paths."""

    source: str = Field(..., min_length=1)
    relation: RelationType
    target: str = Field(..., min_length=1)

    def resolve_self(self, document_path: str) -> "Relationship":
        """Replace the "this" placeholder on either end with the document path."""
        return self.model_copy(
            update={
                "source": document_path if self.source == DOCUMENT_SELF else self.source,
                "target": document_path if self.target == DOCUMENT_SELF else self.target,
            }
        )


class GraphMetadata(BaseModel):
    """Optional graph hints from frontmatter."""

    importance: Importance | None = None
    domain: str | None = None


class ParsedDocument(BaseModel):
    """
    Extracted state of one markdown document.

    Immutable for the duration of a sync pass.
    """

    model_config = {"frozen": True}

    path: str = Field(..., description="Absolute path, unique key")
    title: str
    content: str = Field(default="", description="Body without frontmatter")
    content_hash: str = Field(..., description="SHA-256 of the raw file bytes")
    summary: str | None = None
    topic: str | None = None
    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created: str | None = None
    updated: str | None = None
    status: str | None = None
    graph_metadata: GraphMetadata | None = None

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _coerce_dates(cls, value):
        # YAML loads bare dates as date objects
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(tag) for tag in value]
