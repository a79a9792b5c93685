"""
Cascade impact models.

A CascadeAnalysis describes one entity-level change in a source document
and the other documents that may now be stale because of it.
"""

from enum import Enum

from pydantic import BaseModel, Field

from lattice.models.document import EntityType


class CascadeTrigger(str, Enum):
    ENTITY_RENAMED = "entity_renamed"
    ENTITY_DELETED = "entity_deleted"
    ENTITY_TYPE_CHANGED = "entity_type_changed"
    RELATIONSHIP_CHANGED = "relationship_changed"
    DOCUMENT_DELETED = "document_deleted"


class SuggestedAction(str, Enum):
    UPDATE_REFERENCE = "update_reference"
    REMOVE_REFERENCE = "remove_reference"
    REVIEW_CONTENT = "review_content"
    ADD_ENTITY = "add_entity"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EntityChange(BaseModel):
    """A single detected change between two versions of a document."""

    trigger: CascadeTrigger
    entity_name: str
    entity_type: EntityType | None = None
    old_value: str | None = None
    new_value: str | None = None
    source_document: str


class AffectedDocument(BaseModel):
    path: str
    title: str | None = None
    reason: str
    suggested_action: SuggestedAction
    confidence: Confidence
    affected_entities: list[str] = Field(default_factory=list)


class CascadeAnalysis(BaseModel):
    trigger: CascadeTrigger
    source_document: str
    affected_documents: list[AffectedDocument] = Field(default_factory=list)
    summary: str
