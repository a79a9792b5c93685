"""
Data models for Lattice.

Core models:
- ParsedDocument, Entity, Relationship: documents and what they declare
- EntityType, RelationType: closed label and edge enumerations
- GraphNode, GraphRelationship, SearchHit, DocumentRef, HashEntry: store records
- ChangeType, DocumentChange, UniqueEntity, SyncOptions, SyncResult: sync pass
- CascadeAnalysis, AffectedDocument, EntityChange: cascade impact
- ExtractionPayload, ExtractionResult: AI extraction
- ValidationIssue, ValidationReport: document and graph validation
"""

from lattice.models.cascade import (
    AffectedDocument,
    CascadeAnalysis,
    CascadeTrigger,
    Confidence,
    EntityChange,
    SuggestedAction,
)
from lattice.models.document import (
    DOCUMENT_SELF,
    ENTITY_TYPES,
    Entity,
    EntityType,
    GraphMetadata,
    Importance,
    ParsedDocument,
    Relationship,
    RelationType,
)
from lattice.models.extraction import ExtractionPayload, ExtractionResult
from lattice.models.graph import (
    PROVENANCE_KEY,
    DocumentRef,
    GraphNode,
    GraphRelationship,
    HashEntry,
    Properties,
    PropertyValue,
    SearchHit,
    properties_adapter,
)
from lattice.models.sync import (
    ChangeType,
    DocumentChange,
    SyncErrorEntry,
    SyncOptions,
    SyncPhase,
    SyncResult,
    UniqueEntity,
)
from lattice.models.validation import IssueSeverity, ValidationIssue, ValidationReport

__all__ = [
    # Documents
    "DOCUMENT_SELF",
    "ENTITY_TYPES",
    "Entity",
    "EntityType",
    "GraphMetadata",
    "Importance",
    "ParsedDocument",
    "Relationship",
    "RelationType",
    # Graph
    "PROVENANCE_KEY",
    "DocumentRef",
    "GraphNode",
    "GraphRelationship",
    "HashEntry",
    "Properties",
    "PropertyValue",
    "SearchHit",
    "properties_adapter",
    # Sync
    "ChangeType",
    "DocumentChange",
    "SyncErrorEntry",
    "SyncOptions",
    "SyncPhase",
    "SyncResult",
    "UniqueEntity",
    # Cascade
    "AffectedDocument",
    "CascadeAnalysis",
    "CascadeTrigger",
    "Confidence",
    "EntityChange",
    "SuggestedAction",
    # Extraction
    "ExtractionPayload",
    "ExtractionResult",
    # Validation
    "IssueSeverity",
    "ValidationIssue",
    "ValidationReport",
]
