"""
Sync pass models: change classification, deduplicated entities, options and results.
"""

from enum import Enum

from pydantic import BaseModel, Field

from lattice.models.cascade import CascadeAnalysis
from lattice.models.document import EntityType


class ChangeType(str, Enum):
    """How a document differs from the persisted hash index."""

    NEW = "new"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


class SyncPhase(str, Enum):
    """Progress of one sync pass."""

    IDLE = "idle"
    INDEX_LOADED = "index_loaded"
    PARSED = "parsed"
    ENTITIES_COLLECTED = "entities_collected"
    ENTITIES_UPSERTED = "entities_upserted"
    DOCUMENTS_PROCESSED = "documents_processed"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


class DocumentChange(BaseModel):
    """One document's classification for the current pass."""

    path: str
    change_type: ChangeType
    reason: str


class UniqueEntity(BaseModel):
    """An entity merged across every document that declares it."""

    type: EntityType
    name: str
    description: str | None = None
    document_paths: list[str] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.type.value}:{self.name}"


class SyncOptions(BaseModel):
    """Caller-controlled switches for a sync pass."""

    force: bool = False
    dry_run: bool = False
    paths: list[str] | None = None
    skip_cascade: bool = False
    embeddings: bool = True
    ai_extraction: bool = False
    # Missing required frontmatter fields abort the pass instead of warning
    strict: bool = False


class SyncErrorEntry(BaseModel):
    path: str
    error: str


class SyncResult(BaseModel):
    """Summary returned by a sync pass."""

    added: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    errors: list[SyncErrorEntry] = Field(default_factory=list)
    warnings: list[SyncErrorEntry] = Field(default_factory=list)
    duration: float = 0.0
    changes: list[DocumentChange] = Field(default_factory=list)
    cascade_warnings: list[CascadeAnalysis] = Field(default_factory=list)
    embeddings_generated: int = 0
    entity_embeddings_generated: int = 0

    @property
    def success(self) -> bool:
        return not self.errors

    def add_error(self, path: str, error: Exception | str) -> None:
        self.errors.append(SyncErrorEntry(path=path, error=str(error)))

    def add_warning(self, path: str, message: str) -> None:
        self.warnings.append(SyncErrorEntry(path=path, error=message))
