"""
AI extraction models.

ExtractionPayload is the structured response requested from the LLM;
ExtractionResult is what the extractor hands back to the sync pass.
"""

from pydantic import BaseModel, Field

from lattice.models.document import Entity, Relationship


class ExtractionPayload(BaseModel):
    """Structured LLM response for entity extraction."""

    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    summary: str = ""


class ExtractionResult(BaseModel):
    """Outcome of extracting one document. Failure is signaled, never raised."""

    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    summary: str | None = None
    success: bool = True
    error: str | None = None
