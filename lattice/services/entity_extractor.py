"""
AI entity extraction.

Asks an LLM for a document's entities, relationships and summary, validates
the structured answer, and retries with the validation errors when the
answer doesn't hold together.
"""

import asyncio
import time
from pathlib import Path

from lattice.core.llm.base import LLMProvider
from lattice.models.document import DOCUMENT_SELF, ENTITY_TYPES, RelationType
from lattice.models.extraction import ExtractionPayload, ExtractionResult
from lattice.utils.logger import get_logger

logger = get_logger(__name__)

# Relations the model may propose; APPEARS_IN edges are written by sync
EXTRACTABLE_RELATIONS = (RelationType.REFERENCES, RelationType.ANSWERED_BY)

MIN_ENTITIES = 3
MAX_ENTITIES = 10


class IntervalGate:
    """
    Single-slot rate limiter.

    wait() returns immediately if the previous call was at least
    min_interval seconds ago, otherwise sleeps for the remainder.
    """

    def __init__(self, min_interval: float):
        self.min_interval = min_interval
        self._last: float | None = None

    async def wait(self) -> None:
        if self._last is not None:
            remaining = self.min_interval - (time.monotonic() - self._last)
            if remaining > 0:
                await asyncio.sleep(remaining)
        self._last = time.monotonic()


def validate_extraction(payload: ExtractionPayload) -> list[str]:
    """
    Check an extraction for internal consistency.

    Returns:
        Error messages, empty when the extraction is usable
    """
    errors = []

    if not MIN_ENTITIES <= len(payload.entities) <= MAX_ENTITIES:
        errors.append(
            f"Expected {MIN_ENTITIES}-{MAX_ENTITIES} entities, got {len(payload.entities)}"
        )

    names = {entity.name for entity in payload.entities}
    for relationship in payload.relationships:
        if relationship.relation not in EXTRACTABLE_RELATIONS:
            errors.append(f'Relation "{relationship.relation.value}" is written by sync and cannot be extracted')
        if relationship.source != DOCUMENT_SELF and relationship.source not in names:
            errors.append(f'Relationship source "{relationship.source}" not found in extracted entities')
        if relationship.target != DOCUMENT_SELF and relationship.target not in names:
            errors.append(f'Relationship target "{relationship.target}" not found in extracted entities')

    if not payload.summary.strip():
        errors.append("Summary is missing")

    return errors


class LLMEntityExtractor:
    """
    Extracts entities from markdown with an LLM.

    Never raises: every failure comes back as ExtractionResult(success=False).
    """

    def __init__(
        self,
        llm: LLMProvider,
        min_interval: float = 0.5,
        max_attempts: int = 3,
        max_tokens: int = 2000,
        temperature: float = 0.0,
    ):
        self.llm = llm
        self.max_attempts = max(1, max_attempts)
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.gate = IntervalGate(min_interval)

    async def extract(self, path: str, content: str | None = None) -> ExtractionResult:
        """
        Extract entities, relationships and a summary from one document.

        Args:
            path: Absolute document path
            content: Document text; read from disk when omitted
        """
        try:
            if content is None:
                content = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")

            prompt = self.build_prompt(path, content)
            errors: list[str] = []

            for attempt in range(1, self.max_attempts + 1):
                await self.gate.wait()

                attempt_prompt = prompt if not errors else self._with_feedback(prompt, errors)
                payload = await self.llm.complete(
                    attempt_prompt,
                    response_format=ExtractionPayload,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                )

                errors = validate_extraction(payload)
                if not errors:
                    logger.debug(f"Extracted {len(payload.entities)} entities from {path} (attempt {attempt})")
                    return ExtractionResult(
                        entities=payload.entities,
                        relationships=[r.resolve_self(path) for r in payload.relationships],
                        summary=payload.summary,
                    )

                logger.debug(f"Extraction attempt {attempt} for {path} failed validation: {errors}")

            return ExtractionResult(
                success=False,
                error=f"No valid extraction after {self.max_attempts} attempts: {'; '.join(errors)}",
            )

        except Exception as e:
            logger.error(f"Entity extraction failed for {path}: {e}")
            return ExtractionResult(success=False, error=str(e))

    def build_prompt(self, path: str, content: str) -> str:
        """Build the extraction prompt for one document."""
        entity_types = ", ".join(f'"{t.value}"' for t in ENTITY_TYPES)

        return f"""Analyze this markdown document and extract entities, relationships, and a summary.

File: {path}

<document>
{content}
</document>

## Instructions

### 1. Entities ({MIN_ENTITIES}-{MAX_ENTITIES} items)
Each entity has:
- "name": the entity name
- "type": one of {entity_types}
- "description": a brief description

### 2. Relationships
Each relationship has:
- "source": "{DOCUMENT_SELF}" for the document itself, or an entity name from your list
- "relation": "{RelationType.REFERENCES.value}" or "{RelationType.ANSWERED_BY.value}"
- "target": an entity name from your list

Use {RelationType.ANSWERED_BY.value} when a Question entity is answered by this document
(source: the Question name, target: "{DOCUMENT_SELF}").

### 3. Summary
A 50-100 word summary of the document's main purpose and key concepts.

Return JSON with exactly these fields: entities, relationships, summary."""

    @staticmethod
    def _with_feedback(prompt: str, errors: list[str]) -> str:
        bullet_list = "\n".join(f"- {error}" for error in errors)
        return f"""{prompt}

## Previous attempt was rejected
{bullet_list}

Fix these problems and answer again."""
