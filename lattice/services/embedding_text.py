"""Text composed for document and entity embeddings."""

from lattice.models.document import ParsedDocument
from lattice.models.sync import UniqueEntity
from lattice.utils.hashing import compute_content_hash

# Body prefix used when a document has no summary
CONTENT_PREVIEW_CHARS = 500


def compose_document_embedding_text(document: ParsedDocument) -> str:
    """Title, topic, tags, entity names, then the summary or a body preview."""
    parts: list[str] = []

    if document.title:
        parts.append(f"Title: {document.title}")
    if document.topic:
        parts.append(f"Topic: {document.topic}")
    if document.tags:
        parts.append(f"Tags: {', '.join(document.tags)}")
    if document.entities:
        parts.append(f"Entities: {', '.join(entity.name for entity in document.entities)}")

    if document.summary:
        parts.append(document.summary)
    else:
        parts.append(document.content[:CONTENT_PREVIEW_CHARS])

    return " | ".join(part for part in parts if part)


def compose_entity_embedding_text(entity: UniqueEntity) -> str:
    """Entity type and name followed by its description."""
    parts = [f"{entity.type.value}: {entity.name}"]
    if entity.description:
        parts.append(entity.description)
    return ". ".join(parts)


def embedding_source_hash(text: str) -> str:
    """Fingerprint of the text an embedding was generated from."""
    return compute_content_hash(text)
