"""Cross-document entity deduplication."""

from collections.abc import Iterable

from lattice.models.document import ParsedDocument
from lattice.models.sync import UniqueEntity


def collect_unique_entities(documents: Iterable[ParsedDocument]) -> dict[str, UniqueEntity]:
    """
    Merge every document's entities into one entry per (type, name).

    Keys are "type:name". document_paths keeps first-seen order. The longest
    non-empty description wins; on a tie the first one seen is kept.
    """
    entities: dict[str, UniqueEntity] = {}

    for document in documents:
        for entity in document.entities:
            existing = entities.get(entity.key)

            if existing is None:
                entities[entity.key] = UniqueEntity(
                    type=entity.type,
                    name=entity.name,
                    description=entity.description or None,
                    document_paths=[document.path],
                )
                continue

            if document.path not in existing.document_paths:
                existing.document_paths.append(document.path)
            if entity.description and len(entity.description) > len(existing.description or ""):
                existing.description = entity.description

    return entities
