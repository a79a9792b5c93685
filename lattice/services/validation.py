"""
Validation for frontmatter-declared graphs.

Runs before any store mutation: a relationship endpoint that is neither the
owning document, a markdown link, nor a known entity aborts the sync pass.
Missing required fields are warnings, or errors on strict passes.
"""

from collections.abc import Iterable

from lattice.models.document import ParsedDocument, Relationship


def is_document_link(value: str) -> bool:
    return value.endswith(".md")


def _is_document_endpoint(document: ParsedDocument, value: str) -> bool:
    return value == document.path or is_document_link(value)


def referenced_entity_names(documents: Iterable[ParsedDocument]) -> set[str]:
    """Every relationship endpoint that must name an entity."""
    names: set[str] = set()
    for document in documents:
        for relationship in document.relationships:
            for value in (relationship.source, relationship.target):
                if not _is_document_endpoint(document, value):
                    names.add(value)
    return names


def _check(document: ParsedDocument, relationship: Relationship, known: set[str]) -> list[str]:
    errors = []
    if not _is_document_endpoint(document, relationship.source) and relationship.source not in known:
        errors.append(f'Relationship source "{relationship.source}" not found in any document')
    if not _is_document_endpoint(document, relationship.target) and relationship.target not in known:
        errors.append(f'Relationship target "{relationship.target}" not found as entity')
    return errors


def validate_relationships(
    documents: Iterable[ParsedDocument], known_entities: Iterable[str] = ()
) -> list[tuple[str, str]]:
    """
    Check every declared relationship against the known entity names.

    Known names are the entities declared by the given documents plus
    known_entities (typically entities already in the graph).

    Returns:
        (document path, error message) pairs; empty when everything resolves
    """
    documents = list(documents)
    known = set(known_entities)
    for document in documents:
        known.update(entity.name for entity in document.entities)

    errors: list[tuple[str, str]] = []
    for document in documents:
        for relationship in document.relationships:
            errors.extend((document.path, error) for error in _check(document, relationship, known))
    return errors


# Frontmatter fields every document is expected to carry
REQUIRED_FIELDS = ("summary", "created", "updated", "status")


def missing_required_fields(documents: Iterable[ParsedDocument]) -> list[tuple[str, str]]:
    """
    Find documents lacking a required frontmatter field.

    The title is not checked: it falls back to the first heading or the
    file name, so a parsed document always has one.

    Returns:
        (document path, field name) pairs in document order
    """
    missing: list[tuple[str, str]] = []
    for document in documents:
        for field in REQUIRED_FIELDS:
            if not getattr(document, field):
                missing.append((document.path, field))
    return missing
