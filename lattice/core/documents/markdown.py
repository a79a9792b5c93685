"""
Markdown document source.

Documents are *.md files under a root directory. YAML frontmatter carries the
declared graph:

---
title: Graph databases
tags: [storage]
entities:
  - name: FalkorDB
    type: Technology
    description: Redis-based graph database
relationships:
  - source: this
    relation: REFERENCES
    target: FalkorDB
---
"""

import asyncio
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from lattice.core.documents.base import DocumentSource
from lattice.models.document import (
    DECLARABLE_RELATIONS,
    Entity,
    GraphMetadata,
    ParsedDocument,
    Relationship,
)
from lattice.utils.exceptions import DocumentParseError, NotFoundError, ValidationError
from lattice.utils.hashing import compute_content_hash
from lattice.utils.logger import get_logger

logger = get_logger(__name__)

# YAML frontmatter: --- delimited block at start of file
FRONTMATTER_PATTERN = re.compile(r"^---\s*\r?\n(.*?)\r?\n---\s*(?:\r?\n|$)", re.DOTALL)
H1_PATTERN = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)

IGNORED_DIRECTORIES = {"node_modules", ".git"}


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """
    Split YAML frontmatter from the body.

    Returns:
        Tuple of (metadata dict, body); empty dict if there is no frontmatter

    Raises:
        DocumentParseError: If the frontmatter is not a valid YAML mapping
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return {}, content

    try:
        metadata = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise DocumentParseError(f"Invalid YAML frontmatter: {e}") from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise DocumentParseError("Frontmatter must be a YAML mapping")

    return metadata, content[match.end() :]


class MarkdownDocumentSource(DocumentSource):
    """Markdown files with YAML frontmatter under one root directory."""

    def __init__(self, docs_path: str | Path = "docs"):
        self.docs_path = Path(docs_path).resolve()

    async def discover(self) -> list[str]:
        """All *.md files below the root, skipping node_modules and .git."""
        if not self.docs_path.is_dir():
            logger.warning(f"Docs directory not found: {self.docs_path}")
            return []

        def scan() -> list[str]:
            return sorted(
                str(path)
                for path in self.docs_path.rglob("*.md")
                if path.is_file()
                and not IGNORED_DIRECTORIES.intersection(path.relative_to(self.docs_path).parts)
            )

        return await asyncio.to_thread(scan)

    async def _read(self, path: str) -> bytes:
        try:
            return await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            raise DocumentParseError(f"Cannot read {path}: {e}") from e

    async def content_hash(self, path: str) -> str:
        return compute_content_hash(await self._read(path))

    async def parse(self, path: str) -> ParsedDocument:
        """
        Parse frontmatter, title and hash of one file.

        Raises:
            DocumentParseError: On unreadable files, bad YAML, or invalid
                entity/relationship declarations (all problems reported together)
        """
        raw = await self._read(path)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentParseError(f"{path} is not valid UTF-8: {e}") from e

        try:
            frontmatter, body = parse_frontmatter(text)
        except DocumentParseError as e:
            raise DocumentParseError(f"{path}: {e.message}") from e

        entities = self._extract_entities(frontmatter, path)
        relationships = self._extract_relationships(frontmatter, path)

        graph_metadata = None
        if isinstance(frontmatter.get("graph"), dict):
            try:
                graph_metadata = GraphMetadata.model_validate(frontmatter["graph"])
            except PydanticValidationError as e:
                raise DocumentParseError(f"Invalid graph metadata in {path}: {e}") from e

        try:
            return ParsedDocument(
                path=path,
                title=self._extract_title(frontmatter, body, path),
                content=body,
                content_hash=compute_content_hash(raw),
                summary=frontmatter.get("summary"),
                topic=frontmatter.get("topic"),
                entities=entities,
                relationships=relationships,
                tags=frontmatter.get("tags"),
                created=frontmatter.get("created"),
                updated=frontmatter.get("updated"),
                status=frontmatter.get("status"),
                graph_metadata=graph_metadata,
            )
        except PydanticValidationError as e:
            raise DocumentParseError(f"Invalid frontmatter in {path}: {e}") from e

    @staticmethod
    def _extract_title(frontmatter: dict, body: str, path: str) -> str:
        if frontmatter.get("title"):
            return str(frontmatter["title"])
        match = H1_PATTERN.search(body)
        if match:
            return match.group(1)
        return Path(path).stem

    @staticmethod
    def _extract_entities(frontmatter: dict, path: str) -> list[Entity]:
        raw_entities = frontmatter.get("entities")
        if not isinstance(raw_entities, list):
            return []

        entities: list[Entity] = []
        errors: list[str] = []
        for index, item in enumerate(raw_entities):
            try:
                entities.append(Entity.model_validate(item))
            except PydanticValidationError:
                errors.append(
                    f"Entity[{index}]: {item!r} - expected a mapping with name and a valid type"
                )

        if errors:
            raise DocumentParseError(
                f"Invalid entity schema in {path}:\n  " + "\n  ".join(errors),
                context={"path": path, "errors": errors},
            )
        return entities

    @staticmethod
    def _extract_relationships(frontmatter: dict, path: str) -> list[Relationship]:
        raw_relationships = frontmatter.get("relationships")
        if not isinstance(raw_relationships, list):
            return []

        relationships: list[Relationship] = []
        errors: list[str] = []
        for index, item in enumerate(raw_relationships):
            try:
                relationship = Relationship.model_validate(item)
            except PydanticValidationError as e:
                problems = ", ".join(
                    f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
                )
                errors.append(f"Relationship[{index}]: {item!r} - {problems}")
                continue
            if relationship.relation not in DECLARABLE_RELATIONS:
                allowed = ", ".join(r.value for r in DECLARABLE_RELATIONS)
                errors.append(f"Relationship[{index}]: {item!r} - relation: only {allowed} may be declared")
                continue
            relationships.append(relationship.resolve_self(path))

        if errors:
            raise DocumentParseError(
                f"Invalid relationship schema in {path}:\n  " + "\n  ".join(errors),
                context={"path": path, "errors": errors},
            )
        return relationships

    def resolve_paths(self, paths: list[str]) -> list[str]:
        """
        Accept absolute, cwd-relative, root-relative, or root-name-prefixed paths.

        Raises:
            ValidationError: If a path is outside the docs directory
            NotFoundError: If a path doesn't exist
        """
        resolved: list[str] = []
        for raw in paths:
            candidate = self._locate(raw)
            if not candidate.is_relative_to(self.docs_path):
                raise ValidationError(f"Path is outside the docs directory: {raw}")
            if not candidate.exists():
                raise NotFoundError(f"Document not found: {raw}")
            if str(candidate) not in resolved:
                resolved.append(str(candidate))
        return resolved

    def _locate(self, raw: str) -> Path:
        path = Path(raw)
        if path.is_absolute():
            return path.resolve()

        from_cwd = path.resolve()
        if from_cwd.exists():
            return from_cwd

        parts = path.parts
        if parts and parts[0] == self.docs_path.name:
            return self.docs_path.joinpath(*parts[1:]).resolve()

        return (self.docs_path / path).resolve()

    def resolve_link(self, document_path: str, target: str) -> str:
        target_path = Path(target)
        if target_path.is_absolute():
            return str(target_path.resolve())
        return str((Path(document_path).parent / target_path).resolve())
