"""
Tests for embedding text composition.
"""

import pytest

from lattice.models.document import Entity, EntityType, ParsedDocument
from lattice.models.sync import UniqueEntity
from lattice.services.embedding_text import (
    compose_document_embedding_text,
    compose_entity_embedding_text,
    embedding_source_hash,
)


@pytest.mark.unit
class TestEmbeddingText:
    def test_document_with_summary(self):
        """Test document with summary."""
        document = ParsedDocument(
            path="/docs/a.md",
            title="Graphs",
            content="ignored body",
            content_hash="h",
            summary="All about graphs.",
            topic="storage",
            tags=["db", "graph"],
            entities=[
                Entity(name="Neo4j", type=EntityType.TECHNOLOGY),
                Entity(name="Cypher", type=EntityType.CONCEPT),
            ],
        )

        assert compose_document_embedding_text(document) == (
            "Title: Graphs | Topic: storage | Tags: db, graph | Entities: Neo4j, Cypher | All about graphs."
        )

    def test_document_without_summary_uses_body_preview(self):
        """Test document without summary uses body preview."""
        document = ParsedDocument(path="/docs/a.md", title="T", content="x" * 800, content_hash="h")

        text = compose_document_embedding_text(document)

        assert text == "Title: T | " + "x" * 500

    def test_entity_text(self):
        """Test entity text."""
        entity = UniqueEntity(type=EntityType.TOOL, name="pytest", description="Test runner")
        assert compose_entity_embedding_text(entity) == "Tool: pytest. Test runner"

    def test_entity_text_without_description(self):
        """Test entity text without description."""
        entity = UniqueEntity(type=EntityType.TOOL, name="pytest")
        assert compose_entity_embedding_text(entity) == "Tool: pytest"

    def test_source_hash_is_stable(self):
        """Test source hash is stable."""
        assert embedding_source_hash("abc") == embedding_source_hash("abc")
        assert embedding_source_hash("abc") != embedding_source_hash("abd")
