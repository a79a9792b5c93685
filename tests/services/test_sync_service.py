"""
End-to-end tests for the sync orchestrator over the SQLite store.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from lattice.core.hash_index.graph_index import GraphHashIndex
from lattice.models.cascade import CascadeTrigger, Confidence, SuggestedAction
from lattice.models.document import Entity, EntityType, Relationship, RelationType
from lattice.models.extraction import ExtractionResult
from lattice.models.graph import PROVENANCE_KEY
from lattice.models.sync import ChangeType, SyncOptions
from lattice.services.change_detector import ChangeDetector
from lattice.services.entity_extractor import LLMEntityExtractor
from lattice.services.sync_service import SyncService
from lattice.utils.exceptions import ConfigurationError, EmbeddingError, GraphStoreError

FALKOR = [{"name": "FalkorDB", "type": "Technology", "description": "Graph database on Redis"}]
REFERENCES_FALKOR = [{"source": "this", "relation": "REFERENCES", "target": "FalkorDB"}]


def _key(docs_dir, name: str) -> str:
    return str((docs_dir / name).resolve())


def _edges(relationships) -> set[tuple]:
    return {(r.source_label, r.source_name, r.relation, r.target_label, r.target_name) for r in relationships}


@pytest.fixture
def detector(sqlite_store):
    return ChangeDetector(GraphHashIndex(sqlite_store))


@pytest.fixture
def service(sqlite_store, document_source, detector, mock_embedder):
    return SyncService(
        graph_store=sqlite_store,
        source=document_source,
        detector=detector,
        embedder=mock_embedder,
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncScenarios:
    """The basic add / unchanged / rename lifecycle."""

    async def test_empty_document_set(self, service):
        """Test empty document set."""
        result = await service.sync()

        assert (result.added, result.updated, result.deleted, result.unchanged) == (0, 0, 0, 0)
        assert result.errors == []
        assert result.success is True

    async def test_new_document(self, service, sqlite_store, docs_dir, write_doc):
        """Test new document."""
        write_doc(docs_dir, "a.md", entities=FALKOR, relationships=REFERENCES_FALKOR, title="Graphs")
        path = _key(docs_dir, "a.md")

        result = await service.sync()

        assert result.added == 1
        assert result.errors == []
        assert [(c.path, c.change_type) for c in result.changes] == [(path, ChangeType.NEW)]

        document = await sqlite_store.get_node(EntityType.DOCUMENT, path)
        assert document is not None
        assert document.properties["title"] == "Graphs"
        assert document.has_embedding is True

        entity = await sqlite_store.get_node(EntityType.TECHNOLOGY, "FalkorDB")
        assert entity.properties["description"] == "Graph database on Redis"
        assert entity.has_embedding is True

        assert _edges(await sqlite_store.get_relationships()) == {
            ("Technology", "FalkorDB", "APPEARS_IN", "Document", path),
            ("Document", path, "REFERENCES", "Technology", "FalkorDB"),
        }
        assert result.embeddings_generated == 1
        assert result.entity_embeddings_generated == 1

    async def test_unchanged_document_issues_no_writes(self, service, sqlite_store, docs_dir, write_doc):
        """Test unchanged document issues no writes."""
        write_doc(docs_dir, "a.md", entities=FALKOR, relationships=REFERENCES_FALKOR)
        await service.sync()

        write_methods = [
            "upsert_node",
            "upsert_relationship",
            "delete_document_relationships",
            "delete_node",
            "update_node_embedding",
            "update_document_hashes",
        ]
        mocks = {}
        for name in write_methods:
            patcher = patch.object(sqlite_store, name, new_callable=AsyncMock)
            mocks[name] = patcher.start()
        try:
            result = await service.sync()
        finally:
            patch.stopall()

        assert result.unchanged == 1
        assert (result.added, result.updated, result.deleted) == (0, 0, 0)
        for mock in mocks.values():
            mock.assert_not_called()

    async def test_rename_cascades_to_referencing_document(self, service, docs_dir, write_doc):
        """Test rename cascades to referencing document."""
        write_doc(docs_dir, "a.md", entities=FALKOR, relationships=REFERENCES_FALKOR, title="A")
        write_doc(docs_dir, "b.md", relationships=REFERENCES_FALKOR, title="B")
        first = await service.sync()
        assert first.added == 2
        assert first.errors == []

        write_doc(
            docs_dir,
            "a.md",
            entities=[{"name": "FalkorGraph", "type": "Technology"}],
            relationships=[{"source": "this", "relation": "REFERENCES", "target": "FalkorGraph"}],
            title="A",
        )
        result = await service.sync()

        assert result.updated == 1
        assert result.unchanged == 1
        assert len(result.cascade_warnings) == 1

        analysis = result.cascade_warnings[0]
        assert analysis.trigger == CascadeTrigger.ENTITY_RENAMED
        assert analysis.source_document == _key(docs_dir, "a.md")
        assert [d.path for d in analysis.affected_documents] == [_key(docs_dir, "b.md")]
        affected = analysis.affected_documents[0]
        assert affected.confidence == Confidence.HIGH
        assert affected.suggested_action == SuggestedAction.UPDATE_REFERENCE

    async def test_skip_cascade(self, service, docs_dir, write_doc):
        """Test cascade analysis can be skipped."""
        write_doc(docs_dir, "a.md", entities=FALKOR, relationships=REFERENCES_FALKOR)
        write_doc(docs_dir, "b.md", relationships=REFERENCES_FALKOR)
        await service.sync()

        write_doc(docs_dir, "a.md", entities=[{"name": "FalkorGraph", "type": "Technology"}])
        result = await service.sync(SyncOptions(skip_cascade=True))

        assert result.updated == 1
        assert result.cascade_warnings == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncUpdates:
    async def test_update_replaces_relationships(self, service, sqlite_store, docs_dir, write_doc):
        """Test update replaces relationships."""
        write_doc(docs_dir, "a.md", entities=FALKOR, relationships=REFERENCES_FALKOR)
        await service.sync()

        write_doc(docs_dir, "a.md", entities=[{"name": "Neo4j", "type": "Technology"}])
        result = await service.sync()
        path = _key(docs_dir, "a.md")

        assert result.updated == 1
        assert _edges(await sqlite_store.get_relationships(path)) == {
            ("Technology", "Neo4j", "APPEARS_IN", "Document", path),
        }
        assert [e.name for e in await sqlite_store.get_document_entities(path)] == ["Neo4j"]

    async def test_force_resync_is_idempotent(self, service, sqlite_store, docs_dir, write_doc):
        """Test force resync is idempotent."""
        write_doc(docs_dir, "a.md", entities=FALKOR, relationships=REFERENCES_FALKOR)
        await service.sync()
        nodes = await sqlite_store.count_nodes()
        edges = _edges(await sqlite_store.get_relationships())

        result = await service.sync(SyncOptions(force=True))

        assert result.updated == 1
        assert result.unchanged == 0
        assert await sqlite_store.count_nodes() == nodes
        assert _edges(await sqlite_store.get_relationships()) == edges

    async def test_embedding_skipped_when_text_unchanged(self, service, docs_dir, write_doc, mock_embedder):
        """Test embedding skipped when text unchanged."""
        write_doc(docs_dir, "a.md", entities=FALKOR, title="A", status="draft")
        await service.sync()

        write_doc(docs_dir, "a.md", entities=FALKOR, title="A", status="published")
        result = await service.sync()

        assert result.updated == 1
        assert result.embeddings_generated == 0
        assert result.entity_embeddings_generated == 1

    async def test_embedding_regenerated_when_title_changes(self, service, docs_dir, write_doc):
        """Test embedding regenerated when title changes."""
        write_doc(docs_dir, "a.md", title="A")
        await service.sync()

        write_doc(docs_dir, "a.md", title="A, revised")
        result = await service.sync()

        assert result.embeddings_generated == 1

    async def test_no_embeddings(self, service, sqlite_store, docs_dir, write_doc, mock_embedder):
        """Test syncing with embeddings disabled."""
        write_doc(docs_dir, "a.md", entities=FALKOR)

        result = await service.sync(SyncOptions(embeddings=False))

        assert result.added == 1
        assert mock_embedder.calls == 0
        node = await sqlite_store.get_node(EntityType.DOCUMENT, _key(docs_dir, "a.md"))
        assert node.has_embedding is False

    async def test_embeddings_backfilled_for_unchanged_document(
        self, service, sqlite_store, docs_dir, write_doc, mock_embedder
    ):
        """Test a document first synced without embeddings gets one on a later pass."""
        write_doc(docs_dir, "a.md", title="A")
        path = _key(docs_dir, "a.md")
        await service.sync(SyncOptions(embeddings=False))

        result = await service.sync()

        assert result.unchanged == 1
        assert result.embeddings_generated == 1
        assert (await sqlite_store.get_node(EntityType.DOCUMENT, path)).has_embedding is True
        assert (await sqlite_store.load_all_document_hashes())[path].embedding_source_hash is not None

        calls = mock_embedder.calls
        again = await service.sync()
        assert again.embeddings_generated == 0
        assert mock_embedder.calls == calls

    async def test_no_backfill_on_dry_run(self, service, sqlite_store, docs_dir, write_doc):
        """Test dry runs leave missing embeddings alone."""
        write_doc(docs_dir, "a.md", title="A")
        await service.sync(SyncOptions(embeddings=False))

        result = await service.sync(SyncOptions(dry_run=True))

        assert result.embeddings_generated == 0
        assert (await sqlite_store.get_node(EntityType.DOCUMENT, _key(docs_dir, "a.md"))).has_embedding is False

    async def test_paths_filter(self, service, sqlite_store, docs_dir, write_doc):
        """Test only the given paths are synced."""
        write_doc(docs_dir, "a.md")
        write_doc(docs_dir, "b.md")
        await service.sync()
        (docs_dir / "b.md").unlink()
        write_doc(docs_dir, "c.md")

        result = await service.sync(SyncOptions(paths=[str(docs_dir / "c.md")]))

        assert result.added == 1
        assert result.deleted == 0
        assert await sqlite_store.get_node(EntityType.DOCUMENT, _key(docs_dir, "b.md")) is not None


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncDeletion:
    async def test_deleted_document_is_removed(self, service, sqlite_store, docs_dir, write_doc):
        """Test deleted document is removed."""
        write_doc(docs_dir, "a.md", entities=FALKOR, title="A")
        write_doc(
            docs_dir,
            "b.md",
            relationships=[{"source": "this", "relation": "REFERENCES", "target": "a.md"}],
            title="B",
        )
        await service.sync()
        a_path = _key(docs_dir, "a.md")
        b_path = _key(docs_dir, "b.md")
        assert await sqlite_store.find_documents_linking_to(a_path) != []

        (docs_dir / "a.md").unlink()
        result = await service.sync()

        assert result.deleted == 1
        assert result.unchanged == 1
        assert await sqlite_store.get_node(EntityType.DOCUMENT, a_path) is None
        assert a_path not in await sqlite_store.load_all_document_hashes()

        assert len(result.cascade_warnings) == 1
        analysis = result.cascade_warnings[0]
        assert analysis.trigger == CascadeTrigger.DOCUMENT_DELETED
        assert [d.path for d in analysis.affected_documents] == [b_path]
        assert analysis.affected_documents[0].suggested_action == SuggestedAction.REMOVE_REFERENCE

    async def test_deleted_document_stays_deleted(self, service, docs_dir, write_doc):
        """Test deleted document stays deleted."""
        write_doc(docs_dir, "a.md")
        await service.sync()
        (docs_dir / "a.md").unlink()
        await service.sync()

        result = await service.sync()

        assert (result.added, result.deleted, result.unchanged) == (0, 0, 0)


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncFailures:
    async def test_unknown_relationship_target_aborts(self, service, sqlite_store, docs_dir, write_doc):
        """Test unknown relationship target aborts."""
        write_doc(docs_dir, "a.md", entities=FALKOR)
        write_doc(
            docs_dir,
            "b.md",
            relationships=[{"source": "this", "relation": "REFERENCES", "target": "Ghost"}],
        )

        result = await service.sync()

        assert result.success is False
        assert [e.path for e in result.errors] == [_key(docs_dir, "b.md")]
        assert "Ghost" in result.errors[0].error
        assert await sqlite_store.count_nodes() == 0

    async def test_target_resolved_from_graph(self, service, docs_dir, write_doc):
        """Test target resolved from graph."""
        write_doc(docs_dir, "a.md", entities=FALKOR)
        await service.sync()

        write_doc(docs_dir, "b.md", relationships=REFERENCES_FALKOR)
        result = await service.sync()

        assert result.errors == []
        assert result.added == 1

    async def test_parse_error_is_isolated(self, service, docs_dir, write_doc):
        """Test parse error is isolated."""
        write_doc(docs_dir, "good.md", entities=FALKOR)
        (docs_dir / "bad.md").write_text("---\nentities: [unclosed\n---\nBody\n", encoding="utf-8")

        result = await service.sync()

        assert result.added == 1
        assert [e.path for e in result.errors] == [_key(docs_dir, "bad.md")]

        retry = await service.sync()
        assert retry.unchanged == 1
        assert [c.change_type for c in retry.changes if c.path == _key(docs_dir, "bad.md")] == [
            ChangeType.NEW
        ]

    async def test_checkpoint_failure_is_not_fatal(self, service, sqlite_store, docs_dir, write_doc):
        """Test checkpoint failure is not fatal."""
        write_doc(docs_dir, "a.md")

        with patch.object(sqlite_store, "checkpoint", new_callable=AsyncMock) as checkpoint:
            checkpoint.side_effect = GraphStoreError("disk full")
            result = await service.sync()

        assert result.success is True
        assert result.added == 1
        assert checkpoint.await_count >= 2

    async def test_store_failure_fails_document(self, service, sqlite_store, docs_dir, write_doc):
        """Test store failure fails document."""
        write_doc(docs_dir, "a.md")
        write_doc(docs_dir, "b.md")
        original = sqlite_store.upsert_node
        b_path = _key(docs_dir, "b.md")

        async def flaky(label, properties):
            if properties.get("name") == b_path:
                raise GraphStoreError("write failed")
            await original(label, properties)

        with patch.object(sqlite_store, "upsert_node", side_effect=flaky):
            result = await service.sync()

        assert result.added == 1
        assert [e.path for e in result.errors] == [b_path]

    async def test_failed_first_sync_is_new_again(
        self, service, sqlite_store, docs_dir, write_doc, mock_embedder
    ):
        """A new document that fails after its node was written is retried as new."""
        write_doc(docs_dir, "a.md", entities=FALKOR, relationships=REFERENCES_FALKOR, title="Graphs")
        path = _key(docs_dir, "a.md")
        original = mock_embedder.embed

        async def document_embedding_down(text, **kwargs):
            if text.startswith("Title:"):
                raise EmbeddingError("provider down")
            return await original(text, **kwargs)

        with patch.object(mock_embedder, "embed", side_effect=document_embedding_down):
            first = await service.sync()

        assert first.added == 0
        assert [e.error for e in first.errors] == ["provider down"]
        assert await sqlite_store.get_node(EntityType.DOCUMENT, path) is None
        assert path not in await sqlite_store.load_all_document_hashes()

        second = await service.sync()

        assert second.added == 1
        assert second.updated == 0
        assert [(c.change_type, c.reason) for c in second.changes] == [(ChangeType.NEW, "New document")]

    async def test_failed_first_sync_keeps_incoming_links(
        self, service, sqlite_store, docs_dir, write_doc
    ):
        """A failed new document linked from elsewhere falls back to a bare link target."""
        write_doc(
            docs_dir,
            "b.md",
            relationships=[{"source": "this", "relation": "REFERENCES", "target": "z.md"}],
            title="B",
        )
        write_doc(docs_dir, "z.md", entities=FALKOR, title="Z")
        z_path = _key(docs_dir, "z.md")
        original = sqlite_store.upsert_relationship

        async def flaky(source_label, source_name, relation, target_label, target_name, properties=None):
            if properties and properties.get(PROVENANCE_KEY) == z_path:
                raise GraphStoreError("write failed")
            await original(source_label, source_name, relation, target_label, target_name, properties)

        with patch.object(sqlite_store, "upsert_relationship", side_effect=flaky):
            first = await service.sync()

        assert [e.path for e in first.errors] == [z_path]
        node = await sqlite_store.get_node(EntityType.DOCUMENT, z_path)
        assert node is not None
        assert "title" not in node.properties
        assert [ref.path for ref in await sqlite_store.find_documents_linking_to(z_path)] == [
            _key(docs_dir, "b.md")
        ]

        second = await service.sync()

        assert second.added == 1
        assert [c.change_type for c in second.changes if c.path == z_path] == [ChangeType.NEW]

    async def test_cancellation_checkpoints_and_keeps_completed_hashes(
        self, service, sqlite_store, docs_dir, write_doc
    ):
        """Test cancelling mid-pass checkpoints and keeps the documents already synced."""
        write_doc(docs_dir, "a.md", title="A")
        write_doc(docs_dir, "b.md", title="B")
        a_path = _key(docs_dir, "a.md")
        b_path = _key(docs_dir, "b.md")
        original = sqlite_store.upsert_node

        async def cancelled_on_b(label, properties):
            if properties.get("name") == b_path:
                raise asyncio.CancelledError()
            await original(label, properties)

        with (
            patch.object(sqlite_store, "upsert_node", side_effect=cancelled_on_b),
            patch.object(sqlite_store, "checkpoint", new_callable=AsyncMock) as checkpoint,
        ):
            with pytest.raises(asyncio.CancelledError):
                await service.sync()

        # once after the entity phase, once on cancellation
        assert checkpoint.await_count == 2

        hashes = await sqlite_store.load_all_document_hashes()
        assert hashes[a_path].content_hash
        assert b_path not in hashes

        resumed = await service.sync()
        assert resumed.unchanged == 1
        assert resumed.added == 1

    async def test_dry_run_writes_nothing(self, service, sqlite_store, docs_dir, write_doc):
        """Test dry run writes nothing."""
        write_doc(docs_dir, "a.md", entities=FALKOR)
        write_doc(docs_dir, "b.md")

        result = await service.sync(SyncOptions(dry_run=True))

        assert result.added == 2
        assert await sqlite_store.count_nodes() == 0
        assert (await service.sync()).added == 2

    async def test_ai_extraction_without_extractor(self, service, docs_dir, write_doc):
        """Test ai extraction without extractor."""
        write_doc(docs_dir, "a.md")

        result = await service.sync(SyncOptions(ai_extraction=True))

        assert result.success is False
        assert result.errors[0].path == "sync"


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncExtraction:
    @pytest.fixture
    def extractor(self):
        extractor = AsyncMock(spec=LLMEntityExtractor)
        extractor.llm = AsyncMock()
        return extractor

    async def test_extracted_entities_replace_frontmatter(
        self, sqlite_store, document_source, detector, extractor, docs_dir, write_doc
    ):
        """Test extracted entities replace frontmatter."""
        write_doc(docs_dir, "a.md", entities=FALKOR, body="Redis and Neo4j.")
        path = _key(docs_dir, "a.md")
        extractor.extract.return_value = ExtractionResult(
            entities=[Entity(name="Redis", type=EntityType.TECHNOLOGY)],
            relationships=[Relationship(source=path, relation=RelationType.REFERENCES, target="Redis")],
            summary="About Redis.",
        )
        service = SyncService(sqlite_store, document_source, detector, extractor=extractor)

        result = await service.sync(SyncOptions(ai_extraction=True))

        assert result.added == 1
        assert [e.name for e in await sqlite_store.get_document_entities(path)] == ["Redis"]
        node = await sqlite_store.get_node(EntityType.DOCUMENT, path)
        assert node.properties["summary"] == "About Redis."

    async def test_failed_extraction_is_document_error(
        self, sqlite_store, document_source, detector, extractor, docs_dir, write_doc
    ):
        """Test failed extraction is document error."""
        write_doc(docs_dir, "a.md")
        extractor.extract.return_value = ExtractionResult(success=False, error="model timeout")
        service = SyncService(sqlite_store, document_source, detector, extractor=extractor)

        result = await service.sync(SyncOptions(ai_extraction=True))

        assert result.added == 0
        assert "model timeout" in result.errors[0].error


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncServiceUtilities:
    async def test_search(self, service, docs_dir, write_doc):
        """Test search returns documents and entities after a sync."""
        write_doc(docs_dir, "a.md", entities=FALKOR, title="Graphs")
        await service.sync()

        hits = await service.search("graph database", k=5)

        assert {hit.label for hit in hits} == {"Document", "Technology"}
        assert hits == sorted(hits, key=lambda hit: hit.score, reverse=True)

    async def test_search_requires_embedder(self, sqlite_store, document_source, detector):
        """Test search requires embedder."""
        service = SyncService(sqlite_store, document_source, detector)
        with pytest.raises(ConfigurationError, match="embedder"):
            await service.search("anything")

    async def test_checkpoints_every_batch(self, sqlite_store, document_source, detector, docs_dir, write_doc):
        """Test checkpoints every batch."""
        for index in range(5):
            write_doc(docs_dir, f"doc{index}.md")
        service = SyncService(sqlite_store, document_source, detector, checkpoint_batch_size=2)

        with patch.object(sqlite_store, "checkpoint", new_callable=AsyncMock) as checkpoint:
            result = await service.sync()

        assert result.added == 5
        # after entities, after docs 2 and 4, and the final one
        assert checkpoint.await_count == 4


REQUIRED = {"summary": "About graphs", "created": "2024-01-01", "updated": "2024-02-01", "status": "draft"}


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncRequiredFields:
    """Test the required frontmatter field gate."""

    async def test_missing_fields_warn_by_default(self, service, docs_dir, write_doc):
        """Test a document without required fields still syncs, with warnings."""
        write_doc(docs_dir, "a.md", title="A", status="draft")
        path = _key(docs_dir, "a.md")

        result = await service.sync()

        assert result.added == 1
        assert result.success is True
        assert [(w.path, w.error) for w in result.warnings] == [
            (path, "Missing required field: summary"),
            (path, "Missing required field: created"),
            (path, "Missing required field: updated"),
        ]

    async def test_strict_pass_aborts_before_writing(self, service, sqlite_store, docs_dir, write_doc):
        """Test strict passes treat missing fields as errors and write nothing."""
        write_doc(docs_dir, "a.md", title="A", **REQUIRED)
        write_doc(docs_dir, "b.md", title="B")

        result = await service.sync(SyncOptions(strict=True))

        assert result.success is False
        assert {e.path for e in result.errors} == {_key(docs_dir, "b.md")}
        assert await sqlite_store.count_nodes() == 0

    async def test_complete_document_has_no_warnings(self, service, docs_dir, write_doc):
        """Test a document with every required field passes cleanly."""
        write_doc(docs_dir, "a.md", title="A", **REQUIRED)

        result = await service.sync(SyncOptions(strict=True))

        assert result.added == 1
        assert result.warnings == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestSyncStatusAndValidation:
    """Test the read-only status and validation operations."""

    async def test_status_lists_changes_without_writing(self, service, sqlite_store, docs_dir, write_doc):
        """Test status classifies documents and leaves the store untouched."""
        write_doc(docs_dir, "a.md", title="A")
        write_doc(docs_dir, "b.md", title="B")
        await service.sync()
        write_doc(docs_dir, "a.md", title="A, revised")
        (docs_dir / "b.md").unlink()
        write_doc(docs_dir, "c.md", title="C")
        nodes_before = await sqlite_store.count_nodes()

        result = await service.status()

        assert {(c.path, c.change_type) for c in result.changes} == {
            (_key(docs_dir, "a.md"), ChangeType.UPDATED),
            (_key(docs_dir, "b.md"), ChangeType.DELETED),
            (_key(docs_dir, "c.md"), ChangeType.NEW),
        }
        assert result.unchanged == 0
        assert await sqlite_store.count_nodes() == nodes_before

    async def test_validate_documents(self, service, sqlite_store, docs_dir, write_doc):
        """Test document validation reports parse, relationship and field errors."""
        write_doc(docs_dir, "good.md", entities=FALKOR, relationships=REFERENCES_FALKOR, title="Good", **REQUIRED)
        write_doc(
            docs_dir,
            "dangling.md",
            relationships=[{"source": "this", "relation": "REFERENCES", "target": "Ghost"}],
            title="Dangling",
            **REQUIRED,
        )
        write_doc(docs_dir, "sparse.md", title="Sparse", summary="S", created="2024-01-01", updated="2024-01-02")
        (docs_dir / "broken.md").write_text("---\nentities: [unclosed\n---\nBody\n", encoding="utf-8")

        report = await service.validate_documents()

        assert report.documents_checked == 4
        assert report.entities_checked == 1
        assert report.valid is False
        assert {(issue.path, issue.field) for issue in report.errors} == {
            (_key(docs_dir, "broken.md"), None),
            (_key(docs_dir, "dangling.md"), "relationships"),
            (_key(docs_dir, "sparse.md"), "status"),
        }
        assert await sqlite_store.count_nodes() == 0

    async def test_validate_documents_resolves_graph_entities(self, service, docs_dir, write_doc):
        """Test entities already in the graph satisfy relationship targets."""
        write_doc(docs_dir, "a.md", entities=FALKOR, title="A", **REQUIRED)
        await service.sync()
        write_doc(docs_dir, "b.md", relationships=REFERENCES_FALKOR, title="B", **REQUIRED)

        report = await service.validate_documents(paths=[str(docs_dir / "b.md")])

        assert report.issues == []
        assert report.documents_checked == 1
