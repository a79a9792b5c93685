"""
Sync orchestrator.

Sequences one incremental sync pass:

1. Load the hash index (optionally clearing entries for a forced re-sync)
2. Classify on-disk documents and derive deletions
3. Parse (or AI-extract) new and updated documents, check required fields
4. Deduplicate entities across the batch
5. Upsert unique entities (+ embeddings), checkpoint
6. Process each change in discovery order: documents, APPEARS_IN edges,
   declared relationships, cascade analysis; deletions
7. Backfill embeddings for unchanged documents that never got one
8. Persist hash records and checkpoint

Per-document failures are recorded in the result and never stop the pass.
"""

import asyncio
import time

from lattice.core.documents.base import DocumentSource
from lattice.core.embeddings.base import Embedder
from lattice.core.graph_store.base import GraphStore
from lattice.models.document import DOCUMENT_SELF, EntityType, ParsedDocument, Relationship, RelationType
from lattice.models.graph import PROVENANCE_KEY, SearchHit
from lattice.models.sync import (
    ChangeType,
    DocumentChange,
    SyncOptions,
    SyncPhase,
    SyncResult,
    UniqueEntity,
)
from lattice.models.validation import IssueSeverity, ValidationReport
from lattice.services.cascade_analyzer import CascadeAnalyzer
from lattice.services.change_detector import ChangeDetector
from lattice.services.embedding_text import (
    compose_document_embedding_text,
    compose_entity_embedding_text,
    embedding_source_hash,
)
from lattice.services.entity_collector import collect_unique_entities
from lattice.services.entity_extractor import LLMEntityExtractor
from lattice.services.validation import (
    is_document_link,
    missing_required_fields,
    referenced_entity_names,
    validate_relationships,
)
from lattice.utils.exceptions import ConfigurationError, ValidationError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)

# Document node properties written from frontmatter
DOCUMENT_PROPERTIES = ("title", "summary", "topic", "tags", "created", "updated", "status", "importance", "domain")


class SyncPass:
    """Mutable state owned by one sync() invocation."""

    def __init__(self, options: SyncOptions):
        self.options = options
        self.result = SyncResult()
        self.phase = SyncPhase.IDLE
        self.changes: list[DocumentChange] = []
        self.documents: dict[str, ParsedDocument] = {}
        # Unchanged documents whose embedding was never generated
        self.backfill_paths: list[str] = []
        self.backfill: dict[str, ParsedDocument] = {}
        self.unique_entities: dict[str, UniqueEntity] = {}
        # name -> label for entity names declared in the batch or found in the graph
        self.entity_labels: dict[str, EntityType] = {}
        self.failed_paths: set[str] = set()
        self.processed_since_checkpoint = 0

    def advance(self, phase: SyncPhase) -> None:
        logger.debug(f"Sync phase: {self.phase.value} -> {phase.value}")
        self.phase = phase

    def fail(self, path: str, error: Exception | str) -> None:
        """Record a per-document failure and exclude the document from later phases."""
        self.result.add_error(path, error)
        self.failed_paths.add(path)


class SyncService:
    """
    Incremental markdown-to-graph sync.

    Assumes a single writer: nothing else mutates the store during a pass.
    """

    def __init__(
        self,
        graph_store: GraphStore,
        source: DocumentSource,
        detector: ChangeDetector,
        embedder: Embedder | None = None,
        extractor: LLMEntityExtractor | None = None,
        cascade: CascadeAnalyzer | None = None,
        checkpoint_batch_size: int = 10,
    ):
        """
        Initialize the sync service.

        Args:
            graph_store: Upsert target
            source: Where documents are discovered and parsed
            detector: Change detector over the configured hash index
            embedder: Embedding provider; embeddings are skipped when None
            extractor: AI extractor, required only for ai_extraction passes
            cascade: Cascade analyzer; defaults to one over graph_store
            checkpoint_batch_size: Documents processed between store checkpoints
        """
        self.graph_store = graph_store
        self.source = source
        self.detector = detector
        self.embedder = embedder
        self.extractor = extractor
        self.cascade = cascade or CascadeAnalyzer(graph_store)
        self.checkpoint_batch_size = max(1, checkpoint_batch_size)

    async def sync(self, options: SyncOptions | None = None) -> SyncResult:
        """
        Run one sync pass.

        Never raises for document-level problems; they are reported in
        SyncResult.errors. Cancellation checkpoints the store and re-raises.
        """
        options = options or SyncOptions()
        state = SyncPass(options)
        started = time.perf_counter()

        try:
            await self._run(state)
        except asyncio.CancelledError:
            logger.warning("Sync cancelled, checkpointing store")
            await self.checkpoint()
            raise
        except Exception as e:
            logger.error(f"Sync failed during {state.phase.value}: {e}")
            state.advance(SyncPhase.FAILED)
            state.result.add_error("sync", e)
        finally:
            state.result.duration = time.perf_counter() - started

        result = state.result
        logger.info(
            f"Sync finished in {result.duration:.2f}s: {result.added} added, {result.updated} updated, "
            f"{result.deleted} deleted, {result.unchanged} unchanged, {len(result.errors)} errors"
        )
        return result

    async def _run(self, state: SyncPass) -> None:
        options = state.options

        if options.ai_extraction and self.extractor is None:
            raise ConfigurationError("AI extraction requested but no extractor is configured")

        await self._load_index(state)
        await self._detect_changes(state)
        await self._parse_documents(state)

        if not self._check_required_fields(state):
            return
        if not options.ai_extraction and not await self._validate(state):
            return

        state.unique_entities = collect_unique_entities(state.documents.values())
        for entity in state.unique_entities.values():
            state.entity_labels.setdefault(entity.name, entity.type)
        state.advance(SyncPhase.ENTITIES_COLLECTED)
        logger.info(f"Collected {len(state.unique_entities)} unique entities from {len(state.documents)} documents")

        if options.dry_run:
            self._count_dry_run(state)
            state.advance(SyncPhase.DONE)
            return

        await self._upsert_entities(state)
        await self.checkpoint()
        state.advance(SyncPhase.ENTITIES_UPSERTED)

        await self._process_changes(state)
        await self._backfill_embeddings(state)
        state.advance(SyncPhase.DOCUMENTS_PROCESSED)

        await self.detector.save()
        await self.checkpoint()
        state.advance(SyncPhase.PERSISTED)
        state.advance(SyncPhase.DONE)

    # ═══════════════════════════════════════════════════════════
    # PHASES 1-3: INDEX, CLASSIFICATION, PARSING
    # ═══════════════════════════════════════════════════════════

    async def _load_index(self, state: SyncPass) -> None:
        options = state.options
        await self.detector.load_index()

        if options.force:
            targets = self.source.resolve_paths(options.paths) if options.paths else None
            self.detector.clear_entries(targets)

        state.advance(SyncPhase.INDEX_LOADED)

    async def _detect_changes(self, state: SyncPass) -> None:
        options = state.options

        if options.paths:
            paths = self.source.resolve_paths(options.paths)
        else:
            paths = await self.source.discover()

        for path in paths:
            try:
                current_hash = await self.source.content_hash(path)
            except Exception as e:
                logger.error(f"Could not read {path}: {e}")
                state.fail(path, e)
                continue

            change_type = self.detector.classify(path, current_hash)
            state.changes.append(
                DocumentChange(path=path, change_type=change_type, reason=self.detector.reason(change_type))
            )

        # A path filter says nothing about the rest of the tree
        if not options.paths:
            missing = self.detector.tracked_paths() - set(paths)
            for path in sorted(missing):
                state.changes.append(
                    DocumentChange(
                        path=path,
                        change_type=ChangeType.DELETED,
                        reason=self.detector.reason(ChangeType.DELETED),
                    )
                )

        if self._embeddings_enabled(options) and not options.dry_run and not options.ai_extraction:
            missing = set(self.detector.paths_missing_embeddings())
            state.backfill_paths = [
                c.path for c in state.changes if c.change_type == ChangeType.UNCHANGED and c.path in missing
            ]

        state.result.changes = state.changes
        state.result.unchanged = sum(1 for c in state.changes if c.change_type == ChangeType.UNCHANGED)

        counts = {t: sum(1 for c in state.changes if c.change_type == t) for t in ChangeType}
        logger.info(
            f"Detected changes: {counts[ChangeType.NEW]} new, {counts[ChangeType.UPDATED]} updated, "
            f"{counts[ChangeType.DELETED]} deleted, {counts[ChangeType.UNCHANGED]} unchanged"
        )

    async def _parse_documents(self, state: SyncPass) -> None:
        use_ai = state.options.ai_extraction

        for change in state.changes:
            if change.change_type not in (ChangeType.NEW, ChangeType.UPDATED):
                continue

            try:
                document = await self.source.parse(change.path)
                if use_ai:
                    document = await self._apply_extraction(document)
                state.documents[change.path] = document
            except Exception as e:
                logger.error(f"Failed to parse {change.path}: {e}")
                state.fail(change.path, e)

        for path in state.backfill_paths:
            try:
                state.backfill[path] = await self.source.parse(path)
            except Exception as e:
                logger.warning(f"Skipping embedding backfill for {path}: {e}")

        state.advance(SyncPhase.PARSED)

    async def _apply_extraction(self, document: ParsedDocument) -> ParsedDocument:
        extraction = await self.extractor.extract(document.path, document.content)
        if not extraction.success:
            raise ValidationError(f"AI extraction failed: {extraction.error}")

        return document.model_copy(
            update={
                "entities": extraction.entities,
                "relationships": extraction.relationships,
                "summary": extraction.summary or document.summary,
            }
        )

    def _check_required_fields(self, state: SyncPass) -> bool:
        """
        Report documents missing required frontmatter fields.

        Returns:
            False when the pass was aborted (strict passes only)
        """
        missing = missing_required_fields(state.documents.values())
        if not missing:
            return True

        for path, field in missing:
            message = f"Missing required field: {field}"
            if state.options.strict:
                state.result.add_error(path, message)
            else:
                state.result.add_warning(path, message)

        if not state.options.strict:
            logger.warning(f"{len(missing)} required field(s) missing")
            return True

        logger.error(f"Required field check failed with {len(missing)} error(s), nothing was written")
        state.advance(SyncPhase.FAILED)
        return False

    async def _validate(self, state: SyncPass) -> bool:
        """
        Check declared relationships before anything is written.

        Returns:
            False when the pass was aborted
        """
        documents = list(state.documents.values())
        declared = {entity.name for document in documents for entity in document.entities}
        unresolved = sorted(referenced_entity_names(documents) - declared)

        if unresolved:
            found = await self.graph_store.resolve_entity_types(unresolved)
            for name, label in found.items():
                state.entity_labels[name] = EntityType(label)

        errors = validate_relationships(documents, state.entity_labels.keys())
        if not errors:
            return True

        for path, message in errors:
            state.result.add_error(path, message)
        logger.error(f"Relationship validation failed with {len(errors)} error(s), nothing was written")
        state.advance(SyncPhase.FAILED)
        return False

    def _count_dry_run(self, state: SyncPass) -> None:
        result = state.result
        for change in state.changes:
            if change.change_type == ChangeType.DELETED:
                result.deleted += 1
            elif change.path in state.documents:
                if change.change_type == ChangeType.NEW:
                    result.added += 1
                elif change.change_type == ChangeType.UPDATED:
                    result.updated += 1

    # ═══════════════════════════════════════════════════════════
    # PHASE 5: ENTITIES
    # ═══════════════════════════════════════════════════════════

    async def _upsert_entities(self, state: SyncPass) -> None:
        with_embeddings = self._embeddings_enabled(state.options)

        for entity in state.unique_entities.values():
            try:
                properties = {"name": entity.name}
                if entity.description:
                    properties["description"] = entity.description
                await self.graph_store.upsert_node(entity.type, properties)

                if with_embeddings:
                    vector = await self.embedder.embed(compose_entity_embedding_text(entity))
                    await self.graph_store.update_node_embedding(entity.type, entity.name, vector)
                    state.result.entity_embeddings_generated += 1
            except Exception as e:
                logger.error(f"Failed to upsert entity {entity.key}: {e}")
                for path in entity.document_paths:
                    if path not in state.failed_paths:
                        state.fail(path, f"Entity {entity.key}: {e}")

        logger.info(f"Upserted {len(state.unique_entities)} entities")

    # ═══════════════════════════════════════════════════════════
    # PHASE 6: DOCUMENTS
    # ═══════════════════════════════════════════════════════════

    async def _process_changes(self, state: SyncPass) -> None:
        result = state.result

        for change in state.changes:
            if change.change_type == ChangeType.UNCHANGED or change.path in state.failed_paths:
                continue

            try:
                if change.change_type == ChangeType.DELETED:
                    await self._remove_document(state, change.path)
                    result.deleted += 1
                else:
                    document = state.documents.get(change.path)
                    if document is None:
                        continue
                    await self._sync_document(state, change, document)
                    if change.change_type == ChangeType.NEW:
                        result.added += 1
                    else:
                        result.updated += 1
            except Exception as e:
                logger.error(f"Failed to sync {change.path}: {e}")
                state.fail(change.path, e)
                if change.change_type == ChangeType.NEW:
                    await self._rollback_new_document(change.path)
                continue

            state.processed_since_checkpoint += 1
            if state.processed_since_checkpoint >= self.checkpoint_batch_size:
                await self.checkpoint()
                state.processed_since_checkpoint = 0

    async def _sync_document(self, state: SyncPass, change: DocumentChange, document: ParsedDocument) -> None:
        options = state.options
        path = document.path
        run_cascade = change.change_type == ChangeType.UPDATED and not options.skip_cascade

        previous = await self._snapshot(path) if run_cascade else None

        removed = await self.graph_store.delete_document_relationships(path)
        if removed:
            logger.debug(f"Cleared {removed} stale relationships for {path}")

        await self.graph_store.upsert_node(EntityType.DOCUMENT, self._document_properties(document))
        source_hash = await self._embed_document(state, document)

        for ordinal, entity in enumerate(document.entities):
            await self.graph_store.upsert_relationship(
                entity.type,
                entity.name,
                RelationType.APPEARS_IN,
                EntityType.DOCUMENT,
                path,
                {PROVENANCE_KEY: path, "ordinal": ordinal},
            )

        for relationship in document.relationships:
            source = self._resolve_endpoint(state, document, relationship.source)
            target = self._resolve_endpoint(state, document, relationship.target)
            if source is None or target is None:
                logger.warning(
                    f"Skipping relationship {relationship.source} -{relationship.relation.value}-> "
                    f"{relationship.target} in {path}: endpoint type unknown"
                )
                continue

            await self.graph_store.upsert_relationship(
                source[0], source[1], relationship.relation, target[0], target[1], {PROVENANCE_KEY: path}
            )

        if run_cascade:
            state.result.cascade_warnings.extend(await self.cascade.analyze_document_change(previous, document))

        await self.detector.record(
            path,
            document.content_hash,
            embedding_source_hash=source_hash,
            entity_count=len(document.entities),
            relationship_count=len(document.relationships),
        )
        logger.debug(f"Synced {path} ({len(document.entities)} entities, {len(document.relationships)} relationships)")

    @staticmethod
    def _document_properties(document: ParsedDocument) -> dict:
        metadata = document.graph_metadata
        return {
            "name": document.path,
            "title": document.title,
            "summary": document.summary,
            "topic": document.topic,
            "tags": document.tags,
            "created": document.created,
            "updated": document.updated,
            "status": document.status,
            "importance": metadata.importance.value if metadata and metadata.importance else None,
            "domain": metadata.domain if metadata else None,
        }

    def _embeddings_enabled(self, options: SyncOptions) -> bool:
        return options.embeddings and self.embedder is not None

    async def _embed_document(self, state: SyncPass, document: ParsedDocument) -> str | None:
        """
        Attach a fresh embedding when the embedding text changed.

        Returns:
            Hash of the text the document's current embedding was built from
        """
        entry = self.detector.entry(document.path)
        previous_hash = entry.embedding_source_hash if entry else None

        if not self._embeddings_enabled(state.options):
            return previous_hash

        text = compose_document_embedding_text(document)
        source_hash = embedding_source_hash(text)
        if not self.detector.is_embedding_stale(document.path, source_hash):
            return source_hash

        vector = await self.embedder.embed(text)
        await self.graph_store.update_node_embedding(EntityType.DOCUMENT, document.path, vector)
        state.result.embeddings_generated += 1
        return source_hash

    def _resolve_endpoint(
        self, state: SyncPass, document: ParsedDocument, value: str
    ) -> tuple[EntityType, str] | None:
        """Label and node name for a relationship endpoint."""
        if value in (document.path, DOCUMENT_SELF):
            return EntityType.DOCUMENT, document.path
        if is_document_link(value):
            return EntityType.DOCUMENT, self.source.resolve_link(document.path, value)

        for entity in document.entities:
            if entity.name == value:
                return entity.type, entity.name

        label = state.entity_labels.get(value)
        if label is None:
            return None
        return label, value

    async def _snapshot(self, path: str) -> ParsedDocument | None:
        """Rebuild the previous version of a document from the graph."""
        try:
            node = await self.graph_store.get_node(EntityType.DOCUMENT, path)
            if node is None:
                return None

            entities = await self.graph_store.get_document_entities(path)
            relationships = [
                Relationship(source=r.source_name, relation=r.relation, target=r.target_name)
                for r in await self.graph_store.get_relationships(path)
                if r.relation != RelationType.APPEARS_IN.value
            ]
            entry = self.detector.entry(path)

            return ParsedDocument(
                path=path,
                title=str(node.properties.get("title") or path),
                content_hash=(entry.content_hash if entry else None) or "",
                entities=entities,
                relationships=relationships,
            )
        except Exception as e:
            logger.warning(f"Could not load previous version of {path}, skipping cascade: {e}")
            return None

    async def _rollback_new_document(self, path: str) -> None:
        """
        Undo the partial writes of a document that failed on its first sync.

        The node goes back to a bare link target when other documents point
        at it, otherwise it is deleted, so the next pass sees the document
        as new again.
        """
        try:
            await self.graph_store.delete_document_relationships(path)
            if await self.graph_store.find_documents_linking_to(path):
                cleared = dict.fromkeys(DOCUMENT_PROPERTIES)
                await self.graph_store.upsert_node(EntityType.DOCUMENT, {"name": path, **cleared})
            else:
                await self.graph_store.delete_node(EntityType.DOCUMENT, path)
        except Exception as e:
            logger.warning(f"Could not roll back partial writes for {path}: {e}")

    async def _backfill_embeddings(self, state: SyncPass) -> None:
        """Embed unchanged documents that were synced while embeddings were off."""
        for path, document in state.backfill.items():
            try:
                source_hash = await self._embed_document(state, document)
                entry = self.detector.entry(path)
                await self.detector.record(
                    path,
                    entry.content_hash,
                    embedding_source_hash=source_hash,
                    entity_count=entry.entity_count,
                    relationship_count=entry.relationship_count,
                )
            except Exception as e:
                logger.error(f"Failed to backfill embedding for {path}: {e}")
                state.result.add_error(path, f"Embedding backfill: {e}")

        if state.backfill:
            logger.info(f"Backfilled embeddings for {len(state.backfill)} unchanged documents")

    async def _remove_document(self, state: SyncPass, path: str) -> None:
        if not state.options.skip_cascade:
            analysis = await self.cascade.analyze_document_deletion(path)
            if analysis.affected_documents:
                state.result.cascade_warnings.append(analysis)

        await self.graph_store.delete_document_relationships(path)
        await self.graph_store.delete_node(EntityType.DOCUMENT, path)
        await self.detector.forget(path)
        logger.info(f"Removed deleted document {path}")

    # ═══════════════════════════════════════════════════════════
    # UTILITIES
    # ═══════════════════════════════════════════════════════════

    async def checkpoint(self) -> None:
        """Checkpoint the store; failures are only logged."""
        try:
            await self.graph_store.checkpoint()
        except Exception as e:
            logger.warning(f"Checkpoint failed: {e}")

    async def status(self, paths: list[str] | None = None) -> SyncResult:
        """
        Classify documents against the hash index without parsing or writing.

        Returns:
            SyncResult carrying only the change list, the unchanged count and
            any read errors
        """
        state = SyncPass(SyncOptions(paths=paths))
        await self._load_index(state)
        await self._detect_changes(state)
        return state.result

    async def validate_documents(self, paths: list[str] | None = None) -> ValidationReport:
        """
        Check documents on disk without writing to the store.

        Parse failures, unresolved relationship endpoints and missing
        required fields are all errors here.
        """
        report = ValidationReport()
        targets = self.source.resolve_paths(paths) if paths else await self.source.discover()

        documents: list[ParsedDocument] = []
        for path in targets:
            try:
                documents.append(await self.source.parse(path))
            except Exception as e:
                report.add(IssueSeverity.ERROR, path, str(e), suggestion="Fix the frontmatter syntax")

        report.documents_checked = len(targets)
        report.entities_checked = len(collect_unique_entities(documents))

        declared = {entity.name for document in documents for entity in document.entities}
        unresolved = sorted(referenced_entity_names(documents) - declared)
        found = await self.graph_store.resolve_entity_types(unresolved) if unresolved else {}

        for path, message in validate_relationships(documents, found.keys()):
            report.add(
                IssueSeverity.ERROR,
                path,
                message,
                field="relationships",
                suggestion="Declare the entity in a document's entities list",
            )

        for path, field in missing_required_fields(documents):
            report.add(
                IssueSeverity.ERROR,
                path,
                f"Missing required field: {field}",
                field=field,
                suggestion=f"Add '{field}' to the frontmatter",
            )

        logger.info(
            f"Validated {report.documents_checked} documents: "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report

    async def search(self, text: str, k: int = 10) -> list[SearchHit]:
        """Semantic search across every node label."""
        if self.embedder is None:
            raise ConfigurationError("Search requires an embedder")
        vector = await self.embedder.embed(text)
        return await self.graph_store.vector_search_all(vector, k)

    async def close(self) -> None:
        """Release the store and providers."""
        await self.graph_store.close()
        if self.embedder is not None:
            await self.embedder.close()
        if self.extractor is not None:
            await self.extractor.llm.close()
