"""
Cascade impact analysis.

Compares the previous and current version of a document, detects entity
renames, deletions, type changes and dropped relationships, and asks the
graph store which other documents still reference what changed.

Analysis is advisory: store failures are logged and reported as "no affected
documents", never raised.
"""

from collections import defaultdict

from lattice.core.graph_store.base import GraphStore
from lattice.models.cascade import (
    AffectedDocument,
    CascadeAnalysis,
    CascadeTrigger,
    Confidence,
    EntityChange,
    SuggestedAction,
)
from lattice.models.document import Entity, EntityType, ParsedDocument
from lattice.models.graph import DocumentRef
from lattice.services.validation import is_document_link
from lattice.utils.logger import get_logger

logger = get_logger(__name__)


class CascadeAnalyzer:
    """
    Finds documents made stale by a change in another document.

    Detection methods are pure; analysis methods query the graph store.
    """

    def __init__(self, graph_store: GraphStore):
        self.graph_store = graph_store

    # ═══════════════════════════════════════════════════════════
    # DETECTION
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def detect_entity_renames(old_doc: ParsedDocument, new_doc: ParsedDocument) -> list[EntityChange]:
        """
        Pair removed and added entities of the same type as renames.

        Pairing is positional within each type, in input order. When several
        same-typed entities change in one edit the pairing may be wrong.
        """
        old_names = {entity.name for entity in old_doc.entities}
        new_names = {entity.name for entity in new_doc.entities}

        removed_by_type: dict[EntityType, list[Entity]] = defaultdict(list)
        for entity in old_doc.entities:
            if entity.name not in new_names:
                removed_by_type[entity.type].append(entity)

        added_by_type: dict[EntityType, list[Entity]] = defaultdict(list)
        for entity in new_doc.entities:
            if entity.name not in old_names:
                added_by_type[entity.type].append(entity)

        changes = []
        for entity_type, removed in removed_by_type.items():
            for old_entity, new_entity in zip(removed, added_by_type.get(entity_type, [])):
                changes.append(
                    EntityChange(
                        trigger=CascadeTrigger.ENTITY_RENAMED,
                        entity_name=old_entity.name,
                        entity_type=entity_type,
                        old_value=old_entity.name,
                        new_value=new_entity.name,
                        source_document=new_doc.path,
                    )
                )
        return changes

    @classmethod
    def detect_entity_deletions(
        cls,
        old_doc: ParsedDocument,
        new_doc: ParsedDocument,
        renames: list[EntityChange] | None = None,
    ) -> list[EntityChange]:
        """Entities dropped from the document that no rename pairing claimed."""
        if renames is None:
            renames = cls.detect_entity_renames(old_doc, new_doc)
        renamed = {change.old_value for change in renames}
        new_names = {entity.name for entity in new_doc.entities}

        return [
            EntityChange(
                trigger=CascadeTrigger.ENTITY_DELETED,
                entity_name=entity.name,
                entity_type=entity.type,
                source_document=new_doc.path,
            )
            for entity in old_doc.entities
            if entity.name not in new_names and entity.name not in renamed
        ]

    @staticmethod
    def detect_entity_type_changes(old_doc: ParsedDocument, new_doc: ParsedDocument) -> list[EntityChange]:
        """Entities kept by name whose type differs between versions."""
        new_types = {entity.name: entity.type for entity in new_doc.entities}

        changes = []
        for entity in old_doc.entities:
            new_type = new_types.get(entity.name)
            if new_type is not None and new_type != entity.type:
                changes.append(
                    EntityChange(
                        trigger=CascadeTrigger.ENTITY_TYPE_CHANGED,
                        entity_name=entity.name,
                        entity_type=new_type,
                        old_value=entity.type.value,
                        new_value=new_type.value,
                        source_document=new_doc.path,
                    )
                )
        return changes

    @staticmethod
    def detect_relationship_changes(
        old_doc: ParsedDocument,
        new_doc: ParsedDocument,
        excluded_entities: set[str] | None = None,
    ) -> list[EntityChange]:
        """
        Declared relationships dropped between versions.

        Entity endpoints already reported as renamed or deleted are skipped,
        as are document endpoints.
        """
        excluded = excluded_entities or set()
        current = {(r.source, r.relation, r.target) for r in new_doc.relationships}

        changes = []
        seen: set[str] = set()
        for relationship in old_doc.relationships:
            if (relationship.source, relationship.relation, relationship.target) in current:
                continue
            for endpoint in (relationship.target, relationship.source):
                if endpoint in (old_doc.path, new_doc.path) or is_document_link(endpoint):
                    continue
                if endpoint in excluded or endpoint in seen:
                    continue
                seen.add(endpoint)
                changes.append(
                    EntityChange(
                        trigger=CascadeTrigger.RELATIONSHIP_CHANGED,
                        entity_name=endpoint,
                        old_value=relationship.relation.value,
                        source_document=new_doc.path,
                    )
                )
        return changes

    # ═══════════════════════════════════════════════════════════
    # ANALYSIS
    # ═══════════════════════════════════════════════════════════

    async def _referencing_documents(self, entity_name: str) -> list[DocumentRef]:
        try:
            return await self.graph_store.find_documents_referencing(entity_name)
        except Exception as e:
            logger.warning(f"Cascade lookup failed for '{entity_name}': {e}")
            return []

    async def analyze_entity_change(self, change: EntityChange) -> CascadeAnalysis:
        """Find documents other than the source that reference the changed entity."""
        name = change.entity_name

        if change.trigger == CascadeTrigger.ENTITY_RENAMED:
            summary = f'Entity "{change.old_value}" was renamed to "{change.new_value}"'
            reason = f'References "{name}", now named "{change.new_value}"'
            action, confidence = SuggestedAction.UPDATE_REFERENCE, Confidence.HIGH
        elif change.trigger == CascadeTrigger.ENTITY_DELETED:
            summary = f'Entity "{name}" was deleted'
            reason = f'References deleted entity "{name}"'
            action, confidence = SuggestedAction.REVIEW_CONTENT, Confidence.HIGH
        elif change.trigger == CascadeTrigger.ENTITY_TYPE_CHANGED:
            summary = f'Entity "{name}" type changed from "{change.old_value}" to "{change.new_value}"'
            reason = f'References "{name}" as {change.old_value} (now {change.new_value})'
            action, confidence = SuggestedAction.REVIEW_CONTENT, Confidence.HIGH
        elif change.trigger == CascadeTrigger.RELATIONSHIP_CHANGED:
            summary = f'Relationship involving "{name}" was removed'
            reason = f'Has a relationship with "{name}"'
            action, confidence = SuggestedAction.REVIEW_CONTENT, Confidence.MEDIUM
        else:
            return await self.analyze_document_deletion(change.source_document)

        affected = [
            AffectedDocument(
                path=ref.path,
                title=ref.title,
                reason=reason,
                suggested_action=action,
                confidence=confidence,
                affected_entities=[name],
            )
            for ref in await self._referencing_documents(name)
            if ref.path != change.source_document
        ]

        return CascadeAnalysis(
            trigger=change.trigger,
            source_document=change.source_document,
            affected_documents=affected,
            summary=summary,
        )

    async def analyze_document_change(
        self, old_doc: ParsedDocument | None, new_doc: ParsedDocument
    ) -> list[CascadeAnalysis]:
        """
        Compare two versions of a document and report cascade impacts.

        Args:
            old_doc: Previous version, or None for a new document
            new_doc: Current version

        Returns:
            One analysis per detected change that affects at least one other document
        """
        if old_doc is None:
            return []

        renames = self.detect_entity_renames(old_doc, new_doc)
        deletions = self.detect_entity_deletions(old_doc, new_doc, renames)
        type_changes = self.detect_entity_type_changes(old_doc, new_doc)
        gone = {change.entity_name for change in renames + deletions}
        relationship_changes = self.detect_relationship_changes(old_doc, new_doc, gone)

        analyses = []
        for change in renames + deletions + type_changes + relationship_changes:
            analysis = await self.analyze_entity_change(change)
            if analysis.affected_documents:
                analyses.append(analysis)

        if analyses:
            logger.info(f"Cascade: {len(analyses)} change(s) in {new_doc.path} affect other documents")
        return analyses

    async def analyze_document_deletion(
        self, document_path: str, entities: list[Entity] | None = None
    ) -> CascadeAnalysis:
        """
        Report documents affected by removing a document.

        Documents linking to it should drop the link. Documents sharing one
        of its entities are worth a look, with low confidence.
        """
        affected: dict[str, AffectedDocument] = {}

        try:
            linking = await self.graph_store.find_documents_linking_to(document_path)
        except Exception as e:
            logger.warning(f"Cascade lookup failed for deleted document {document_path}: {e}")
            linking = []

        for ref in linking:
            if ref.path == document_path:
                continue
            affected[ref.path] = AffectedDocument(
                path=ref.path,
                title=ref.title,
                reason=f'Links to deleted document "{document_path}"',
                suggested_action=SuggestedAction.REMOVE_REFERENCE,
                confidence=Confidence.HIGH,
            )

        if entities is None:
            try:
                entities = await self.graph_store.get_document_entities(document_path)
            except Exception as e:
                logger.warning(f"Could not load entities of deleted document {document_path}: {e}")
                entities = []

        for entity in entities:
            for ref in await self._referencing_documents(entity.name):
                if ref.path == document_path:
                    continue
                existing = affected.get(ref.path)
                if existing is None:
                    affected[ref.path] = AffectedDocument(
                        path=ref.path,
                        title=ref.title,
                        reason=f'Shares entities with deleted document "{document_path}"',
                        suggested_action=SuggestedAction.REVIEW_CONTENT,
                        confidence=Confidence.LOW,
                        affected_entities=[entity.name],
                    )
                elif entity.name not in existing.affected_entities:
                    existing.affected_entities.append(entity.name)

        return CascadeAnalysis(
            trigger=CascadeTrigger.DOCUMENT_DELETED,
            source_document=document_path,
            affected_documents=list(affected.values()),
            summary=f'Document "{document_path}" was deleted',
        )


_TRIGGER_HEADINGS = {
    CascadeTrigger.ENTITY_RENAMED: "Renamed entities",
    CascadeTrigger.ENTITY_DELETED: "Deleted entities",
    CascadeTrigger.ENTITY_TYPE_CHANGED: "Entity type changes",
    CascadeTrigger.RELATIONSHIP_CHANGED: "Relationship changes",
    CascadeTrigger.DOCUMENT_DELETED: "Deleted documents",
}


def format_warnings(analyses: list[CascadeAnalysis]) -> str:
    """Render cascade warnings as plain text grouped by trigger."""
    if not analyses:
        return ""

    grouped: dict[CascadeTrigger, list[CascadeAnalysis]] = defaultdict(list)
    for analysis in analyses:
        grouped[analysis.trigger].append(analysis)

    lines = []
    for trigger in CascadeTrigger:
        group = grouped.get(trigger)
        if not group:
            continue
        lines.append(f"{_TRIGGER_HEADINGS[trigger]}:")
        for analysis in group:
            lines.append(f"  {analysis.summary} (in {analysis.source_document})")
            for doc in analysis.affected_documents:
                lines.append(
                    f"    - {doc.path} [{doc.confidence.value}] {doc.suggested_action.value}: {doc.reason}"
                )
        lines.append("")

    return "\n".join(lines).rstrip()
