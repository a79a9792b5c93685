"""
Graph consistency checks.

Reads every node back from the store and reports what a healthy sync would
not have left behind. A synced document without a title or content hash is
an error; missing metadata and unconnected entities are warnings.
"""

from lattice.core.graph_store.base import GraphStore
from lattice.models.document import EntityType
from lattice.models.graph import GraphNode
from lattice.models.validation import IssueSeverity, ValidationReport
from lattice.utils.exceptions import GraphStoreError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)

# Document properties a synced document should carry
RECOMMENDED_DOCUMENT_FIELDS = ("summary", "created", "updated", "status")


class GraphValidator:
    """Validates the stored graph node by node."""

    def __init__(self, graph_store: GraphStore):
        self.graph_store = graph_store

    async def validate(self) -> ValidationReport:
        """
        Check every node in the store.

        Raises:
            GraphStoreError: If the store cannot be read
        """
        report = ValidationReport()
        try:
            nodes = await self.graph_store.list_nodes()
            hashes = await self.graph_store.load_all_document_hashes()
            relationships = await self.graph_store.get_relationships()
        except GraphStoreError:
            raise
        except Exception as e:
            raise GraphStoreError(f"Failed to read graph for validation: {e}") from e

        linked = set()
        for relationship in relationships:
            linked.add((relationship.source_label, relationship.source_name))
            linked.add((relationship.target_label, relationship.target_name))

        report.total_nodes = len(nodes)
        for node in nodes:
            if node.label == EntityType.DOCUMENT.value:
                entry = hashes.get(node.name)
                self._check_document(report, node, entry.content_hash if entry else None)
                report.documents_checked += 1
            else:
                self._check_entity(report, node, (node.label, node.name) in linked)
                report.entities_checked += 1

        logger.info(
            f"Validated {report.total_nodes} nodes: {len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report

    @staticmethod
    def _check_document(report: ValidationReport, node: GraphNode, content_hash: str | None) -> None:
        label = node.label
        title = node.properties.get("title")

        if not title and not content_hash:
            report.add(
                IssueSeverity.WARNING,
                node.name,
                "Linked document has not been synced",
                label=label,
                suggestion="Create the document or remove the link to it",
            )
            return

        if not title:
            report.add(
                IssueSeverity.ERROR,
                node.name,
                "Missing required field: title",
                label=label,
                field="title",
                suggestion="Re-sync the document",
            )
        if not content_hash:
            report.add(
                IssueSeverity.ERROR,
                node.name,
                "Missing content hash",
                label=label,
                field="content_hash",
                suggestion="Run lattice sync --force to rebuild hashes",
            )

        for field in RECOMMENDED_DOCUMENT_FIELDS:
            if not node.properties.get(field):
                report.add(
                    IssueSeverity.WARNING,
                    node.name,
                    f"Missing recommended field: {field}",
                    label=label,
                    field=field,
                    suggestion=f"Add '{field}' to the frontmatter",
                )

    @staticmethod
    def _check_entity(report: ValidationReport, node: GraphNode, linked: bool) -> None:
        if not node.properties.get("description"):
            report.add(
                IssueSeverity.WARNING,
                node.name,
                "Entity has no description",
                label=node.label,
                field="description",
                suggestion="Add a description where the entity is declared",
            )
        if not linked:
            report.add(
                IssueSeverity.WARNING,
                node.name,
                "Entity is not connected to any document",
                label=node.label,
                suggestion="Remove the entity or declare it in a document",
            )
