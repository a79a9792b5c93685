"""
Neo4j graph store implementation.

Native Cypher backend. Values always travel as query parameters; labels and
relationship types, which Cypher cannot parameterize, are validated against
the closed enumerations and quoted through lattice.core.graph_store.cypher.
"""

from datetime import datetime, timezone
from typing import Any

from neo4j import AsyncDriver, AsyncGraphDatabase

from lattice.core.graph_store.base import (
    GraphStore,
    normalize_label,
    validate_properties,
)
from lattice.core.graph_store.cypher import format_value, node_label, quote_identifier, relation_type
from lattice.models.document import Entity, EntityType, RelationType
from lattice.models.graph import (
    DocumentRef,
    GraphNode,
    GraphRelationship,
    HashEntry,
    Properties,
    SearchHit,
)
from lattice.utils.exceptions import GraphStoreError, NotFoundError, ValidationError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)

# Bookkeeping properties kept off GraphNode.properties
_SYSTEM_PROPERTIES = (
    "name",
    "embedding",
    "content_hash",
    "embedding_source_hash",
    "last_synced",
    "created_at",
    "updated_at",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class Neo4jGraphStore(GraphStore):
    """
    Neo4j-based graph store for documents, entities and relationships.

    Features:
    - MERGE-based idempotent upserts
    - Native vector indexes per label (created lazily)
    - Provenance property on every relationship
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        username: str = "neo4j",
        password: str = "password",
        database: str = "neo4j",
        embedding_dimension: int | None = None,
    ):
        """
        Initialize Neo4j graph store.

        Args:
            uri: Neo4j connection URI
            username: Username
            password: Password
            database: Database name
            embedding_dimension: Vector length for embeddings and vector indexes
        """
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self.embedding_dimension = embedding_dimension
        self.driver: AsyncDriver | None = None
        self._vector_indexes: set[str] = set()

    async def connect(self) -> None:
        """
        Establish connection to Neo4j.

        Raises:
            GraphStoreError: If connection fails
        """
        if self.driver is None:
            try:
                self.driver = AsyncGraphDatabase.driver(
                    self.uri,
                    auth=(self.username, self.password),
                )
            except Exception as e:
                logger.error(f"Failed to connect to Neo4j at {self.uri}: {e}")
                raise GraphStoreError(f"Failed to connect to Neo4j: {e}") from e

    async def initialize(self) -> None:
        """
        Create uniqueness constraints for every label.

        Raises:
            GraphStoreError: If initialization fails
        """
        try:
            await self.connect()

            async with self.driver.session(database=self.database) as session:
                for label in EntityType:
                    constraint = quote_identifier(f"{label.value.lower()}_name")
                    await session.run(
                        f"CREATE CONSTRAINT {constraint} IF NOT EXISTS "
                        f"FOR (n:{node_label(label)}) REQUIRE n.name IS UNIQUE"
                    )

                await session.run(
                    "CREATE INDEX document_content_hash IF NOT EXISTS "
                    "FOR (d:Document) ON (d.content_hash)"
                )
        except Exception as e:
            logger.error(f"Failed to initialize Neo4j database {self.database}: {e}")
            raise GraphStoreError(f"Failed to initialize Neo4j: {e}") from e

    async def close(self) -> None:
        """Close the driver."""
        if self.driver is not None:
            await self.driver.close()
            self.driver = None

    async def _run(self, query: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run one statement and return its records as dicts."""
        try:
            await self.connect()

            async with self.driver.session(database=self.database) as session:
                result = await session.run(query, params or {})
                return await result.data()
        except GraphStoreError:
            raise
        except Exception as e:
            logger.error(f"Cypher statement failed: {e}")
            raise GraphStoreError(f"Cypher statement failed: {e}") from e

    # ═══════════════════════════════════════════════════════════
    # NODE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def upsert_node(self, label: str | EntityType, properties: Properties) -> None:
        """MERGE on (label, name); given properties overwrite, null removes."""
        label_ref = node_label(label)
        props = validate_properties(properties, require_name=True)
        name = props.pop("name")

        await self._run(
            f"""
            MERGE (n:{label_ref} {{name: $name}})
            ON CREATE SET n.created_at = $now
            SET n += $props, n.updated_at = $now
            """,
            {"name": name, "props": props, "now": _now()},
        )

        logger.debug(f"Upserted node {label}:{name}")

    async def get_node(self, label: str | EntityType, name: str) -> GraphNode | None:
        """Retrieve a node by its natural key."""
        label_ref = node_label(label)
        records = await self._run(
            f"MATCH (n:{label_ref} {{name: $name}}) RETURN n",
            {"name": name},
        )
        if not records:
            return None

        return self._record_to_node(normalize_label(label), records[0]["n"])

    async def delete_node(self, label: str | EntityType, name: str) -> None:
        """Delete relationships first, then the node."""
        label_ref = node_label(label)
        params = {"name": name}

        await self._run(f"MATCH (n:{label_ref} {{name: $name}})-[r]-() DELETE r", params)
        await self._run(f"MATCH (n:{label_ref} {{name: $name}}) DELETE n", params)

        logger.debug(f"Deleted node {label}:{name}")

    async def count_nodes(self, label: str | EntityType | None = None) -> int:
        """Count nodes, optionally by label."""
        pattern = f"(n:{node_label(label)})" if label is not None else "(n)"
        records = await self._run(f"MATCH {pattern} RETURN count(n) AS count")
        return records[0]["count"] if records else 0

    async def list_nodes(self, label: str | EntityType | None = None) -> list[GraphNode]:
        """List nodes ordered by label and name."""
        if label is not None:
            records = await self._run(f"MATCH (n:{node_label(label)}) RETURN n ORDER BY n.name")
            return [self._record_to_node(normalize_label(label), record["n"]) for record in records]

        records = await self._run("MATCH (n) RETURN labels(n)[0] AS label, n ORDER BY label, n.name")
        return [self._record_to_node(record["label"], record["n"]) for record in records]

    # ═══════════════════════════════════════════════════════════
    # RELATIONSHIP OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def upsert_relationship(
        self,
        source_label: str | EntityType,
        source_name: str,
        relation: str | RelationType,
        target_label: str | EntityType,
        target_name: str,
        properties: Properties | None = None,
    ) -> None:
        """MERGE both endpoints, then the typed edge."""
        source_ref = node_label(source_label)
        target_ref = node_label(target_label)
        relation_ref = relation_type(relation)
        props = validate_properties(properties)
        if not source_name or not target_name:
            raise ValidationError("Relationship endpoints must have names")

        await self._run(
            f"""
            MERGE (s:{source_ref} {{name: $source_name}})
            ON CREATE SET s.created_at = $now, s.updated_at = $now
            MERGE (t:{target_ref} {{name: $target_name}})
            ON CREATE SET t.created_at = $now, t.updated_at = $now
            MERGE (s)-[r:{relation_ref}]->(t)
            SET r = $props, r.updated_at = $now
            """,
            {
                "source_name": source_name,
                "target_name": target_name,
                "props": props,
                "now": _now(),
            },
        )

    async def delete_document_relationships(self, document_path: str) -> int:
        """Remove every relationship stamped with a document path."""
        records = await self._run(
            """
            MATCH ()-[r]->()
            WHERE r.document_path = $path
            DELETE r
            RETURN count(r) AS removed
            """,
            {"path": document_path},
        )
        return records[0]["removed"] if records else 0

    async def get_relationships(self, document_path: str | None = None) -> list[GraphRelationship]:
        """List relationships, optionally filtered by provenance."""
        where = "WHERE r.document_path = $path" if document_path is not None else ""
        records = await self._run(
            f"""
            MATCH (s)-[r]->(t)
            {where}
            RETURN labels(s)[0] AS source_label, s.name AS source_name,
                   type(r) AS relation,
                   labels(t)[0] AS target_label, t.name AS target_name,
                   properties(r) AS properties
            """,
            {"path": document_path},
        )

        relationships = []
        for record in records:
            props = dict(record["properties"] or {})
            props.pop("updated_at", None)
            relationships.append(
                GraphRelationship(
                    source_label=record["source_label"],
                    source_name=record["source_name"],
                    relation=record["relation"],
                    target_label=record["target_label"],
                    target_name=record["target_name"],
                    properties=props,
                )
            )
        return relationships

    # ═══════════════════════════════════════════════════════════
    # EMBEDDINGS / VECTOR SEARCH
    # ═══════════════════════════════════════════════════════════

    def _check_dimension(self, vector: list[float]) -> None:
        if not vector:
            raise ValidationError("Embedding cannot be empty")
        if self.embedding_dimension is None:
            self.embedding_dimension = len(vector)
        elif len(vector) != self.embedding_dimension:
            raise ValidationError(
                f"Embedding dimension mismatch: expected {self.embedding_dimension}, "
                f"got {len(vector)}"
            )

    @staticmethod
    def _index_name(label: str) -> str:
        return f"{label.lower()}_embedding"

    async def update_node_embedding(
        self, label: str | EntityType, name: str, embedding: list[float]
    ) -> None:
        """Set n.embedding on an existing node, creating the label's index first."""
        label_value = normalize_label(label)
        self._check_dimension(embedding)
        await self.create_vector_index(label_value)

        records = await self._run(
            f"""
            MATCH (n:{node_label(label_value)} {{name: $name}})
            SET n.embedding = $embedding, n.updated_at = $now
            RETURN count(n) AS updated
            """,
            {"name": name, "embedding": [float(x) for x in embedding], "now": _now()},
        )
        if not records or records[0]["updated"] == 0:
            raise NotFoundError(f"Node not found: {label_value}:{name}")

    async def create_vector_index(self, label: str | EntityType) -> None:
        """Create a cosine vector index on n.embedding for one label."""
        label_value = normalize_label(label)
        if label_value in self._vector_indexes:
            return
        if self.embedding_dimension is None:
            logger.warning(f"Skipping vector index for {label_value}: dimension unknown")
            return

        await self._run(
            f"""
            CREATE VECTOR INDEX {quote_identifier(self._index_name(label_value))} IF NOT EXISTS
            FOR (n:{node_label(label_value)}) ON (n.embedding)
            OPTIONS {{indexConfig: {{
                `vector.dimensions`: {format_value(self.embedding_dimension)},
                `vector.similarity_function`: {format_value("cosine")}
            }}}}
            """
        )
        self._vector_indexes.add(label_value)
        logger.debug(f"Ensured vector index for {label_value}")

    async def vector_search(
        self, label: str | EntityType, query_vector: list[float], k: int = 10
    ) -> list[SearchHit]:
        """Query the label's vector index."""
        label_value = normalize_label(label)
        self._check_dimension(query_vector)
        await self.create_vector_index(label_value)

        records = await self._run(
            """
            CALL db.index.vector.queryNodes($index_name, $k, $vector)
            YIELD node, score
            RETURN node.name AS name, node.title AS title,
                   node.description AS description, score
            ORDER BY score DESC
            """,
            {"index_name": self._index_name(label_value), "k": k, "vector": query_vector},
        )

        return [
            SearchHit(
                label=label_value,
                name=record["name"],
                score=float(record["score"]),
                title=record.get("title"),
                description=record.get("description"),
            )
            for record in records
        ]

    # ═══════════════════════════════════════════════════════════
    # DOCUMENT HASH BOOKKEEPING
    # ═══════════════════════════════════════════════════════════

    async def load_all_document_hashes(self) -> dict[str, HashEntry]:
        """One round trip over every synced Document node."""
        records = await self._run(
            """
            MATCH (d:Document)
            WHERE d.content_hash IS NOT NULL OR d.title IS NOT NULL
            RETURN d.name AS path, d.content_hash AS content_hash,
                   d.embedding_source_hash AS embedding_source_hash,
                   d.last_synced AS last_synced
            """
        )

        return {
            record["path"]: HashEntry(
                content_hash=record["content_hash"],
                embedding_source_hash=record["embedding_source_hash"],
                last_synced=_parse_time(record["last_synced"]),
            )
            for record in records
        }

    async def update_document_hashes(
        self,
        document_path: str,
        content_hash: str,
        embedding_source_hash: str | None = None,
    ) -> None:
        """Record hashes on the Document node."""
        await self._run(
            """
            MERGE (d:Document {name: $path})
            ON CREATE SET d.created_at = $now, d.updated_at = $now
            SET d.content_hash = $content_hash,
                d.embedding_source_hash = coalesce($embedding_source_hash, d.embedding_source_hash),
                d.last_synced = $now
            """,
            {
                "path": document_path,
                "content_hash": content_hash,
                "embedding_source_hash": embedding_source_hash,
                "now": _now(),
            },
        )

    # ═══════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════

    async def get_document_entities(self, document_path: str) -> list[Entity]:
        """Entities attached to a document, in declaration order."""
        records = await self._run(
            """
            MATCH (e)-[r:APPEARS_IN]->(d:Document {name: $path})
            RETURN labels(e)[0] AS label, e.name AS name, e.description AS description
            ORDER BY coalesce(r.ordinal, 0), e.name
            """,
            {"path": document_path},
        )
        return [
            Entity(name=record["name"], type=record["label"], description=record["description"])
            for record in records
        ]

    async def find_documents_referencing(
        self, entity_name: str, relation: str | RelationType | None = None
    ) -> list[DocumentRef]:
        """Documents connected to a named entity, in either direction."""
        edge = f"[:{relation_type(relation)}]" if relation is not None else "[]"
        records = await self._run(
            f"""
            MATCH (e {{name: $name}})-{edge}-(d:Document)
            WHERE NOT e:Document
            RETURN DISTINCT d.name AS path, d.title AS title
            ORDER BY path
            """,
            {"name": entity_name},
        )
        return [DocumentRef(path=record["path"], title=record["title"]) for record in records]

    async def resolve_entity_types(self, names: list[str]) -> dict[str, str]:
        """Labels of existing entity nodes, by name."""
        if not names:
            return {}

        records = await self._run(
            """
            MATCH (n)
            WHERE n.name IN $names AND NOT n:Document
            RETURN n.name AS name, labels(n)[0] AS label
            """,
            {"names": names},
        )

        types: dict[str, str] = {}
        for record in records:
            types.setdefault(record["name"], record["label"])
        return types

    async def find_documents_linking_to(self, document_path: str) -> list[DocumentRef]:
        """Documents with an edge pointing at the given document."""
        records = await self._run(
            """
            MATCH (s:Document)-->(d:Document {name: $path})
            WHERE s.name <> $path
            RETURN DISTINCT s.name AS path, s.title AS title
            ORDER BY path
            """,
            {"path": document_path},
        )
        return [DocumentRef(path=record["path"], title=record["title"]) for record in records]

    async def query(self, statement: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run raw Cypher with parameters."""
        return await self._run(statement, params)

    async def checkpoint(self) -> None:
        """Neo4j commits every auto-commit transaction; nothing is buffered client-side."""
        logger.debug("Neo4j checkpoint requested (no-op)")

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    def _record_to_node(self, label: str, node: Any) -> GraphNode:
        """Convert a Neo4j node to GraphNode."""
        data = dict(node)
        properties = {key: value for key, value in data.items() if key not in _SYSTEM_PROPERTIES}
        return GraphNode(
            label=label,
            name=data["name"],
            properties=properties,
            has_embedding=data.get("embedding") is not None,
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )
