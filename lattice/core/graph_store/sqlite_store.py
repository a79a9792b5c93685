"""
SQLite graph store implementation.

Emulates node/edge semantics with two tables using aiosqlite:
nodes keyed by (label, name) and relationships keyed by both endpoints
plus the relation. Every statement is parameterized.
"""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np

from lattice.core.graph_store.base import (
    GraphStore,
    normalize_label,
    normalize_relation,
    validate_properties,
)
from lattice.models.document import Entity, EntityType, RelationType
from lattice.models.graph import (
    PROVENANCE_KEY,
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

DOCUMENT = EntityType.DOCUMENT.value
APPEARS_IN = RelationType.APPEARS_IN.value


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteGraphStore(GraphStore):
    """
    SQLite-based graph store for documents, entities and relationships.

    Features:
    - Fast local storage, no server required
    - JSON property bags merged with json_patch on upsert
    - Provenance column for bulk relationship clearing
    - Brute-force cosine vector search with numpy
    """

    def __init__(self, db_path: str = "data/lattice.db", embedding_dimension: int | None = None):
        """
        Initialize SQLite graph store.

        Args:
            db_path: Path to SQLite database file (":memory:" for a throwaway store)
            embedding_dimension: Required vector length; fixed by the first
                embedding written when not given
        """
        self.db_path = db_path
        self.embedding_dimension = embedding_dimension
        self.connection: aiosqlite.Connection | None = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """
        Establish connection to SQLite.

        Raises:
            GraphStoreError: If the database cannot be opened
        """
        if self.connection is None:
            try:
                self.connection = await aiosqlite.connect(self.db_path)
                self.connection.row_factory = sqlite3.Row
                await self.connection.execute("PRAGMA journal_mode = WAL")
                await self.connection.commit()
            except aiosqlite.Error as e:
                logger.error(f"Failed to open SQLite database {self.db_path}: {e}")
                raise GraphStoreError(f"Failed to connect to SQLite: {e}") from e

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS nodes (
                label TEXT NOT NULL,
                name TEXT NOT NULL,
                properties TEXT NOT NULL DEFAULT '{}',
                embedding TEXT,
                content_hash TEXT,
                embedding_source_hash TEXT,
                last_synced TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (label, name)
            )
        """
        )

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS relationships (
                source_label TEXT NOT NULL,
                source_name TEXT NOT NULL,
                relation TEXT NOT NULL,
                target_label TEXT NOT NULL,
                target_name TEXT NOT NULL,
                properties TEXT NOT NULL DEFAULT '{}',
                document_path TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (source_label, source_name, relation, target_label, target_name)
            )
        """
        )

        await self.connection.execute("CREATE INDEX IF NOT EXISTS idx_nodes_name ON nodes(name)")
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_rel_source ON relationships(source_label, source_name)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_rel_target ON relationships(target_label, target_name)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_rel_document ON relationships(document_path)"
        )

        await self.connection.commit()

    async def close(self) -> None:
        """Close the SQLite connection."""
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    async def _execute(self, statement: str, params: tuple | dict = ()) -> aiosqlite.Cursor:
        await self.connect()
        try:
            return await self.connection.execute(statement, params)
        except aiosqlite.Error as e:
            logger.error(f"SQLite statement failed: {e}")
            raise GraphStoreError(f"SQLite statement failed: {e}") from e

    async def _commit(self) -> None:
        try:
            await self.connection.commit()
        except aiosqlite.Error as e:
            raise GraphStoreError(f"SQLite commit failed: {e}") from e

    # ═══════════════════════════════════════════════════════════
    # NODE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def upsert_node(self, label: str | EntityType, properties: Properties) -> None:
        """Create or merge a node; given properties win, null removes a property."""
        label = normalize_label(label)
        props = validate_properties(properties, require_name=True)
        name = props.pop("name")
        now = _now()

        stored = {key: value for key, value in props.items() if value is not None}
        await self._execute(
            """
            INSERT INTO nodes (label, name, properties, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(label, name) DO UPDATE SET
                properties = json_patch(nodes.properties, ?),
                updated_at = ?
            """,
            (label, name, json.dumps(stored), now, now, json.dumps(props), now),
        )
        await self._commit()

        logger.debug(f"Upserted node {label}:{name}")

    async def _ensure_node(self, label: str, name: str, now: str) -> None:
        await self._execute(
            """
            INSERT OR IGNORE INTO nodes (label, name, properties, created_at, updated_at)
            VALUES (?, ?, '{}', ?, ?)
            """,
            (label, name, now, now),
        )

    async def get_node(self, label: str | EntityType, name: str) -> GraphNode | None:
        """Retrieve a node by its natural key."""
        label = normalize_label(label)
        cursor = await self._execute(
            "SELECT * FROM nodes WHERE label = ? AND name = ?",
            (label, name),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_node(row)

    async def delete_node(self, label: str | EntityType, name: str) -> None:
        """Delete a node after its relationships."""
        label = normalize_label(label)

        await self._execute(
            """
            DELETE FROM relationships
            WHERE (source_label = ? AND source_name = ?)
               OR (target_label = ? AND target_name = ?)
            """,
            (label, name, label, name),
        )
        await self._execute("DELETE FROM nodes WHERE label = ? AND name = ?", (label, name))
        await self._commit()

        logger.debug(f"Deleted node {label}:{name}")

    async def count_nodes(self, label: str | EntityType | None = None) -> int:
        """Count nodes, optionally by label."""
        if label is None:
            cursor = await self._execute("SELECT COUNT(*) FROM nodes")
        else:
            cursor = await self._execute(
                "SELECT COUNT(*) FROM nodes WHERE label = ?", (normalize_label(label),)
            )
        row = await cursor.fetchone()
        return row[0]

    async def list_nodes(self, label: str | EntityType | None = None) -> list[GraphNode]:
        """List nodes ordered by label and name."""
        if label is None:
            cursor = await self._execute("SELECT * FROM nodes ORDER BY label, name")
        else:
            cursor = await self._execute(
                "SELECT * FROM nodes WHERE label = ? ORDER BY name", (normalize_label(label),)
            )
        rows = await cursor.fetchall()
        return [self._row_to_node(row) for row in rows]

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
        """Create or merge a typed edge, creating bare endpoints first."""
        source_label = normalize_label(source_label)
        target_label = normalize_label(target_label)
        relation = normalize_relation(relation)
        props = validate_properties(properties)
        if not source_name or not target_name:
            raise ValidationError("Relationship endpoints must have names")

        now = _now()
        await self._ensure_node(source_label, source_name, now)
        await self._ensure_node(target_label, target_name, now)

        await self._execute(
            """
            INSERT INTO relationships (
                source_label, source_name, relation, target_label, target_name,
                properties, document_path, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(source_label, source_name, relation, target_label, target_name)
            DO UPDATE SET
                properties = excluded.properties,
                document_path = excluded.document_path,
                updated_at = excluded.updated_at
            """,
            (
                source_label,
                source_name,
                relation,
                target_label,
                target_name,
                json.dumps(props),
                props.get(PROVENANCE_KEY),
                now,
                now,
            ),
        )
        await self._commit()

        logger.debug(
            f"Upserted relationship {source_label}:{source_name} "
            f"-[{relation}]-> {target_label}:{target_name}"
        )

    async def delete_document_relationships(self, document_path: str) -> int:
        """Remove every relationship created by a document."""
        cursor = await self._execute(
            "DELETE FROM relationships WHERE document_path = ?", (document_path,)
        )
        await self._commit()
        return cursor.rowcount

    async def get_relationships(self, document_path: str | None = None) -> list[GraphRelationship]:
        """List relationships in insertion order."""
        if document_path is None:
            cursor = await self._execute("SELECT * FROM relationships ORDER BY rowid")
        else:
            cursor = await self._execute(
                "SELECT * FROM relationships WHERE document_path = ? ORDER BY rowid",
                (document_path,),
            )
        rows = await cursor.fetchall()

        return [
            GraphRelationship(
                source_label=row["source_label"],
                source_name=row["source_name"],
                relation=row["relation"],
                target_label=row["target_label"],
                target_name=row["target_name"],
                properties=json.loads(row["properties"]),
            )
            for row in rows
        ]

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

    async def update_node_embedding(
        self, label: str | EntityType, name: str, embedding: list[float]
    ) -> None:
        """Attach an embedding to an existing node."""
        label = normalize_label(label)
        self._check_dimension(embedding)

        cursor = await self._execute(
            "UPDATE nodes SET embedding = ?, updated_at = ? WHERE label = ? AND name = ?",
            (json.dumps([float(x) for x in embedding]), _now(), label, name),
        )
        await self._commit()

        if cursor.rowcount == 0:
            raise NotFoundError(f"Node not found: {label}:{name}")

    async def create_vector_index(self, label: str | EntityType) -> None:
        """No native vector index; search scans embeddings of one label."""
        normalize_label(label)

    async def vector_search(
        self, label: str | EntityType, query_vector: list[float], k: int = 10
    ) -> list[SearchHit]:
        """Cosine similarity over every embedded node of one label."""
        label = normalize_label(label)
        if not query_vector:
            raise ValidationError("Query vector cannot be empty")

        cursor = await self._execute(
            "SELECT name, properties, embedding FROM nodes WHERE label = ? AND embedding IS NOT NULL",
            (label,),
        )
        rows = await cursor.fetchall()

        query = np.asarray(query_vector, dtype=float)
        candidates = []
        vectors = []
        for row in rows:
            vector = json.loads(row["embedding"])
            if len(vector) == len(query):
                candidates.append(row)
                vectors.append(vector)

        if not candidates:
            return []

        matrix = np.asarray(vectors, dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        norms[norms == 0] = 1.0
        scores = matrix @ query / norms

        hits = []
        for index in np.argsort(-scores)[:k]:
            row = candidates[index]
            props = json.loads(row["properties"])
            hits.append(
                SearchHit(
                    label=label,
                    name=row["name"],
                    score=float(scores[index]),
                    title=props.get("title"),
                    description=props.get("description"),
                )
            )
        return hits

    # ═══════════════════════════════════════════════════════════
    # DOCUMENT HASH BOOKKEEPING
    # ═══════════════════════════════════════════════════════════

    async def load_all_document_hashes(self) -> dict[str, HashEntry]:
        """Hash index for every synced Document node (bare link targets excluded)."""
        cursor = await self._execute(
            """
            SELECT name, content_hash, embedding_source_hash, last_synced
            FROM nodes
            WHERE label = ?
              AND (content_hash IS NOT NULL OR json_extract(properties, '$.title') IS NOT NULL)
            """,
            (DOCUMENT,),
        )
        rows = await cursor.fetchall()

        return {
            row["name"]: HashEntry(
                content_hash=row["content_hash"],
                embedding_source_hash=row["embedding_source_hash"],
                last_synced=_parse_time(row["last_synced"]),
            )
            for row in rows
        }

    async def update_document_hashes(
        self,
        document_path: str,
        content_hash: str,
        embedding_source_hash: str | None = None,
    ) -> None:
        """Record hashes on the Document node."""
        now = _now()
        await self._execute(
            """
            INSERT INTO nodes (
                label, name, content_hash, embedding_source_hash, last_synced,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(label, name) DO UPDATE SET
                content_hash = excluded.content_hash,
                embedding_source_hash = COALESCE(
                    excluded.embedding_source_hash, nodes.embedding_source_hash
                ),
                last_synced = excluded.last_synced
            """,
            (DOCUMENT, document_path, content_hash, embedding_source_hash, now, now, now),
        )
        await self._commit()

    # ═══════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════

    async def get_document_entities(self, document_path: str) -> list[Entity]:
        """Entities attached to a document, in the order they were declared."""
        cursor = await self._execute(
            """
            SELECT r.source_label, r.source_name, n.properties
            FROM relationships r
            LEFT JOIN nodes n ON n.label = r.source_label AND n.name = r.source_name
            WHERE r.relation = ? AND r.target_label = ? AND r.target_name = ?
            ORDER BY COALESCE(json_extract(r.properties, '$.ordinal'), 0), r.rowid
            """,
            (APPEARS_IN, DOCUMENT, document_path),
        )
        rows = await cursor.fetchall()

        entities = []
        for row in rows:
            props = json.loads(row["properties"]) if row["properties"] else {}
            entities.append(
                Entity(
                    name=row["source_name"],
                    type=row["source_label"],
                    description=props.get("description"),
                )
            )
        return entities

    async def find_documents_referencing(
        self, entity_name: str, relation: str | RelationType | None = None
    ) -> list[DocumentRef]:
        """Documents connected to a named entity, in either direction."""
        relation_filter = ""
        params: list[Any] = [entity_name, DOCUMENT, DOCUMENT]
        if relation is not None:
            relation_filter = "AND r.relation = ?"
            params.append(normalize_relation(relation))
        params.extend([entity_name, DOCUMENT, DOCUMENT])
        if relation is not None:
            params.append(normalize_relation(relation))
        params.append(DOCUMENT)

        cursor = await self._execute(
            f"""
            SELECT refs.doc AS path, json_extract(d.properties, '$.title') AS title
            FROM (
                SELECT r.target_name AS doc FROM relationships r
                WHERE r.source_name = ? AND r.target_label = ? AND r.source_label != ?
                {relation_filter}
                UNION
                SELECT r.source_name AS doc FROM relationships r
                WHERE r.target_name = ? AND r.source_label = ? AND r.target_label != ?
                {relation_filter}
            ) refs
            LEFT JOIN nodes d ON d.label = ? AND d.name = refs.doc
            ORDER BY refs.doc
            """,
            tuple(params),
        )
        rows = await cursor.fetchall()
        return [DocumentRef(path=row["path"], title=row["title"]) for row in rows]

    async def resolve_entity_types(self, names: list[str]) -> dict[str, str]:
        """Labels of existing entity nodes, by name."""
        if not names:
            return {}

        placeholders = ", ".join("?" for _ in names)
        cursor = await self._execute(
            f"""
            SELECT name, label FROM nodes
            WHERE label != ? AND name IN ({placeholders})
            ORDER BY rowid
            """,
            (DOCUMENT, *names),
        )
        rows = await cursor.fetchall()

        types: dict[str, str] = {}
        for row in rows:
            types.setdefault(row["name"], row["label"])
        return types

    async def find_documents_linking_to(self, document_path: str) -> list[DocumentRef]:
        """Documents with an edge pointing at the given document."""
        cursor = await self._execute(
            """
            SELECT DISTINCT r.source_name AS path, json_extract(d.properties, '$.title') AS title
            FROM relationships r
            LEFT JOIN nodes d ON d.label = r.source_label AND d.name = r.source_name
            WHERE r.source_label = ? AND r.target_label = ? AND r.target_name = ?
              AND r.source_name != ?
            ORDER BY r.source_name
            """,
            (DOCUMENT, DOCUMENT, document_path, document_path),
        )
        rows = await cursor.fetchall()
        return [DocumentRef(path=row["path"], title=row["title"]) for row in rows]

    async def query(self, statement: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run raw SQL with named parameters."""
        cursor = await self._execute(statement, params or {})
        rows = await cursor.fetchall()
        await self._commit()
        return [dict(row) for row in rows]

    async def checkpoint(self) -> None:
        """Commit and fold the WAL back into the database file."""
        await self.connect()
        await self._commit()
        await self._execute("PRAGMA wal_checkpoint(TRUNCATE)")

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    def _row_to_node(self, row: sqlite3.Row) -> GraphNode:
        """Convert database row to GraphNode."""
        return GraphNode(
            label=row["label"],
            name=row["name"],
            properties=json.loads(row["properties"]),
            has_embedding=row["embedding"] is not None,
            created_at=_parse_time(row["created_at"]),
            updated_at=_parse_time(row["updated_at"]),
        )
