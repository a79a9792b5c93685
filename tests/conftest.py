"""
Shared test fixtures.
"""

from pathlib import Path

import pytest
import yaml

from lattice.core.documents.markdown import MarkdownDocumentSource
from lattice.core.embeddings.mock import MockEmbedder
from lattice.core.graph_store.sqlite_store import SQLiteGraphStore
from lattice.models.document import Entity, EntityType, ParsedDocument, Relationship, RelationType


def _write_doc(
    root: Path,
    name: str,
    entities: list[dict] | None = None,
    relationships: list[dict] | None = None,
    body: str = "Body text.",
    **frontmatter,
) -> Path:
    """Write a markdown file with YAML frontmatter and return its path."""
    meta = dict(frontmatter)
    if entities is not None:
        meta["entities"] = entities
    if relationships is not None:
        meta["relationships"] = relationships

    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    if meta:
        path.write_text(f"---\n{yaml.safe_dump(meta, sort_keys=False)}---\n{body}\n", encoding="utf-8")
    else:
        path.write_text(f"{body}\n", encoding="utf-8")
    return path


def _make_document(
    path: str,
    entities: list[tuple[str, str]] | None = None,
    relationships: list[tuple[str, str, str]] | None = None,
    title: str = "Doc",
    content_hash: str = "hash",
) -> ParsedDocument:
    """Build a ParsedDocument from (type, name) and (source, relation, target) tuples."""
    return ParsedDocument(
        path=path,
        title=title,
        content_hash=content_hash,
        entities=[Entity(type=EntityType(t), name=n) for t, n in (entities or [])],
        relationships=[
            Relationship(source=s, relation=RelationType(r), target=t) for s, r, t in (relationships or [])
        ],
    )


@pytest.fixture
def write_doc():
    """Factory writing markdown files with frontmatter."""
    return _write_doc


@pytest.fixture
def make_document():
    """Factory building ParsedDocument instances."""
    return _make_document


@pytest.fixture
def docs_dir(tmp_path):
    """Empty docs directory."""
    path = tmp_path / "docs"
    path.mkdir()
    return path


@pytest.fixture
def document_source(docs_dir):
    """Markdown source over the temporary docs directory."""
    return MarkdownDocumentSource(docs_dir)


@pytest.fixture
async def sqlite_store(tmp_path):
    """Initialized SQLite graph store in a temporary directory."""
    store = SQLiteGraphStore(db_path=str(tmp_path / "graph.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def mock_embedder():
    """Deterministic offline embedder."""
    return MockEmbedder(dimension=16)
