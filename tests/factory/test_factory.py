"""
Tests for factory classes.

Tests:
- LLM factory
- Embedder factory
- Graph store factory
- Hash index factory
- Sync service factory
"""

import pytest

from lattice.config import Config, EmbedderConfig, LLMConfig, SyncConfig
from lattice.core.embeddings.mock import MockEmbedder
from lattice.core.embeddings.ollama import OllamaEmbedder
from lattice.core.embeddings.openai import OpenAIEmbedder
from lattice.core.factory import (
    EmbedderFactory,
    GraphStoreFactory,
    HashIndexFactory,
    LLMFactory,
    SyncServiceFactory,
)
from lattice.core.graph_store.neo4j_store import Neo4jGraphStore
from lattice.core.graph_store.sqlite_store import SQLiteGraphStore
from lattice.core.hash_index.graph_index import GraphHashIndex
from lattice.core.hash_index.manifest import ManifestHashIndex
from lattice.core.llm.ollama import OllamaLLM
from lattice.core.llm.openai import OpenAILLM
from lattice.services.entity_extractor import LLMEntityExtractor
from lattice.utils.exceptions import ConfigurationError


class TestLLMFactory:
    """Test LLM factory."""

    def test_create_ollama_llm(self):
        """Test create ollama llm."""
        config = LLMConfig(provider="ollama", model="llama3.1:8b")
        llm = LLMFactory.create(config)

        assert isinstance(llm, OllamaLLM)
        assert llm.model == "llama3.1:8b"
        assert llm.host == "http://localhost:11434"

    def test_create_ollama_llm_with_base_url(self):
        """Test create ollama llm with base url."""
        llm = LLMFactory.create(LLMConfig(provider="ollama", base_url="http://gpu-box:11434"))
        assert llm.host == "http://gpu-box:11434"

    def test_create_openai_llm(self):
        """Test create openai llm."""
        config = LLMConfig(provider="openai", model="gpt-4o-mini", api_key="sk-test-key")
        llm = LLMFactory.create(config)

        assert isinstance(llm, OpenAILLM)
        assert llm.model == "gpt-4o-mini"

    def test_openai_without_api_key_raises_error(self):
        """Test openai without api key raises error."""
        with pytest.raises(ConfigurationError, match="API key"):
            LLMFactory.create(LLMConfig(provider="openai", model="gpt-4o-mini"))

    def test_unsupported_llm_provider(self):
        """Test unsupported llm provider."""
        with pytest.raises(ConfigurationError, match="Unsupported LLM provider"):
            LLMFactory.create(LLMConfig(provider="anthropic"))


class TestEmbedderFactory:
    """Test embedder factory."""

    def test_create_ollama_embedder(self):
        """Test create ollama embedder."""
        embedder = EmbedderFactory.create(EmbedderConfig(provider="ollama", model="nomic-embed-text"))

        assert isinstance(embedder, OllamaEmbedder)
        assert embedder.model == "nomic-embed-text"

    def test_create_openai_embedder(self):
        """Test create openai embedder."""
        config = EmbedderConfig(
            provider="openai", model="text-embedding-3-small", api_key="sk-test-key", dimension=1536
        )
        embedder = EmbedderFactory.create(config)

        assert isinstance(embedder, OpenAIEmbedder)
        assert embedder.dimension == 1536

    def test_openai_embedder_without_api_key(self):
        """Test openai embedder without api key."""
        with pytest.raises(ConfigurationError):
            EmbedderFactory.create(EmbedderConfig(provider="openai"))

    def test_create_mock_embedder(self):
        """Test create mock embedder."""
        embedder = EmbedderFactory.create(EmbedderConfig(provider="mock", dimension=32))

        assert isinstance(embedder, MockEmbedder)
        assert embedder.dimension == 32

    def test_mock_embedder_default_dimension(self):
        """Test mock embedder default dimension."""
        assert EmbedderFactory.create(EmbedderConfig(provider="mock")).dimension == 384

    def test_unsupported_embedder_provider(self):
        """Test unsupported embedder provider."""
        with pytest.raises(ConfigurationError, match="Unsupported embedder provider"):
            EmbedderFactory.create(EmbedderConfig(provider="cohere"))


class TestGraphStoreFactory:
    """Test graph store factory."""

    def test_create_sqlite_store(self, tmp_path):
        """Test create sqlite store."""
        config = Config(graph_backend="sqlite", sqlite={"db_path": str(tmp_path / "graph.db")})
        store = GraphStoreFactory.create(config, embedding_dimension=16)

        assert isinstance(store, SQLiteGraphStore)
        assert store.db_path == str(tmp_path / "graph.db")
        assert store.embedding_dimension == 16

    def test_create_neo4j_store(self):
        """Test create neo4j store."""
        config = Config(
            graph_backend="neo4j",
            neo4j={"uri": "bolt://graph:7687", "username": "admin", "password": "secret"},
        )
        store = GraphStoreFactory.create(config)

        assert isinstance(store, Neo4jGraphStore)
        assert store.uri == "bolt://graph:7687"
        assert store.username == "admin"
        assert store.driver is None

    def test_unsupported_backend(self):
        """Test unsupported backend."""
        with pytest.raises(ConfigurationError, match="Unsupported graph backend"):
            GraphStoreFactory.create(Config(graph_backend="falkordb"))


class TestHashIndexFactory:
    """Test hash index factory."""

    def test_create_graph_index(self, sqlite_store):
        """Test create graph index."""
        index = HashIndexFactory.create(SyncConfig(hash_index="graph"), sqlite_store)

        assert isinstance(index, GraphHashIndex)
        assert index.graph_store is sqlite_store

    def test_create_manifest_index(self, sqlite_store, tmp_path):
        """Test create manifest index."""
        manifest_path = tmp_path / "manifest.json"
        index = HashIndexFactory.create(
            SyncConfig(hash_index="manifest", manifest_path=str(manifest_path)), sqlite_store
        )

        assert isinstance(index, ManifestHashIndex)
        assert index.manifest_path == manifest_path

    def test_unsupported_hash_index(self, sqlite_store):
        """Test unsupported hash index."""
        with pytest.raises(ConfigurationError, match="Unsupported hash index backend"):
            HashIndexFactory.create(SyncConfig(hash_index="redis"), sqlite_store)


class TestSyncServiceFactory:
    """Test full service wiring."""

    @pytest.fixture
    def config(self, tmp_path):
        return Config(
            docs={"path": str(tmp_path / "docs")},
            sqlite={"db_path": str(tmp_path / "data" / "graph.db")},
            embedder={"provider": "mock", "dimension": 8},
            sync={"checkpoint_batch_size": 3},
        )

    @pytest.mark.asyncio
    async def test_create_service(self, config, tmp_path):
        """Test create service."""
        service = await SyncServiceFactory.create(config)
        try:
            assert isinstance(service.graph_store, SQLiteGraphStore)
            assert service.graph_store.embedding_dimension == 8
            assert isinstance(service.embedder, MockEmbedder)
            assert service.extractor is None
            assert service.checkpoint_batch_size == 3
            assert service.source.docs_path == (tmp_path / "docs").resolve()
            assert (tmp_path / "data" / "graph.db").exists()
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_create_service_with_extractor(self, config):
        """Test create service with extractor."""
        config.llm = LLMConfig(provider="ollama", max_tokens=512, temperature=0.2)
        service = await SyncServiceFactory.create(config, with_extractor=True)
        try:
            assert isinstance(service.extractor, LLMEntityExtractor)
            assert isinstance(service.extractor.llm, OllamaLLM)
            assert service.extractor.max_tokens == 512
            assert service.extractor.temperature == 0.2
            assert service.extractor.max_attempts == 3
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_create_service_rejects_bad_llm(self, config):
        """Test create service rejects bad llm."""
        config.llm = LLMConfig(provider="openai")

        with pytest.raises(ConfigurationError):
            await SyncServiceFactory.create(config, with_extractor=True)
