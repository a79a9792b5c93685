"""
Factory for wiring a complete sync service.
"""

from lattice.config import Config
from lattice.core.documents.markdown import MarkdownDocumentSource
from lattice.core.factory.embedder_factory import EmbedderFactory
from lattice.core.factory.graph_factory import GraphStoreFactory
from lattice.core.factory.hash_index_factory import HashIndexFactory
from lattice.core.factory.llm_factory import LLMFactory
from lattice.services.cascade_analyzer import CascadeAnalyzer
from lattice.services.change_detector import ChangeDetector
from lattice.services.entity_extractor import LLMEntityExtractor
from lattice.services.sync_service import SyncService
from lattice.utils.logger import get_logger

logger = get_logger(__name__)


class SyncServiceFactory:
    """Builds a SyncService and its collaborators from configuration."""

    @staticmethod
    async def create(config: Config, with_extractor: bool = False) -> SyncService:
        """
        Create and initialize a sync service.

        The graph store is initialized here; callers own closing it through
        SyncService.close().

        Args:
            config: Main configuration object
            with_extractor: Also build the LLM-backed entity extractor

        Returns:
            Ready-to-use SyncService
        """
        embedder = EmbedderFactory.create(config.embedder)
        # Unknown dimensions are fixed by the first stored vector
        dimension = config.embedder.dimension or getattr(embedder, "dimension", None)

        extractor = None
        if with_extractor:
            extractor = LLMEntityExtractor(
                LLMFactory.create(config.llm),
                min_interval=config.sync.extraction_min_interval,
                max_attempts=config.sync.extraction_max_attempts,
                max_tokens=config.llm.max_tokens,
                temperature=config.llm.temperature,
            )

        graph_store = GraphStoreFactory.create(config, embedding_dimension=dimension)
        await graph_store.initialize()

        logger.info(
            f"Sync service ready: backend={config.graph_backend}, "
            f"hash_index={config.sync.hash_index}, embedder={config.embedder.provider}"
        )

        return SyncService(
            graph_store=graph_store,
            source=MarkdownDocumentSource(config.docs.path),
            detector=ChangeDetector(HashIndexFactory.create(config.sync, graph_store)),
            embedder=embedder,
            extractor=extractor,
            cascade=CascadeAnalyzer(graph_store),
            checkpoint_batch_size=config.sync.checkpoint_batch_size,
        )
