"""
Change detector.

Loads the persisted hash index once per sync pass, then classifies documents
with in-memory lookups. State lives on the instance, so independent syncs
never share a cache.
"""

from datetime import datetime, timezone

from lattice.core.hash_index.base import HashIndex
from lattice.models.graph import HashEntry
from lattice.models.sync import ChangeType
from lattice.utils.exceptions import NotLoadedError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)

CHANGE_REASONS = {
    ChangeType.NEW: "New document",
    ChangeType.UPDATED: "Content or frontmatter changed",
    ChangeType.DELETED: "File no longer exists",
    ChangeType.UNCHANGED: "No changes detected",
}


class ChangeDetector:
    """
    Classifies documents against the hash index.

    Rules:
    - path absent from the index: new
    - path present with a null hash (legacy record or force-cleared): updated
    - path present with an equal hash: unchanged
    - otherwise: updated

    Deletions are derived by the caller as tracked_paths() minus the paths
    found on disk.
    """

    def __init__(self, hash_index: HashIndex):
        self.hash_index = hash_index
        self._entries: dict[str, HashEntry] | None = None
        self._tracked: set[str] = set()

    @property
    def loaded(self) -> bool:
        return self._entries is not None

    async def load_index(self) -> None:
        """Load the whole index in one round trip. Must run before any lookup."""
        self._entries = await self.hash_index.load()
        self._tracked = set(self._entries)
        logger.info(f"Loaded {len(self._entries)} document hashes")

    def _require_loaded(self) -> dict[str, HashEntry]:
        if self._entries is None:
            raise NotLoadedError("Change detector used before load_index()")
        return self._entries

    def classify(self, path: str, current_hash: str) -> ChangeType:
        """Classify one on-disk document by its current content hash."""
        entries = self._require_loaded()

        entry = entries.get(path)
        if entry is None:
            return ChangeType.NEW
        if entry.content_hash is None:
            return ChangeType.UPDATED
        if entry.content_hash == current_hash:
            return ChangeType.UNCHANGED
        return ChangeType.UPDATED

    def tracked_paths(self) -> set[str]:
        """Every path the index knew about when it was loaded, plus paths recorded since."""
        self._require_loaded()
        return set(self._tracked)

    def entry(self, path: str) -> HashEntry | None:
        return self._require_loaded().get(path)

    def clear_entries(self, paths: list[str] | None = None) -> None:
        """
        Forget stored hashes so the documents are re-processed (force mode).

        Entries keep existing with a null hash, so known documents come back
        as updated rather than new and deletions are still detected.
        """
        entries = self._require_loaded()
        targets = list(entries) if paths is None else [p for p in paths if p in entries]
        for path in targets:
            entries[path] = entries[path].model_copy(update={"content_hash": None})
        logger.info(f"Cleared {len(targets)} hash entries for re-sync")

    async def record(
        self,
        path: str,
        content_hash: str,
        embedding_source_hash: str | None = None,
        entity_count: int = 0,
        relationship_count: int = 0,
    ) -> HashEntry:
        """Persist a document's hash after its graph writes succeeded."""
        entries = self._require_loaded()

        entry = HashEntry(
            content_hash=content_hash,
            embedding_source_hash=embedding_source_hash,
            last_synced=datetime.now(timezone.utc),
            entity_count=entity_count,
            relationship_count=relationship_count,
        )
        await self.hash_index.record(path, entry)
        entries[path] = entry
        self._tracked.add(path)
        return entry

    async def forget(self, path: str) -> None:
        """Drop a deleted document from the index."""
        entries = self._require_loaded()
        await self.hash_index.remove(path)
        entries.pop(path, None)
        self._tracked.discard(path)

    async def save(self) -> None:
        """Flush the backend."""
        self._require_loaded()
        await self.hash_index.flush()

    def is_embedding_stale(self, path: str, embedding_source_hash: str) -> bool:
        """True unless the stored embedding was built from the same source text."""
        entry = self._require_loaded().get(path)
        return entry is None or entry.embedding_source_hash != embedding_source_hash

    def paths_missing_embeddings(self) -> list[str]:
        """Tracked documents that have never had an embedding recorded."""
        entries = self._require_loaded()
        return sorted(path for path, entry in entries.items() if entry.embedding_source_hash is None)

    @staticmethod
    def reason(change_type: ChangeType) -> str:
        """Human-readable reason for a classification."""
        return CHANGE_REASONS[change_type]
