"""
Base interface for the persisted document hash index.

The change detector loads the whole index once per sync pass and writes an
entry back only after a document's graph writes succeeded.
"""

from abc import ABC, abstractmethod

from lattice.models.graph import HashEntry


class HashIndex(ABC):
    """Abstract base class for hash index backends."""

    @abstractmethod
    async def load(self) -> dict[str, HashEntry]:
        """
        Load every entry in one round trip.

        Returns:
            Mapping of absolute document path to its entry
        """
        pass

    @abstractmethod
    async def record(self, path: str, entry: HashEntry) -> None:
        """Persist the entry for one document."""
        pass

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Drop the entry of a deleted document."""
        pass

    async def flush(self) -> None:
        """Persist anything buffered (no-op for write-through backends)."""
        return None
