"""
Base interface for document sources.

A document source finds documents, fingerprints them cheaply for change
detection, and parses them into ParsedDocument on demand.
"""

from abc import ABC, abstractmethod

from lattice.models.document import ParsedDocument


class DocumentSource(ABC):
    """Abstract base class for document sources."""

    @abstractmethod
    async def discover(self) -> list[str]:
        """
        Find every document.

        Returns:
            Absolute paths in a stable (sorted) order
        """
        pass

    @abstractmethod
    async def content_hash(self, path: str) -> str:
        """
        Digest of the document's raw bytes.

        Raises:
            DocumentParseError: If the document cannot be read
        """
        pass

    @abstractmethod
    async def parse(self, path: str) -> ParsedDocument:
        """
        Parse one document.

        Raises:
            DocumentParseError: If the document is malformed
        """
        pass

    @abstractmethod
    def resolve_paths(self, paths: list[str]) -> list[str]:
        """
        Normalize user-supplied paths to the absolute form used as document keys.

        Raises:
            ValidationError: If a path is outside the document root
            NotFoundError: If a path doesn't exist
        """
        pass

    @abstractmethod
    def resolve_link(self, document_path: str, target: str) -> str:
        """Resolve a document-relative link (e.g. "../guide.md") to a document key."""
        pass
