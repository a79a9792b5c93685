"""
Custom exception hierarchy for Lattice.

Provides structured error types for better error handling and debugging.
All exceptions inherit from LatticeError for easy catching.
"""


class LatticeError(Exception):
    """
    Base exception for all Lattice errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize Lattice error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(LatticeError):
    """
    Base exception for store operations.
    Used for errors related to data storage operations.
    """

    pass


class GraphStoreError(StoreError):
    """
    Graph store operation errors.
    Raised when graph database operations fail.
    """

    pass


class HashIndexError(StoreError):
    """
    Hash index errors.
    Raised when the persisted document hash index cannot be read or written.
    """

    pass


class SyncError(LatticeError):
    """
    Sync pass errors.
    Raised when the sync orchestration itself cannot proceed.
    """

    pass


class NotLoadedError(SyncError):
    """
    Raised when the change detector is queried before its index was loaded.
    """

    pass


class ValidationError(LatticeError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class MissingKeyError(ValidationError):
    """
    Raised when a node is upserted without its natural key (name).
    """

    pass


class NotFoundError(LatticeError):
    """
    Resource not found errors.
    Raised when a requested resource (node, document, etc.) doesn't exist.
    """

    pass


class ConfigurationError(LatticeError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class EmbeddingError(LatticeError):
    """
    Embedding generation errors.
    Raised when embedding generation fails.
    """

    pass


class LLMError(LatticeError):
    """
    LLM operation errors.
    Raised when LLM operations fail (API errors, timeouts, etc.).
    """

    pass


class DocumentParseError(LatticeError):
    """
    Document parsing errors.
    Raised when a markdown document or its frontmatter is malformed.
    """

    pass
