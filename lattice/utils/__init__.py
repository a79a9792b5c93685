"""Utility modules for Lattice."""

from lattice.utils.exceptions import (
    ConfigurationError,
    DocumentParseError,
    EmbeddingError,
    GraphStoreError,
    HashIndexError,
    LatticeError,
    LLMError,
    MissingKeyError,
    NotFoundError,
    NotLoadedError,
    StoreError,
    SyncError,
    ValidationError,
)
from lattice.utils.hashing import compute_content_hash
from lattice.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Hashing
    "compute_content_hash",
    # Exceptions
    "LatticeError",
    "StoreError",
    "GraphStoreError",
    "HashIndexError",
    "SyncError",
    "NotLoadedError",
    "ValidationError",
    "MissingKeyError",
    "NotFoundError",
    "ConfigurationError",
    "EmbeddingError",
    "LLMError",
    "DocumentParseError",
]
