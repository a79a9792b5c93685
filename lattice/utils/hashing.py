"""Content digests used for change detection."""

import hashlib


def compute_content_hash(content: bytes | str) -> str:
    """SHA-256 hex digest of raw document bytes (str is UTF-8 encoded)."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()
