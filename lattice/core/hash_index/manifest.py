"""
Hash index stored as a single JSON manifest file.

Layout:
    {
      "version": 1,
      "last_sync": "2024-01-01T00:00:00+00:00",
      "documents": {
        "/abs/path/doc.md": {"content_hash": "...", "embedding_source_hash": null, ...}
      }
    }
"""

import asyncio
import os
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from lattice.core.hash_index.base import HashIndex
from lattice.models.graph import HashEntry
from lattice.utils.exceptions import HashIndexError
from lattice.utils.logger import get_logger

logger = get_logger(__name__)

MANIFEST_VERSION = 1


class Manifest(BaseModel):
    version: int = MANIFEST_VERSION
    last_sync: datetime | None = None
    documents: dict[str, HashEntry] = Field(default_factory=dict)


class ManifestHashIndex(HashIndex):
    """
    JSON manifest backend.

    Every record/remove rewrites the file atomically (write to a sibling
    temp file, then rename), so an interrupted pass never leaves a torn file.
    """

    def __init__(self, manifest_path: str | Path):
        self.manifest_path = Path(manifest_path)
        self._manifest = Manifest()

    async def load(self) -> dict[str, HashEntry]:
        """
        Read the manifest; a missing file is an empty index.

        Raises:
            HashIndexError: If the file exists but is not a valid manifest
        """
        if not await asyncio.to_thread(self.manifest_path.exists):
            logger.info(f"No manifest at {self.manifest_path}, starting empty")
            self._manifest = Manifest()
            return {}

        try:
            raw = await asyncio.to_thread(self.manifest_path.read_text, encoding="utf-8")
            self._manifest = Manifest.model_validate_json(raw)
        except (OSError, PydanticValidationError) as e:
            raise HashIndexError(f"Failed to read manifest {self.manifest_path}: {e}") from e

        if self._manifest.version != MANIFEST_VERSION:
            raise HashIndexError(
                f"Unsupported manifest version {self._manifest.version} in {self.manifest_path}"
            )

        return dict(self._manifest.documents)

    async def record(self, path: str, entry: HashEntry) -> None:
        self._manifest.documents[path] = entry
        await self.flush()

    async def remove(self, path: str) -> None:
        if self._manifest.documents.pop(path, None) is not None:
            await self.flush()

    async def flush(self) -> None:
        """Write the manifest to disk."""
        self._manifest.last_sync = datetime.now(timezone.utc)
        payload = self._manifest.model_dump_json(indent=2)
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            raise HashIndexError(f"Failed to write manifest {self.manifest_path}: {e}") from e

    def _write(self, payload: str) -> None:
        tmp_path = self.manifest_path.with_name(self.manifest_path.name + ".tmp")
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self.manifest_path)
