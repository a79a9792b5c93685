"""
Filesystem watching for the markdown tree.

A watchdog observer runs in its own thread; the handler only flags that a
relevant file changed and hands the flag over to the event loop. Callers
await a debounced change and then run a normal sync pass, which rescans the
tree through the hash index.
"""

import asyncio
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from lattice.core.documents.markdown import IGNORED_DIRECTORIES
from lattice.utils.logger import get_logger

logger = get_logger(__name__)


class MarkdownChangeHandler(FileSystemEventHandler):
    """
    Watchdog handler that sets an asyncio.Event when markdown files change.

    Only *.md files outside node_modules and .git count. Directory deletes
    and moves also count, since they may take documents with them.
    """

    def __init__(self, root: Path, loop: asyncio.AbstractEventLoop, changed: asyncio.Event):
        super().__init__()
        self.root = root
        self._loop = loop
        self._changed = changed

    def is_relevant(self, path: str, is_directory: bool = False) -> bool:
        candidate = Path(path)
        try:
            relative = candidate.relative_to(self.root)
        except ValueError:
            return False
        if IGNORED_DIRECTORIES.intersection(relative.parts):
            return False
        return is_directory or candidate.suffix == ".md"

    def _handle(self, event: FileSystemEvent, include_directories: bool = False) -> None:
        if event.is_directory and not include_directories:
            return

        paths = [event.src_path]
        if getattr(event, "dest_path", None):
            paths.append(event.dest_path)
        if not any(self.is_relevant(str(path), event.is_directory) for path in paths):
            return

        logger.debug(f"Change detected: {event.src_path} ({event.event_type})")
        self._loop.call_soon_threadsafe(self._changed.set)

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event, include_directories=True)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(event, include_directories=True)


class DocumentWatcher:
    """
    Debounced change notifications for one docs directory.

    Usage:
        async with DocumentWatcher(docs_path, debounce=0.5) as watcher:
            while True:
                await watcher.wait_for_change()
                await service.sync()
    """

    def __init__(self, root: str | Path, debounce: float = 0.5):
        self.root = Path(root).resolve()
        self.debounce = debounce
        self._changed = asyncio.Event()
        self._observer: Observer | None = None

    def start(self) -> None:
        """Start the observer thread. Must be called from the running loop."""
        if self._observer is not None:
            return

        handler = MarkdownChangeHandler(self.root, asyncio.get_running_loop(), self._changed)
        self._observer = Observer()
        self._observer.schedule(handler, str(self.root), recursive=True)
        self._observer.start()
        logger.info(f"Watching {self.root} for changes")

    def stop(self) -> None:
        if self._observer is None:
            return

        try:
            self._observer.stop()
            self._observer.join(timeout=2.0)
        finally:
            self._observer = None
        logger.info(f"Stopped watching {self.root}")

    async def wait_for_change(self) -> None:
        """Wait for a change, then until the tree has been quiet for one debounce interval."""
        await self._changed.wait()
        while True:
            self._changed.clear()
            await asyncio.sleep(self.debounce)
            if not self._changed.is_set():
                return

    async def __aenter__(self) -> "DocumentWatcher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
