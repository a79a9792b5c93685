"""
Document sources for Lattice.

Available sources:
- MarkdownDocumentSource: *.md files with YAML frontmatter
- DocumentWatcher: debounced filesystem change notifications (watchdog)
"""

from lattice.core.documents.base import DocumentSource
from lattice.core.documents.markdown import MarkdownDocumentSource, parse_frontmatter
from lattice.core.documents.watcher import DocumentWatcher, MarkdownChangeHandler

__all__ = [
    "DocumentSource",
    "DocumentWatcher",
    "MarkdownChangeHandler",
    "MarkdownDocumentSource",
    "parse_frontmatter",
]
