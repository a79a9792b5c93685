"""
Hash index backends for change detection.

Available backends:
- GraphHashIndex: Hashes kept on Document nodes in the graph store
- ManifestHashIndex: Hashes kept in a JSON manifest file
"""

from lattice.core.hash_index.base import HashIndex
from lattice.core.hash_index.graph_index import GraphHashIndex
from lattice.core.hash_index.manifest import Manifest, ManifestHashIndex

__all__ = [
    "HashIndex",
    "GraphHashIndex",
    "Manifest",
    "ManifestHashIndex",
]
