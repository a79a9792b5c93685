"""
Lattice: incremental markdown to knowledge graph sync.
"""

__version__ = "0.1.0"
