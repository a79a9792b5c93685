"""Core components: graph stores, hash indexes, document sources, embedders, LLMs."""
