"""
Cypher literal escaping.

Values are passed as query parameters wherever Neo4j allows it. Labels and
relationship types cannot be parameterized, so every identifier that ends up
inside query text goes through quote_identifier, and every literal built by
hand goes through escape_string / format_value. No other module concatenates
user-controlled strings into Cypher.
"""

from typing import Any

from lattice.core.graph_store.base import normalize_label, normalize_relation
from lattice.models.document import EntityType, RelationType


def escape_string(value: str) -> str:
    """Escape backslashes and both quote kinds for a Cypher string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"')


def format_value(value: Any) -> str:
    """Render a Python value as a Cypher literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(item) for item in value) + "]"
    return f"'{escape_string(str(value))}'"


def quote_identifier(identifier: str) -> str:
    """Backtick-quote a label or relationship type."""
    return "`" + identifier.replace("`", "``") + "`"


def node_label(label: str | EntityType) -> str:
    """Validate a node label against the closed set and return it quoted."""
    return quote_identifier(normalize_label(label))


def relation_type(relation: str | RelationType) -> str:
    """Validate a relationship type against the closed set and return it quoted."""
    return quote_identifier(normalize_relation(relation))
