"""
Parser for the marked Newick tree descriptions consumed by the inference engine.
"""

from .newick_parser import (
    ANCESTOR_MARKER,
    MAX_TREE_DEPTH,
    parse_newick,
)

__all__ = [
    "ANCESTOR_MARKER",
    "MAX_TREE_DEPTH",
    "parse_newick",
]
