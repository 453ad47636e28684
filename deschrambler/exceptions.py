"""
Custom exceptions for ancestral adjacency inference and APCF construction.

Every error is fatal for the current run: library code raises, the command-line
entry points report the message and exit with status 1.
"""

from __future__ import annotations


class DeschramblerError(Exception):
    """Base exception for all inference and path-building errors."""

    pass


class ParseError(DeschramblerError):
    """Raised when a tree, genome, joins or score file is malformed."""

    def __init__(self, message: str, source: str | None = None, line: int | None = None):
        self.source = source
        self.line = line
        location = ""
        if source is not None:
            location = f"{source}:{line}: " if line is not None else f"{source}: "
        super().__init__(f"{location}{message}")


class TreeCapacityError(ParseError):
    """Raised when the tree nesting exceeds the parser's fixed stack bound."""

    pass


class ConsistencyError(DeschramblerError):
    """Raised when well-formed inputs contradict each other.

    Examples are a reference species without a genome, two designated
    ancestor markers, block identifiers outside ``1..T`` or a column of the
    likelihood table that sums to zero.
    """

    pass
