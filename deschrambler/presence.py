"""
Presence indicators: which adjacencies each leaf shows, and which are possible at all.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Set, Tuple

import numpy as np
from numpy.typing import NDArray

from deschrambler.genome import Adjacency
from deschrambler.symbols import SymbolPair, SymbolSpace

logger = logging.getLogger(__name__)


class LeafPresence:
    """
    Adjacencies observed in one leaf.

    ``touched`` holds every symbol that occurs as the second member of an
    observed pair. For an untouched ``j`` the leaf says nothing about which
    symbol precedes ``j``, so :meth:`value` is 1 for every ``i``; for a touched
    ``j`` it is 1 exactly for the observed pairs.
    """

    __slots__ = ("name", "pairs", "touched")

    def __init__(self, name: str):
        self.name = name
        self.pairs: Set[SymbolPair] = set()
        self.touched: Set[int] = set()

    def add(self, observed: SymbolPair, mirrored: SymbolPair, end: int) -> None:
        self.pairs.add(observed)
        self.pairs.add(mirrored)
        for pair in (observed, mirrored):
            if pair[1] != end:
                self.touched.add(pair[1])

    def observed(self, i: int, j: int) -> bool:
        return (i, j) in self.pairs

    def is_touched(self, j: int) -> bool:
        return j in self.touched

    def value(self, i: int, j: int) -> float:
        if not self.is_touched(j):
            return 1.0
        return 1.0 if (i, j) in self.pairs else 0.0

    def __len__(self) -> int:
        return len(self.pairs)

    def __repr__(self) -> str:
        return f"LeafPresence('{self.name}', pairs={len(self.pairs)})"


class GlobalPresence:
    """
    Union of all leaf observations: the symbol pairs worth scoring.

    Held as a dense boolean matrix over the symbol space for constant-time
    membership, with the per-column predecessor lists the likelihood
    recursion iterates over cached on first use.
    """

    def __init__(self, space: SymbolSpace):
        self.space = space
        self.matrix: NDArray[np.bool_] = np.zeros((space.size, space.size), dtype=bool)
        self._predecessors: Dict[int, Tuple[int, ...]] = {}

    def add(self, pair: SymbolPair) -> None:
        self.matrix[pair] = True
        self._predecessors.pop(pair[1], None)

    def __contains__(self, pair: SymbolPair) -> bool:
        i, j = pair
        return bool(self.matrix[i, j])

    def __len__(self) -> int:
        return int(self.matrix.sum())

    def predecessors(self, j: int) -> Tuple[int, ...]:
        """Symbols ``s`` with ``(s, j)`` possible, ascending."""
        cached = self._predecessors.get(j)
        if cached is None:
            cached = tuple(int(s) for s in np.flatnonzero(self.matrix[:, j]))
            self._predecessors[j] = cached
        return cached

    def pairs(self) -> Iterator[SymbolPair]:
        """All possible pairs ordered by first then second symbol."""
        for i, j in np.argwhere(self.matrix):
            yield int(i), int(j)

    def column_pairs(self) -> Iterator[SymbolPair]:
        """All possible pairs ordered by second then first symbol."""
        for j, i in np.argwhere(self.matrix.T):
            yield int(i), int(j)


@dataclass
class PresenceIndex:
    """Per-leaf indicators keyed by tree node index plus their union."""

    space: SymbolSpace
    universe: GlobalPresence
    leaves: Dict[int, LeafPresence] = field(default_factory=dict)

    def record(self, node_index: int, name: str, adjacencies: Iterable[Adjacency]) -> LeafPresence:
        """Register the signed-block adjacencies observed in one leaf."""
        leaf = self.leaves.get(node_index)
        if leaf is None:
            leaf = LeafPresence(name)
            self.leaves[node_index] = leaf
        end = self.space.end
        for first, second in adjacencies:
            observed, mirrored = self.space.encode_adjacency(first, second)
            leaf.add(observed, mirrored, end)
            self.universe.add(observed)
            self.universe.add(mirrored)
        logger.debug("Recorded %d symbol pairs for %s", len(leaf), name)
        return leaf

    def leaf(self, node_index: int) -> LeafPresence:
        return self.leaves[node_index]

    def summary(self) -> List[Tuple[str, int]]:
        return [(leaf.name, len(leaf)) for leaf in self.leaves.values()]


def new_presence_index(space: SymbolSpace) -> PresenceIndex:
    return PresenceIndex(space=space, universe=GlobalPresence(space))
