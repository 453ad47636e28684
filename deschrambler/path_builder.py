"""
Greedy assembly of ancestral contiguous fragments (APCFs).

Directed adjacency scores become weighted edges between oriented block ends.
Edges are taken heaviest first; each accepted edge either extends one of the
growing paths at its front or back, or opens a new path. After an extension
the grown path may be merged with one other path. Every block end is consumed
at most once and no path is ever closed into a cycle. Block ``0`` stands for a
chromosome terminus: paths are never extended or merged through it.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple

logger = logging.getLogger(__name__)

TERMINUS = 0
FORWARD = 1
REVERSE = -1

EdgeKey = Tuple[int, int, int, int]
ScoreTable = Dict[EdgeKey, float]


class Endpoint(NamedTuple):
    """A block read in one orientation (``1`` forward, ``-1`` reverse)."""

    block: int
    orientation: int

    @classmethod
    def from_signed(cls, signed_block: int) -> "Endpoint":
        return cls(abs(signed_block), REVERSE if signed_block < 0 else FORWARD)

    def flipped(self) -> "Endpoint":
        return Endpoint(self.block, -self.orientation)

    def signed(self) -> int:
        return self.block * self.orientation

    def is_terminus(self) -> bool:
        return self.block == TERMINUS

    def label(self) -> str:
        return f"{self.block} {'+' if self.orientation == FORWARD else '-'}"


class Edge:
    """
    Adjacency ``head -> tail`` with its weight.

    ``score1`` is the score read for this direction, ``score2`` the score of
    the same adjacency read from the other strand.
    """

    __slots__ = ("head", "tail", "weight", "score1", "score2")

    def __init__(
        self,
        head: Endpoint,
        tail: Endpoint,
        weight: float = 0.0,
        score1: float = 0.0,
        score2: float = 0.0,
    ):
        self.head = head
        self.tail = tail
        self.weight = weight
        self.score1 = score1
        self.score2 = score2

    @classmethod
    def from_blocks(cls, first: int, second: int, weight: float = 0.0) -> "Edge":
        return cls(Endpoint.from_signed(first), Endpoint.from_signed(second), weight, weight)

    def reverse(self) -> "Edge":
        """The same adjacency read on the other strand: ends swapped and flipped."""
        return Edge(
            self.tail.flipped(),
            self.head.flipped(),
            self.weight,
            self.score1,
            self.score2,
        )

    def key(self) -> EdgeKey:
        return (self.head.block, self.head.orientation, self.tail.block, self.tail.orientation)

    def used_keys(self) -> List[int]:
        """
        Identifiers of the two block ends this edge consumes.

        ``-b`` is the right end of block ``b`` and ``b`` its left end, as seen
        in the forward orientation. Termini are never consumed.
        """
        keys: List[int] = []
        if not self.head.is_terminus():
            keys.append(-self.head.block if self.head.orientation == FORWARD else self.head.block)
        if not self.tail.is_terminus():
            keys.append(self.tail.block if self.tail.orientation == FORWARD else -self.tail.block)
        return keys

    def describe(self) -> str:
        return (
            f"{self.head.label()}\t{self.tail.label()}\t"
            f"{self.weight:.6f}\t{self.score1:.6f}\t{self.score2:.6f}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return self.key() == other.key() and self.weight == other.weight

    def __hash__(self) -> int:
        return hash(self.key())

    def __repr__(self) -> str:
        return f"Edge({self.head.signed()} -> {self.tail.signed()}, w={self.weight:g})"


def _meets(end: Endpoint, other: Endpoint) -> bool:
    """True if two path ends can be joined; never through a terminus."""
    return end == other and not end.is_terminus()


def _closes_cycle(front: Endpoint, back: Endpoint) -> bool:
    return front == back and not front.is_terminus()


class Path:
    """Ordered edges of one growing fragment, extendable at both ends."""

    def __init__(self, edges: Iterable[Edge] = ()):
        self.edges: Deque[Edge] = deque(edges)

    @property
    def front(self) -> Endpoint:
        return self.edges[0].head

    @property
    def back(self) -> Endpoint:
        return self.edges[-1].tail

    def reversed(self) -> "Path":
        return Path(edge.reverse() for edge in reversed(self.edges))

    def prepend(self, edge: Edge) -> None:
        self.edges.appendleft(edge)

    def append(self, edge: Edge) -> None:
        self.edges.append(edge)

    def join(self, other: "Path", at_front: bool) -> None:
        if at_front:
            self.edges.extendleft(reversed(other.edges))
        else:
            self.edges.extend(other.edges)

    def is_cycle(self) -> bool:
        return _closes_cycle(self.front, self.back)

    def blocks(self) -> List[int]:
        """Signed block sequence with the terminus symbols left out."""
        blocks = [edge.head.signed() for edge in self.edges if not edge.head.is_terminus()]
        if not self.back.is_terminus():
            blocks.append(self.back.signed())
        return blocks

    def __len__(self) -> int:
        return len(self.edges)

    def __iter__(self) -> Iterator[Edge]:
        return iter(self.edges)

    def __repr__(self) -> str:
        return f"Path({' '.join(str(b) for b in self.blocks())})"


class InsertResult(Enum):
    SUCCESS = "success"
    NO_MATCH = "no_match"
    CYCLE = "cycle"


@dataclass
class AncestralFragment:
    """One assembled APCF, numbered from 1 in output order."""

    number: int
    blocks: List[int]
    edges: List[Edge]


# ===================================================================
# 1. SCORE TABLE
# ===================================================================


def score_table(triples: Iterable[Tuple[int, int, float]]) -> ScoreTable:
    """
    Register every ``(block1, block2, score)`` triple in both directions.

    ``b1 -> b2`` is the same adjacency as ``-b2 -> -b1``; later triples
    overwrite earlier ones for the same directed adjacency.
    """
    scores: ScoreTable = {}
    for first, second, score in triples:
        forward = Edge.from_blocks(first, second)
        scores[forward.key()] = score
        scores[forward.reverse().key()] = score
    return scores


def count_blocks(scores: ScoreTable) -> int:
    return max((max(key[0], key[2]) for key in scores), default=0)


def candidate_edges(scores: ScoreTable) -> List[Edge]:
    """
    Positive-score edges between different blocks, heaviest first.

    Equal weights are ordered by ``(block1, orientation1, block2, orientation2)``.
    """
    edges: List[Edge] = []
    for key, score in scores.items():
        head_block, head_dir, tail_block, tail_dir = key
        if head_block == tail_block or score <= 0:
            continue
        edge = Edge(Endpoint(head_block, head_dir), Endpoint(tail_block, tail_dir), score, score)
        edge.score2 = scores.get(edge.reverse().key(), 0.0)
        edges.append(edge)
    edges.sort(key=lambda e: (-e.weight, e.key()))
    return edges


# ===================================================================
# 2. GREEDY PATH CONSTRUCTION
# ===================================================================


class PathBuilder:
    def __init__(self, min_weight: float = 0.0):
        self.min_weight = min_weight
        self.paths: Dict[int, Path] = {}
        self.used: Set[int] = set()
        self._next_id = 1

    def is_used(self, edge: Edge) -> bool:
        return any(key in self.used for key in edge.used_keys())

    def _mark_used(self, edge: Edge) -> None:
        self.used.update(edge.used_keys())

    def _extend(self, path: Path, edge: Edge, at_front: bool) -> InsertResult:
        front = edge.head if at_front else path.front
        back = path.back if at_front else edge.tail
        if _closes_cycle(front, back):
            return InsertResult.CYCLE
        if at_front:
            path.prepend(edge)
        else:
            path.append(edge)
        return InsertResult.SUCCESS

    def _insert(self, path: Path, edge: Edge) -> InsertResult:
        """Try the four ways ``edge`` can continue ``path``; the first match decides."""
        if _meets(path.front, edge.head.flipped()):
            return self._extend(path, edge.reverse(), at_front=True)
        if _meets(path.front, edge.tail):
            return self._extend(path, edge, at_front=True)
        if _meets(path.back, edge.head):
            return self._extend(path, edge, at_front=False)
        if _meets(path.back, edge.tail.flipped()):
            return self._extend(path, edge.reverse(), at_front=False)
        return InsertResult.NO_MATCH

    @staticmethod
    def _merge_piece(path: Path, other: Path) -> Optional[Tuple[bool, Path]]:
        """Where ``other`` fits onto ``path`` and in which direction, if at all."""
        if _meets(path.front, other.front.flipped()):
            return True, other.reversed()
        if _meets(path.front, other.back):
            return True, other
        if _meets(path.back, other.front):
            return False, other
        if _meets(path.back, other.back.flipped()):
            return False, other.reversed()
        return None

    def _merge(self, path_id: int) -> Optional[int]:
        """Merge one other path into ``path_id``; returns the id that was absorbed."""
        path = self.paths[path_id]
        for other_id, other in self.paths.items():
            if other_id == path_id:
                continue
            fit = self._merge_piece(path, other)
            if fit is None:
                continue
            at_front, piece = fit
            front = piece.front if at_front else path.front
            back = path.back if at_front else piece.back
            if _closes_cycle(front, back):
                logger.debug("Skipping cycle-closing merge of APCF %d into %d", other_id, path_id)
                continue
            path.join(piece, at_front)
            del self.paths[other_id]
            return other_id
        return None

    def add_edge(self, edge: Edge) -> bool:
        """Place one edge; returns False if it was skipped or rejected."""
        if edge.weight < self.min_weight or self.is_used(edge):
            return False

        extended: Optional[int] = None
        for path_id, path in self.paths.items():
            result = self._insert(path, edge)
            if result is InsertResult.CYCLE:
                logger.debug("Rejected cycle-closing edge %s", edge.describe())
                return False
            if result is InsertResult.SUCCESS:
                extended = path_id
                break

        self._mark_used(edge)
        if extended is None:
            self.paths[self._next_id] = Path([edge])
            self._next_id += 1
        else:
            self._merge(extended)
        return True

    def build(self, edges: Iterable[Edge]) -> List[Path]:
        accepted = 0
        for edge in edges:
            if edge.weight < self.min_weight:
                # remaining edges are lighter still
                break
            if self.add_edge(edge):
                accepted += 1
        logger.debug("Accepted %d edges into %d paths", accepted, len(self.paths))
        return list(self.paths.values())

    def fragments(self) -> List[AncestralFragment]:
        return [
            AncestralFragment(number=number, blocks=path.blocks(), edges=list(path))
            for number, path in enumerate(self.paths.values(), start=1)
        ]


def build_fragments(scores: ScoreTable, min_weight: float = 0.0) -> List[AncestralFragment]:
    """Greedily assemble the scored adjacencies into APCFs."""
    builder = PathBuilder(min_weight)
    builder.build(candidate_edges(scores))
    fragments = builder.fragments()
    logger.info("Built %d APCFs", len(fragments))
    return fragments
