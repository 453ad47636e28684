import logging
import math
from pathlib import Path
from typing import IO, Iterable, List, Tuple, Union

from deschrambler.exceptions import ConsistencyError, ParseError
from deschrambler.likelihood import ScoredAdjacency
from deschrambler.parser.newick_parser import parse_newick
from deschrambler.path_builder import AncestralFragment
from deschrambler.tree import PhyloTree

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ScoreTriple = Tuple[int, int, float]

ANCESTOR_HEADER = "ANCESTOR"


def _read_lines(path: PathLike, what: str) -> List[str]:
    try:
        with open(path) as f:
            return f.readlines()
    except OSError as e:
        raise ConsistencyError(f"cannot read {what} {path}: {e}")


def read_newick(path: PathLike, alpha: float = 1.0, default_length: float = 0.0) -> PhyloTree:
    newick_string = "".join(_read_lines(path, "tree file"))
    return parse_newick(
        newick_string, alpha=alpha, default_length=default_length, source=str(path)
    )


# ---------------------------------------------------------------------------
# Adjacency probabilities
# ---------------------------------------------------------------------------


def dump_adjacency_probabilities(
    total_blocks: int, scored: Iterable[ScoredAdjacency], f: IO[str]
) -> None:
    f.write(f"#{total_blocks}\n")
    for adjacency in scored:
        f.write(f"{adjacency.first}\t{adjacency.second}\t{adjacency.probability:e}\n")


def write_adjacency_probabilities(
    path: PathLike, total_blocks: int, scored: List[ScoredAdjacency]
) -> None:
    with open(path, mode="w") as f:
        dump_adjacency_probabilities(total_blocks, scored, f)
    logger.info("Wrote %d adjacency probabilities to %s", len(scored), path)


def parse_adjacency_scores(lines: Iterable[str], source: str = "<string>") -> List[ScoreTriple]:
    """Parse ``block1 block2 score`` lines; ``#`` lines are headers or comments."""
    triples: List[ScoreTriple] = []
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) != 3:
            raise ParseError(
                f"expected 3 fields, found {len(fields)} in '{line}'", source, line_no
            )
        try:
            first, second, score = int(fields[0]), int(fields[1]), float(fields[2])
        except ValueError:
            raise ParseError(f"cannot parse score line '{line}'", source, line_no)
        if not math.isfinite(score):
            raise ParseError(f"score is not a finite number in '{line}'", source, line_no)
        triples.append((first, second, score))
    return triples


def read_adjacency_scores(path: PathLike) -> List[ScoreTriple]:
    return parse_adjacency_scores(_read_lines(path, "score file"), source=str(path))


# ---------------------------------------------------------------------------
# APCFs
# ---------------------------------------------------------------------------


def dump_fragments(num_blocks: int, fragments: Iterable[AncestralFragment], f: IO[str]) -> None:
    f.write(f">{ANCESTOR_HEADER}\t{num_blocks}\n")
    for fragment in fragments:
        f.write(f"# APCF {fragment.number}\n")
        f.write(" ".join([str(b) for b in fragment.blocks] + ["$"]) + "\n")


def dump_joins(fragments: Iterable[AncestralFragment], f: IO[str]) -> None:
    for fragment in fragments:
        for edge in fragment.edges:
            f.write(f"{edge.head.signed()}\t{edge.tail.signed()}\t{edge.weight:g}\n")


def write_fragments(path: PathLike, num_blocks: int, fragments: List[AncestralFragment]) -> None:
    with open(path, mode="w") as f:
        dump_fragments(num_blocks, fragments, f)


def write_joins(path: PathLike, fragments: List[AncestralFragment]) -> None:
    with open(path, mode="w") as f:
        dump_joins(fragments, f)
