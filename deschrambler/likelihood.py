"""
Posterior probabilities of ancestral adjacencies.

For every possible symbol pair ``(i, j)`` the engine computes the likelihood
of the leaf observations given that ``i`` precedes ``j`` at the root, under a
symmetric continuous-time model on ``2T - 1`` alternative predecessors. The
raw likelihoods are collected column-wise (predecessor table), mirrored into
the successor table, and each table is normalised into posteriors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple, TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike

from deschrambler.exceptions import ConsistencyError
from deschrambler.sparse import SparseMatrix
from deschrambler.symbols import SymbolSpace

if TYPE_CHECKING:
    from deschrambler.inference import InferenceContext

logger = logging.getLogger(__name__)


def transition_probability(n: int, distance: ArrayLike, same_state: bool) -> np.ndarray:
    """
    Probability of keeping (or changing) the predecessor of a block end.

    With ``k = 2n - 1``::

        same:      1/k + (k-1)/k * exp(-k t)
        different: 1/k -     1/k * exp(-k t)

    Works element-wise on arrays of distances. The result is clipped to
    ``[0, 1]`` so that underflow for very long branches cannot leave the
    unit interval.

    Raises:
        ConsistencyError: if ``n`` is not positive
    """
    if n <= 0:
        raise ConsistencyError(f"Transition model needs at least one block, got n={n}")
    k = 2.0 * n - 1.0
    decay = np.exp(-k * np.asarray(distance, dtype=float))
    if same_state:
        p = 1.0 / k + (k - 1.0) / k * decay
    else:
        p = 1.0 / k - 1.0 / k * decay
    return np.clip(p, 0.0, 1.0)


@dataclass
class AdjacencyPosteriors:
    """Raw likelihood tables and their normalised posteriors."""

    space: SymbolSpace
    predecessor_likelihood: SparseMatrix
    successor_likelihood: SparseMatrix
    predecessor_posterior: SparseMatrix
    successor_posterior: SparseMatrix

    def probability(self, i: int, j: int) -> float:
        """Final score of ``(i, j)``: predecessor posterior times successor posterior."""
        return self.predecessor_posterior.get(i, j) * self.successor_posterior.get(i, j)


@dataclass(frozen=True)
class ScoredAdjacency:
    """Adjacency between signed blocks (``0`` = chromosome end) and its probability."""

    first: int
    second: int
    probability: float


class AdjacencyLikelihood:
    """
    Memoised likelihood evaluation over a tree rooted at the designated ancestor.

    Two caches live as long as the engine: transition probabilities keyed by
    ``(node, same_state)`` and subtree likelihoods keyed by ``(node, i, j)``.
    A column ``j`` is filled leaves first over the subtree, without recursion.
    """

    def __init__(self, context: "InferenceContext"):
        self.tree = context.tree
        self.space = context.space
        self.presence = context.presence
        self._transition_cache: Dict[Tuple[int, bool], float] = {}
        self._likelihood_cache: Dict[Tuple[int, int, int], float] = {}
        self._scored_columns: Set[int] = set()
        self._subtree_orders: Dict[int, List[int]] = {}

    # ------------------------------------------------------------------------
    # Subtree likelihoods
    # ------------------------------------------------------------------------
    def transition(self, node: int, i: int, s: int) -> float:
        """Probability that predecessor ``i`` above ``node`` becomes ``s`` at ``node``."""
        key = (node, i == s)
        value = self._transition_cache.get(key)
        if value is None:
            value = float(
                transition_probability(
                    self.space.total_blocks, self.tree[node].distance, i == s
                )
            )
            self._transition_cache[key] = value
        return value

    def likelihood(self, node: int, i: int, j: int) -> float:
        """Likelihood of the leaves below ``node`` given ``(i, j)`` at ``node``."""
        key = (node, i, j)
        value = self._likelihood_cache.get(key)
        if value is None:
            self._fill_column(node, j)
            value = self._likelihood_cache.get(key)
        if value is None:
            # ``i`` is not a possible predecessor of ``j``; the children are filled
            value = self._subtree_likelihood(node, i, j)
            self._likelihood_cache[key] = value
        return value

    def _fill_column(self, top: int, j: int) -> None:
        """Cache ``(node, s, j)`` for every node below ``top`` and every possible ``s``, leaves first."""
        order = self._subtree_orders.get(top)
        if order is None:
            order = self.tree.subtree(top)
            self._subtree_orders[top] = order
        predecessors = self.presence.universe.predecessors(j)
        cache = self._likelihood_cache
        for node in reversed(order):
            for s in predecessors:
                key = (node, s, j)
                if key not in cache:
                    cache[key] = self._subtree_likelihood(node, s, j)

    def _subtree_likelihood(self, node: int, i: int, j: int) -> float:
        tree_node = self.tree[node]
        if tree_node.is_leaf():
            leaf = self.presence.leaves.get(node)
            if leaf is None:
                return 1.0
            return leaf.value(i, j)

        predecessors = self.presence.universe.predecessors(j)
        cache = self._likelihood_cache
        result = 1.0
        # a missing child contributes a factor of 1
        for child in tree_node.child_indices():
            side = 0.0
            for s in predecessors:
                side += self.transition(child, i, s) * cache[(child, s, j)]
            result *= side
        return result

    # ------------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------------
    def predecessor_table(self) -> SparseMatrix:
        """Likelihood of every possible ``(i, j)`` with ``j`` a block end, at the ancestor."""
        table = SparseMatrix("predecessor_likelihood")
        ancestor = self.tree.ancestor
        end = self.space.end
        for i, j in self.presence.universe.column_pairs():
            if j == end:
                continue
            self._scored_columns.add(j)
            value = self.likelihood(ancestor, i, j)
            if value > 0:
                table.set(i, j, value)
        logger.debug(
            "Likelihood caches: %d subtree entries, %d transition entries",
            len(self._likelihood_cache),
            len(self._transition_cache),
        )
        return table

    def successor_table(self, predecessor: SparseMatrix) -> SparseMatrix:
        """Mirror every predecessor entry ``(i, j)`` into ``(mirror(j), mirror(i))``."""
        table = SparseMatrix("successor_likelihood")
        mirror = self.space.mirror
        for (i, j), value in predecessor.items():
            if value > 0:
                table.set(mirror(j), mirror(i), value)
        return table

    def normalize(
        self, predecessor: SparseMatrix, successor: SparseMatrix
    ) -> Tuple[SparseMatrix, SparseMatrix]:
        """
        Column-normalise the predecessor table and row-normalise the successor table.

        The chromosome-start row of the successor posterior and the
        chromosome-end column of the predecessor posterior are copied across
        from the other table instead of being normalised on their own.

        Raises:
            ConsistencyError: if a scored column (or its mirrored row) sums to zero
        """
        start, end = self.space.start, self.space.end
        universe = self.presence.universe
        predecessor_posterior = SparseMatrix("predecessor_posterior")
        successor_posterior = SparseMatrix("successor_posterior")

        for j in range(start + 1, end):
            column = predecessor.column(j)
            total = predecessor.column_sum(j)
            if total <= 0:
                if j in self._scored_columns:
                    raise ConsistencyError(
                        f"Predecessor likelihoods of block end {self.space.to_block(j)} sum to zero"
                    )
                continue
            for i, value in column.items():
                predecessor_posterior.set(i, j, value / total)

        scored_rows = {self.space.mirror(j) for j in self._scored_columns}
        for i in range(start + 1, end):
            row = successor.row(i)
            total = successor.row_sum(i)
            if total <= 0:
                if i in scored_rows:
                    raise ConsistencyError(
                        f"Successor likelihoods of block end {self.space.to_block(i)} sum to zero"
                    )
                continue
            for j, value in row.items():
                successor_posterior.set(i, j, value / total)

        for j in range(start + 1, end):
            if (start, j) in universe:
                successor_posterior.set(start, j, predecessor_posterior.get(start, j))
        for i in range(start + 1, end):
            if (i, end) in universe:
                predecessor_posterior.set(i, end, successor_posterior.get(i, end))

        return predecessor_posterior, successor_posterior

    def run(self) -> AdjacencyPosteriors:
        predecessor = self.predecessor_table()
        successor = self.successor_table(predecessor)
        predecessor_posterior, successor_posterior = self.normalize(predecessor, successor)
        return AdjacencyPosteriors(
            space=self.space,
            predecessor_likelihood=predecessor,
            successor_likelihood=successor,
            predecessor_posterior=predecessor_posterior,
            successor_posterior=successor_posterior,
        )

    def score_adjacencies(self, posteriors: AdjacencyPosteriors) -> List[ScoredAdjacency]:
        """One score per possible pair, ordered by first then second symbol."""
        scored: List[ScoredAdjacency] = []
        space = self.space
        for i, j in self.presence.universe.pairs():
            if space.is_artificial(i) and space.is_artificial(j):
                continue
            scored.append(
                ScoredAdjacency(
                    first=space.to_block(i),
                    second=space.to_block(j),
                    probability=posteriors.probability(i, j),
                )
            )
        return scored
