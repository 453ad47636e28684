"""
Adjacency state space.

With ``T`` ancestral blocks every block end is a symbol:

* ``0`` (``A``): artificial chromosome start
* ``1..T``: block read forward
* ``T+1..2T``: block read in reverse, ``b + T`` for block ``-b``
* ``2T+1`` (``Z``): artificial chromosome end

An adjacency ``(i, j)`` seen on one strand is the adjacency
``(mirror(j), mirror(i))`` seen on the other, so every observation is stored
as that pair of symbol pairs.
"""

from typing import Tuple

from deschrambler.exceptions import ConsistencyError

START = 0

SymbolPair = Tuple[int, int]


class SymbolSpace:
    __slots__ = ("total_blocks",)

    def __init__(self, total_blocks: int):
        if total_blocks <= 0:
            raise ConsistencyError(
                f"Total number of blocks must be positive, got {total_blocks}"
            )
        self.total_blocks = total_blocks

    @property
    def start(self) -> int:
        return START

    @property
    def end(self) -> int:
        return 2 * self.total_blocks + 1

    @property
    def size(self) -> int:
        """Number of symbols including both artificial ones."""
        return 2 * self.total_blocks + 2

    def is_artificial(self, symbol: int) -> bool:
        return symbol == START or symbol == self.end

    def mirror(self, symbol: int) -> int:
        if symbol == START:
            return self.end
        if symbol == self.end:
            return START
        if symbol <= self.total_blocks:
            return symbol + self.total_blocks
        return symbol - self.total_blocks

    def to_symbol(self, block: int) -> int:
        """Symbol of a signed block identifier (``-b`` maps to ``b + T``)."""
        magnitude = abs(block)
        if magnitude == 0 or magnitude > self.total_blocks:
            raise ConsistencyError(
                f"Block {block} is outside 1..{self.total_blocks}"
            )
        return block if block > 0 else magnitude + self.total_blocks

    def to_block(self, symbol: int) -> int:
        """Signed block identifier of a symbol; both artificial symbols give ``0``."""
        if self.is_artificial(symbol):
            return 0
        if symbol <= self.total_blocks:
            return symbol
        return -(symbol - self.total_blocks)

    def encode_adjacency(self, first: int, second: int) -> Tuple[SymbolPair, SymbolPair]:
        """
        Symbol pairs for the observed adjacency ``first -> second``.

        ``0`` on the left means ``second`` opens a chromosome, ``0`` on the
        right means ``first`` closes one.

        Returns:
            The observed pair and its mirror.
        """
        if first == 0 and second == 0:
            raise ConsistencyError("An adjacency needs at least one block")
        if first == 0:
            j = self.to_symbol(second)
            return (START, j), (self.mirror(j), self.end)
        if second == 0:
            i = self.to_symbol(first)
            return (i, self.end), (START, self.mirror(i))
        i = self.to_symbol(first)
        j = self.to_symbol(second)
        return (i, j), (self.mirror(j), self.mirror(i))

    def mirror_pair(self, pair: SymbolPair) -> SymbolPair:
        i, j = pair
        return self.mirror(j), self.mirror(i)

    def __repr__(self) -> str:
        return f"SymbolSpace(T={self.total_blocks})"
