from typing import Dict, Iterator, Mapping, Tuple

_EMPTY: Mapping[int, float] = {}


class SparseMatrix:
    """
    Symbol-pair -> value table that only materialises the entries it is given.

    Entries are indexed by row and by column so that both column sums (for the
    predecessor table) and row sums (for the successor table) only touch the
    stored entries.
    """

    __slots__ = ("name", "_rows", "_cols")

    def __init__(self, name: str = ""):
        self.name = name
        self._rows: Dict[int, Dict[int, float]] = {}
        self._cols: Dict[int, Dict[int, float]] = {}

    def set(self, i: int, j: int, value: float) -> None:
        self._rows.setdefault(i, {})[j] = value
        self._cols.setdefault(j, {})[i] = value

    def get(self, i: int, j: int, default: float = 0.0) -> float:
        return self._rows.get(i, _EMPTY).get(j, default)

    def __contains__(self, pair: Tuple[int, int]) -> bool:
        i, j = pair
        return j in self._rows.get(i, _EMPTY)

    def row(self, i: int) -> Mapping[int, float]:
        return self._rows.get(i, _EMPTY)

    def column(self, j: int) -> Mapping[int, float]:
        return self._cols.get(j, _EMPTY)

    def row_sum(self, i: int) -> float:
        return sum(self.row(i).values())

    def column_sum(self, j: int) -> float:
        return sum(self.column(j).values())

    def items(self) -> Iterator[Tuple[Tuple[int, int], float]]:
        for i in sorted(self._rows):
            row = self._rows[i]
            for j in sorted(row):
                yield (i, j), row[j]

    def __len__(self) -> int:
        return sum(len(row) for row in self._rows.values())

    def __repr__(self) -> str:
        return f"SparseMatrix('{self.name}', nnz={len(self)})"
