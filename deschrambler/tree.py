from __future__ import annotations

import logging
from typing import List, Optional, Set, TYPE_CHECKING

from deschrambler.exceptions import ConsistencyError

if TYPE_CHECKING:
    from deschrambler.genome import Genome

logger = logging.getLogger(__name__)

LEFT = 0
RIGHT = 1


class PhyloNode:
    """
    Species or ancestor node stored in a :class:`PhyloTree` arena.

    Links to other nodes are arena indices, never object references, so every
    structural change is a plain field assignment that can be checked with
    :meth:`PhyloTree.validate`.

    ``distance`` is the branch length towards the parent already multiplied
    by the model rate ``alpha``.
    """

    __slots__ = (
        "index",
        "name",
        "children",
        "parent",
        "distance",
        "outgroup",
        "genome",
    )

    index: int
    name: str
    children: List[Optional[int]]
    parent: Optional[int]
    distance: float
    outgroup: bool
    genome: Optional["Genome"]

    def __init__(self, index: int, name: str = "", distance: float = 0.0):
        self.index = index
        self.name = name
        self.children = [None, None]
        self.parent = None
        self.distance = distance
        self.outgroup = False
        self.genome = None

    @property
    def left(self) -> Optional[int]:
        return self.children[LEFT]

    @property
    def right(self) -> Optional[int]:
        return self.children[RIGHT]

    def is_leaf(self) -> bool:
        return self.children[LEFT] is None and self.children[RIGHT] is None

    def child_indices(self) -> List[int]:
        return [c for c in self.children if c is not None]

    def __repr__(self) -> str:
        return f"PhyloNode({self.index}, '{self.name}')"


class PhyloTree:
    """
    Rooted binary tree held in a flat node table.

    The table doubles as the flat list of all nodes that whole-tree scans
    iterate over; rerooting only rewrites index fields and may append one
    synthetic root.
    """

    def __init__(self) -> None:
        self.nodes: List[PhyloNode] = []
        self.root: Optional[int] = None
        self.ancestor: Optional[int] = None
        self._traverse_cache: Optional[List[int]] = None

    # ------------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------------
    def add_node(self, name: str = "", distance: float = 0.0) -> int:
        index = len(self.nodes)
        self.nodes.append(PhyloNode(index, name=name, distance=distance))
        self.invalidate_caches()
        return index

    def attach(self, parent: int, child: int, slot: int) -> None:
        """Make ``child`` the ``slot`` child of ``parent``."""
        parent_node = self.nodes[parent]
        if parent_node.children[slot] is not None:
            raise ConsistencyError(
                f"Child slot {slot} of node '{parent_node.name}' is already occupied"
            )
        parent_node.children[slot] = child
        self.nodes[child].parent = parent
        self.invalidate_caches()

    def detach(self, child: int) -> int:
        """Cut ``child`` from its parent and return the slot it occupied."""
        node = self.nodes[child]
        if node.parent is None:
            raise ConsistencyError(f"Node '{node.name}' has no parent to detach from")
        parent_node = self.nodes[node.parent]
        slot = RIGHT if parent_node.children[RIGHT] == child else LEFT
        if parent_node.children[slot] != child:
            raise ConsistencyError(
                f"Node '{node.name}' is not a child of '{parent_node.name}'"
            )
        parent_node.children[slot] = None
        node.parent = None
        self.invalidate_caches()
        return slot

    def invalidate_caches(self) -> None:
        self._traverse_cache = None

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> PhyloNode:
        return self.nodes[index]

    def traverse(self) -> List[int]:
        """Pre-order (node, left, right) indices of all nodes reachable from the root."""
        if self._traverse_cache is not None:
            return self._traverse_cache
        order = self.subtree(self.root) if self.root is not None else []
        self._traverse_cache = order
        return order

    def subtree(self, top: int) -> List[int]:
        """Pre-order indices of ``top`` and everything below it."""
        order: List[int] = []
        stack = [top]
        while stack:
            index = stack.pop()
            order.append(index)
            node = self.nodes[index]
            for child in (node.children[RIGHT], node.children[LEFT]):
                if child is not None:
                    stack.append(child)
        return order

    def leaves(self) -> List[int]:
        return [i for i in self.traverse() if self.nodes[i].is_leaf()]

    def find(self, name: str) -> Optional[int]:
        for index in self.traverse():
            if self.nodes[index].name == name:
                return index
        return None

    def path_to_root(self, index: int) -> List[int]:
        """Indices from ``index`` up to the root, both inclusive."""
        path: List[int] = []
        current: Optional[int] = index
        while current is not None:
            path.append(current)
            if len(path) > len(self.nodes):
                raise ConsistencyError("Parent links form a cycle")
            current = self.nodes[current].parent
        return path

    # ------------------------------------------------------------------------
    # Species bookkeeping
    # ------------------------------------------------------------------------
    def classify_outgroups(self) -> None:
        """Flag every leaf that does not descend from the designated ancestor."""
        if self.ancestor is None:
            raise ConsistencyError("Tree has no designated ancestor")
        below = set(self.subtree(self.ancestor))
        for index in self.leaves():
            self.nodes[index].outgroup = index not in below
        logger.debug(
            "%d ingroup leaves, outgroup leaves: %s",
            len(self.ingroup_leaves()),
            [self.nodes[i].name for i in self.outgroup_leaves()],
        )

    def ingroup_leaves(self) -> List[int]:
        return [i for i in self.leaves() if not self.nodes[i].outgroup]

    def outgroup_leaves(self) -> List[int]:
        return [i for i in self.leaves() if self.nodes[i].outgroup]

    # ------------------------------------------------------------------------
    # Structural checks
    # ------------------------------------------------------------------------
    def validate(self) -> None:
        """
        Check the structural invariants of the node table.

        Raises ConsistencyError unless there is exactly one root, the
        parent/child links agree in both directions, no node is reachable twice
        and every node in the table is reachable from the root.
        """
        roots = [n.index for n in self.nodes if n.parent is None]
        if len(roots) != 1 or roots[0] != self.root:
            raise ConsistencyError(
                f"Tree must have exactly one root, found {[self.nodes[r].name for r in roots]}"
            )

        seen = self.check_subtree(self.root)
        if len(seen) != len(self.nodes):
            missing = [n.name for n in self.nodes if n.index not in seen]
            raise ConsistencyError(f"Nodes not reachable from the root: {missing}")

    def check_subtree(self, top: int) -> Set[int]:
        """Check links below ``top`` and return the indices reachable from it."""
        seen: Set[int] = set()
        stack = [top]
        while stack:
            index = stack.pop()
            if index in seen:
                raise ConsistencyError(
                    f"Node '{self.nodes[index].name}' is reachable twice"
                )
            seen.add(index)
            node = self.nodes[index]
            if node.children[LEFT] is not None and node.children[LEFT] == node.children[RIGHT]:
                raise ConsistencyError(f"Node '{node.name}' holds the same child twice")
            for child in node.child_indices():
                if self.nodes[child].parent != index:
                    raise ConsistencyError(
                        f"Node '{self.nodes[child].name}' does not point back to "
                        f"its parent '{node.name}'"
                    )
                stack.append(child)
        return seen

    def describe(self) -> str:
        """One line per node: name, scaled distance and children."""
        lines: List[str] = []
        for index in self.traverse():
            node = self.nodes[index]
            children = ", ".join(
                f"{self.nodes[c].name}({self.nodes[c].distance:.4f})"
                for c in node.child_indices()
            )
            marker = " *" if index == self.ancestor else ""
            lines.append(f"{node.name}({node.distance:.4f}){marker} -> [{children}]")
        return "\n".join(lines)

    def __repr__(self) -> str:
        root = self.nodes[self.root].name if self.root is not None else None
        return f"PhyloTree(nodes={len(self.nodes)}, root='{root}')"
