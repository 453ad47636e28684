"""
In-place rerooting at the designated ancestor.

The likelihood recursion evaluates adjacencies at the root, so a tree whose
designated ancestor is not its root is rearranged before inference:

1. every branch on the path from the ancestor to the old root changes
   direction, and each flipped node takes over the distance of the branch it
   now hangs from;
2. the ancestor is cut from its parent and hung below a new synthetic root
   with distance zero;
3. the flipped remainder of the tree becomes the second child of that root.

All changes are index assignments on the :class:`PhyloTree` node table, and
the structure is checked after each phase.
"""

import logging
from typing import List

from deschrambler.tree import LEFT, RIGHT, PhyloTree

logger = logging.getLogger(__name__)

SYNTHETIC_ROOT_NAME = "NEWROOT"


# =============================================================================
# HELPER FUNCTIONS FOR TREE STRUCTURE MANIPULATION
# =============================================================================


def _shift_branch_lengths(tree: PhyloTree, path: List[int]) -> None:
    """
    Move distances one step down the path.

    ``path`` runs from a node up to the root. Each node on it except the first
    receives the distance of the node below it, assigned from the root
    downwards so that every value is read before it is overwritten.
    """
    for below, above in reversed(list(zip(path, path[1:]))):
        tree[above].distance = tree[below].distance


def _flip_upward(tree: PhyloTree, node: int, check: bool = True) -> int:
    """
    Reverse every parent/child link between ``node`` and the current root.

    Each node on the path receives its former parent in whichever child slot
    is vacant (right first), so ``node`` must have a free slot and the old
    root keeps only its off-path child.

    Returns:
        ``node``, now the top of the flipped subtree.
    """
    path = tree.path_to_root(node)
    if len(path) == 1:
        return node

    for child in path[:-1]:
        tree.detach(child)

    for below, above in zip(path, path[1:]):
        slot = RIGHT if tree[below].children[RIGHT] is None else LEFT
        tree.attach(below, above, slot)
        if check:
            tree.check_subtree(below)

    return node


# =============================================================================
# CORE REROOTING OPERATIONS
# =============================================================================


def reroot_at_ancestor(tree: PhyloTree, check: bool = True) -> PhyloTree:
    """
    Reroot ``tree`` in place so that its root sits on the designated ancestor.

    A tree already rooted at its designated ancestor is returned unchanged.

    Args:
        tree: Parsed tree with ``tree.ancestor`` set
        check: Validate the node table after every mutation phase

    Returns:
        The same tree object, rooted at a synthetic ``NEWROOT`` node whose
        children are the designated ancestor (distance 0) and the flipped rest
        of the tree.
    """
    ancestor = tree.ancestor
    if tree[ancestor].parent is None:
        logger.debug("Tree already rooted at '%s'", tree[ancestor].name)
        return tree

    logger.debug("Rerooting tree at '%s'", tree[ancestor].name)
    path = tree.path_to_root(ancestor)
    _shift_branch_lengths(tree, path)
    tree[ancestor].distance = 0.0

    remainder = tree[ancestor].parent
    slot = tree.detach(ancestor)
    new_root = tree.add_node(name=SYNTHETIC_ROOT_NAME, distance=0.0)
    tree.attach(new_root, ancestor, slot)
    if check:
        tree.check_subtree(new_root)

    _flip_upward(tree, remainder, check=check)
    tree.attach(new_root, remainder, LEFT if slot == RIGHT else RIGHT)

    tree.root = new_root
    tree.ancestor = new_root
    if check:
        tree.validate()
    logger.debug("Rerooted tree:\n%s", tree.describe())
    return tree
