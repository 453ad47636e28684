import pytest

from deschrambler.parser.newick_parser import parse_newick
from deschrambler.rooting import SYNTHETIC_ROOT_NAME, _flip_upward, reroot_at_ancestor
from deschrambler.tree import LEFT, RIGHT, PhyloTree


def leaf_distance(tree, a, b):
    """Sum of branch lengths between two nodes."""
    path_a = tree.path_to_root(tree.find(a))
    path_b = tree.path_to_root(tree.find(b))
    common = next(n for n in path_a if n in path_b)
    total = 0.0
    for path in (path_a, path_b):
        for index in path[: path.index(common)]:
            total += tree[index].distance
    return total


def make_simple_tree():
    #   A
    #  / \
    # B   C
    tree = PhyloTree()
    a = tree.add_node("A")
    b = tree.add_node("B", distance=1.0)
    c = tree.add_node("C", distance=2.0)
    tree.attach(a, b, LEFT)
    tree.attach(a, c, RIGHT)
    tree.root = a
    tree.ancestor = a
    return tree, a, b, c


def test_flip_upward_at_leaf():
    tree, a, b, c = make_simple_tree()
    tree.detach(c)
    tree.root = b

    top = _flip_upward(tree, b)

    assert top == b
    assert tree[b].parent is None
    assert tree[b].children == [None, a]
    assert tree[a].children == [None, None]
    assert tree[a].parent == b
    tree.check_subtree(b)


def test_flip_upward_at_root_is_noop():
    tree, a, b, c = make_simple_tree()
    assert _flip_upward(tree, a) == a
    assert tree[a].children == [b, c]
    tree.validate()


def test_reroot_one_level_below_root():
    tree = parse_newick("((A:1,B:2)@:3,(C:4,D:5):6);")
    size = len(tree)

    reroot_at_ancestor(tree)

    assert len(tree) == size + 1
    root = tree[tree.root]
    assert root.name == SYNTHETIC_ROOT_NAME
    assert tree.ancestor == tree.root
    assert tree[root.left].name == "IN1"
    assert tree[root.left].distance == 0.0
    assert tree[root.right].name == "IN3"
    assert tree[root.right].distance == 3.0
    # the old root keeps only its off-path child
    assert tree[tree[root.right].right].name == "IN2"
    assert tree[root.right].left is None
    tree.validate()


def test_reroot_two_levels_below_root():
    tree = parse_newick("(((A:1,B:1)@:2,C:3):4,D:5);")

    reroot_at_ancestor(tree)
    tree.validate()

    root = tree[tree.root]
    ancestor, remainder = root.left, root.right
    assert tree[ancestor].name == "IN1"
    assert tree[remainder].name == "IN2"
    assert tree[remainder].distance == 2.0
    # IN2 already held C on the right, so its former parent goes left
    assert tree[tree[remainder].left].name == "IN3"
    assert tree[tree[remainder].right].name == "C"
    assert tree[tree.find("IN3")].distance == 4.0
    assert tree[tree.find("D")].distance == 5.0


@pytest.mark.parametrize(
    "newick",
    [
        "(((A:1,B:1)@:2,C:3):4,D:5);",
        "((A:1,(B:0.5,C:0.25)@:2):3,(D:4,E:5):6);",
        "((((A:1,B:2)@:3,C:4):5,D:6):7,E:8);",
    ],
)
def test_reroot_preserves_pairwise_distances(newick):
    before = parse_newick(newick)
    leaves = [before[i].name for i in before.leaves()]
    expected = {
        (a, b): leaf_distance(before, a, b) for a in leaves for b in leaves if a < b
    }

    after = reroot_at_ancestor(parse_newick(newick))

    assert sorted(after[i].name for i in after.leaves()) == sorted(leaves)
    for (a, b), distance in expected.items():
        assert leaf_distance(after, a, b) == pytest.approx(distance)


def test_reroot_keeps_outgroup_flags():
    tree = parse_newick("(((A:1,B:1)@:2,C:3):4,D:5);")
    reroot_at_ancestor(tree)
    outgroups = sorted(tree[i].name for i in tree.outgroup_leaves())
    assert outgroups == ["C", "D"]


def test_reroot_is_idempotent():
    tree = parse_newick("((A:1,B:2):3,C:4);")
    before = tree.describe()
    size = len(tree)

    assert reroot_at_ancestor(tree) is tree
    assert len(tree) == size
    assert tree.describe() == before

    rerooted = reroot_at_ancestor(parse_newick("((A:1,B:2)@:3,C:4);"))
    once = rerooted.describe()
    reroot_at_ancestor(rerooted)
    assert rerooted.describe() == once


def test_traversal_covers_all_nodes_after_reroot():
    tree = parse_newick("((((A:1,B:2)@:3,C:4):5,D:6):7,E:8);")
    reroot_at_ancestor(tree)
    assert sorted(tree.traverse()) == list(range(len(tree)))
