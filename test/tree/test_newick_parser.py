import pytest

from deschrambler.exceptions import ConsistencyError, ParseError, TreeCapacityError
from deschrambler.parser import newick_parser
from deschrambler.parser.newick_parser import parse_newick
from deschrambler.tree import LEFT, RIGHT


def names(tree, indices):
    return [tree[i].name for i in indices]


def test_parse_marked_tree():
    tree = parse_newick("((A:1,B:2)@:3,C:4);")

    assert len(tree) == 5
    assert tree[tree.root].name == "IN2"
    assert tree[tree.ancestor].name == "IN1"
    assert names(tree, tree.leaves()) == ["A", "B", "C"]

    ancestor = tree[tree.ancestor]
    assert tree[ancestor.left].name == "A"
    assert tree[ancestor.right].name == "B"
    assert ancestor.distance == 3.0
    assert tree[tree.find("C")].distance == 4.0


def test_branch_lengths_are_scaled_by_alpha():
    tree = parse_newick("((A:1,B:2)@:3,C:4);", alpha=0.5)
    assert tree[tree.find("A")].distance == 0.5
    assert tree[tree.find("B")].distance == 1.0
    assert tree[tree.ancestor].distance == 1.5


def test_missing_lengths_use_default():
    tree = parse_newick("((A,B:2),C);", alpha=2.0, default_length=0.25)
    assert tree[tree.find("A")].distance == 0.5
    assert tree[tree.find("B")].distance == 4.0


def test_named_internal_nodes_keep_their_names():
    tree = parse_newick("((A,B)X,(C,D))R;")
    assert tree[tree.root].name == "R"
    assert tree.find("X") is not None
    # only the unnamed internal node is numbered, in closing order
    assert tree.find("IN2") is not None
    assert tree.find("IN1") is None


def test_missing_marker_uses_root():
    tree = parse_newick("((A,B),C);")
    assert tree.ancestor == tree.root
    assert tree.outgroup_leaves() == []


def test_outgroups_are_classified():
    tree = parse_newick("(((A,B)@,C),D);")
    assert names(tree, tree.ingroup_leaves()) == ["A", "B"]
    assert names(tree, tree.outgroup_leaves()) == ["C", "D"]


def test_whitespace_and_newlines_are_ignored():
    tree = parse_newick("(\n  (A : 1, B : 1) @ : 2,\n  C : 3\n);\n")
    assert names(tree, tree.leaves()) == ["A", "B", "C"]
    assert tree[tree.ancestor].distance == 2.0


def test_parsing_stops_at_semicolon():
    tree = parse_newick("(A,B);(C,D);")
    assert names(tree, tree.leaves()) == ["A", "B"]


def test_child_slots():
    tree = parse_newick("(A,B);")
    root = tree[tree.root]
    assert root.children[LEFT] == tree.find("A")
    assert root.children[RIGHT] == tree.find("B")
    assert tree[root.left].parent == tree.root


@pytest.mark.parametrize(
    "newick",
    [
        "(A,B,C);",
        "((A,B);",
        "(A,B));",
        "(A,,B);",
        "(A,B)@@,C;",
        "(A@,B);",
        "(A:x,B);",
        "(A:-1,B);",
        "(A,B)(C,D);",
        "",
        ";",
    ],
)
def test_malformed_trees_raise_parse_error(newick):
    with pytest.raises(ParseError):
        parse_newick(newick)


def test_parse_error_names_source():
    with pytest.raises(ParseError, match="tree.nwk"):
        parse_newick("((A,B);", source="tree.nwk")


def test_two_markers_are_inconsistent():
    with pytest.raises(ConsistencyError, match="More than one"):
        parse_newick("((A,B)@,(C,D)@);")


def test_duplicate_leaf_names_are_inconsistent():
    with pytest.raises(ConsistencyError, match="'A'"):
        parse_newick("((A,B),A);")


def test_depth_bound(monkeypatch):
    monkeypatch.setattr(newick_parser, "MAX_TREE_DEPTH", 3)
    parse_newick("(((A,B),C),D);")
    with pytest.raises(TreeCapacityError):
        parse_newick("((((A,B),C),D),E);")


def test_capacity_error_is_a_parse_error():
    assert issubclass(TreeCapacityError, ParseError)


def test_describe_lists_every_node():
    tree = parse_newick("((A:1,B:1)@:2,C:3);")
    lines = tree.describe().splitlines()
    assert len(lines) == len(tree)
    assert lines[0].startswith("IN2(")
    assert any(line.startswith("IN1(2.0000) *") for line in lines)


def test_subtree_lists_descendants_in_preorder():
    tree = parse_newick("(((A,B)@,C),D);")
    assert names(tree, tree.subtree(tree.ancestor)) == ["IN1", "A", "B"]
    assert tree.subtree(tree.root) == tree.traverse()
