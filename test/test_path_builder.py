import pytest

from deschrambler.path_builder import (
    Edge,
    Endpoint,
    Path,
    PathBuilder,
    build_fragments,
    candidate_edges,
    count_blocks,
    score_table,
)


def fragments_for(triples, min_weight=0.0):
    return build_fragments(score_table(triples), min_weight)


def assert_invariants(fragments):
    keys = [key for fragment in fragments for edge in fragment.edges for key in edge.used_keys()]
    assert len(keys) == len(set(keys))
    for fragment in fragments:
        assert not Path(fragment.edges).is_cycle()


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


def test_edge_from_signed_blocks():
    edge = Edge.from_blocks(3, -5, 0.5)
    assert edge.head == Endpoint(3, 1)
    assert edge.tail == Endpoint(5, -1)
    assert edge.key() == (3, 1, 5, -1)


def test_edge_reverse_swaps_and_flips():
    edge = Edge.from_blocks(3, -5, 0.5)
    reverse = edge.reverse()
    assert reverse.key() == (5, 1, 3, -1)
    assert reverse.weight == 0.5
    assert reverse.reverse().key() == edge.key()
    assert sorted(reverse.used_keys()) == sorted(edge.used_keys())


def test_edge_describe():
    edge = Edge(Endpoint(1, 1), Endpoint(2, -1), 0.9, 0.9, 0.8)
    assert edge.describe() == "1 +\t2 -\t0.900000\t0.900000\t0.800000"


def test_termini_are_never_used():
    assert Edge.from_blocks(0, 4).used_keys() == [4]
    assert Edge.from_blocks(4, 0).used_keys() == [-4]


# ---------------------------------------------------------------------------
# Score table
# ---------------------------------------------------------------------------


def test_scores_are_registered_in_both_directions():
    scores = score_table([(1, -2, 0.7)])
    assert scores == {(1, 1, 2, -1): 0.7, (2, 1, 1, -1): 0.7}
    assert count_blocks(scores) == 2


def test_candidate_edges():
    scores = score_table([(1, 2, 0.5), (2, 2, 0.9), (1, 3, 0.0), (3, 1, 0.5)])
    edges = candidate_edges(scores)

    # self-adjacencies and non-positive scores are dropped
    assert all(e.head.block != e.tail.block for e in edges)
    assert all(e.weight > 0 for e in edges)
    # equal weights fall back to endpoint order
    assert [e.key() for e in edges] == sorted(e.key() for e in edges)
    assert edges[0].score2 == 0.5


def test_sort_is_heaviest_first():
    edges = candidate_edges(score_table([(1, 2, 0.2), (2, 3, 0.9), (3, 4, 0.5)]))
    weights = [e.weight for e in edges]
    assert weights == sorted(weights, reverse=True)


# ---------------------------------------------------------------------------
# Greedy construction
# ---------------------------------------------------------------------------


def test_three_cycle_is_broken():
    fragments = fragments_for([(1, 2, 0.9), (2, 3, 0.8), (3, 1, 0.7)])

    assert len(fragments) == 1
    assert fragments[0].blocks == [1, 2, 3]
    assert [e.weight for e in fragments[0].edges] == [0.9, 0.8]
    assert_invariants(fragments)


def test_cycle_closing_edge_is_logged(caplog):
    with caplog.at_level("DEBUG", logger="deschrambler.path_builder"):
        fragments_for([(1, 2, 0.9), (2, 3, 0.8), (3, 1, 0.7)])
    assert "Rejected cycle-closing edge" in caplog.text


def test_edges_below_threshold_are_ignored():
    fragments = fragments_for([(1, 2, 0.9), (2, 3, 0.2)], min_weight=0.5)

    assert [f.blocks for f in fragments] == [[1, 2]]
    assert all(e.weight >= 0.5 for f in fragments for e in f.edges)


def test_each_block_end_is_used_once():
    fragments = fragments_for([(1, 2, 0.5), (1, 3, 0.5), (4, 2, 0.4)])

    assert [f.blocks for f in fragments] == [[1, 2]]
    assert_invariants(fragments)


def test_tie_break_is_independent_of_input_order():
    triples = [(1, 2, 0.5), (1, 3, 0.5), (3, 4, 0.5), (2, 4, 0.5)]
    forward = [f.blocks for f in fragments_for(triples)]
    backward = [f.blocks for f in fragments_for(list(reversed(triples)))]
    assert forward == backward


def test_paths_are_merged():
    fragments = fragments_for([(1, 2, 0.9), (3, 4, 0.8), (2, 3, 0.7)])

    assert len(fragments) == 1
    assert fragments[0].blocks == [1, 2, 3, 4]
    assert_invariants(fragments)


def test_merge_reverses_other_path():
    fragments = fragments_for([(1, 2, 0.9), (3, 4, 0.8), (2, -4, 0.7)])

    assert len(fragments) == 1
    assert fragments[0].blocks == [1, 2, -4, -3]
    assert_invariants(fragments)


def test_prepending_edge():
    fragments = fragments_for([(2, 3, 0.9), (-2, -1, 0.8)])
    assert [f.blocks for f in fragments] == [[1, 2, 3]]


def test_prepending_reversed_edge():
    # -2 -> 5 meets the front 2 -> 3 head to head, so it is read as -5 -> 2
    fragments = fragments_for([(2, 3, 0.9), (-2, 5, 0.8)])
    assert [f.blocks for f in fragments] == [[-5, 2, 3]]


def test_appending_reversed_edge():
    fragments = fragments_for([(2, 3, 0.9), (1, -3, 0.8)])
    assert [f.blocks for f in fragments] == [[2, 3, -1]]


def test_chromosome_with_termini():
    fragments = fragments_for([(0, 1, 0.9), (1, 2, 0.8), (2, 0, 0.7)])

    assert [f.blocks for f in fragments] == [[1, 2]]
    edges = fragments[0].edges
    assert edges[0].head.is_terminus()
    assert edges[-1].tail.is_terminus()
    assert_invariants(fragments)


def test_paths_are_not_joined_through_termini():
    fragments = fragments_for([(0, 1, 0.9), (-2, 0, 0.8)])
    assert [f.blocks for f in fragments] == [[1], [2]]


def test_fragments_are_numbered_in_creation_order():
    fragments = fragments_for([(5, 6, 0.9), (1, 2, 0.8)])
    assert [(f.number, f.blocks) for f in fragments] == [(1, [5, 6]), (2, [1, 2])]


def test_builder_state():
    builder = PathBuilder(min_weight=0.1)
    edge = Edge.from_blocks(1, 2, 0.5)
    assert builder.add_edge(edge)
    assert builder.is_used(edge)
    assert not builder.add_edge(Edge.from_blocks(1, 3, 0.5))
    assert not builder.add_edge(Edge.from_blocks(4, 5, 0.05))
    assert len(builder.paths) == 1


@pytest.mark.parametrize(
    "triples",
    [
        [(1, 2, 0.9), (2, 3, 0.8), (3, 1, 0.7), (3, -1, 0.6), (-1, 2, 0.5)],
        [(1, 2, 0.3), (2, 3, 0.3), (3, 4, 0.3), (4, 1, 0.3), (0, 1, 0.2), (4, 0, 0.2)],
        [(1, -2, 0.9), (-2, 3, 0.9), (3, -1, 0.9), (2, 4, 0.5), (4, -3, 0.4)],
    ],
)
def test_invariants_hold(triples):
    assert_invariants(fragments_for(triples))
